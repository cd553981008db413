"""
Revision resolution: fold all revisions of a law into one canonical record.

The fold is pure and order-independent. Revisions are sorted by
(revision_key, path), so the outcome never depends on the order in which
extraction tasks finished.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple

from lawcatalog.models import CanonicalLawRecord, ExtractedMetadata, RevisionEntry

logger = logging.getLogger(__name__)


def revision_sort_key(item: ExtractedMetadata) -> Tuple[str, str]:
    """Order revisions by revision_key, then by path as a tie-break."""
    return (item.source_ref.revision_key, item.source_ref.path.as_posix())


def resolve_law(law_id: str, items: Sequence[ExtractedMetadata]) -> CanonicalLawRecord:
    """
    Select the current revision of one law and build its revision history.

    The revision with the greatest revision_key is current and supplies the
    record's title, date, type, category and law number. When several files
    share a revision_key, the one whose path sorts greatest wins and the
    others are left out of the history.

    Args:
        law_id: Law identifier shared by all items
        items: Successfully extracted revisions (at least one)

    Returns:
        CanonicalLawRecord for the law
    """
    if not items:
        raise ValueError(f"No revisions to resolve for {law_id}")

    ordered = sorted(items, key=revision_sort_key)

    # Keep the last (canonical) file per revision_key
    by_key: Dict[str, ExtractedMetadata] = {}
    for item in ordered:
        key = item.source_ref.revision_key
        if key in by_key:
            logger.warning(
                f"{law_id}: revision {key} found in both {by_key[key].source_ref.path} "
                f"and {item.source_ref.path}; using the latter"
            )
        by_key[key] = item

    history = [RevisionEntry.from_ref(item.source_ref) for item in by_key.values()]
    current = ordered[-1]

    return CanonicalLawRecord(
        law_id=law_id,
        title=current.title,
        promulgation_date=current.promulgation_date,
        law_type=current.law_type,
        category=current.category,
        law_num=current.law_num,
        current_file=current.source_ref.path.as_posix(),
        revision_history=history,
    )


def resolve_all(
    extracted: Iterable[ExtractedMetadata],
    discovered_law_ids: Iterable[str] = (),
) -> Tuple[List[CanonicalLawRecord], List[str]]:
    """
    Resolve every law that has at least one successful extraction.

    Args:
        extracted: Successful extractions, in any order
        discovered_law_ids: All law ids seen during discovery; those without
            a successful extraction are reported as dropped

    Returns:
        (records sorted by law_id, sorted list of dropped law ids)
    """
    groups: Dict[str, List[ExtractedMetadata]] = defaultdict(list)
    for item in extracted:
        groups[item.law_id].append(item)

    records = [resolve_law(law_id, groups[law_id]) for law_id in sorted(groups)]

    dropped = sorted(set(discovered_law_ids) - set(groups))
    for law_id in dropped:
        logger.warning(f"{law_id}: every revision failed extraction, dropping law")

    return records, dropped
