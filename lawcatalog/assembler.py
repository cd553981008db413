"""Final assembly of catalog entries: uniqueness check and stable ordering."""

import logging
from collections import Counter
from typing import Iterable, List

from lawcatalog.errors import AssemblerInvariantError
from lawcatalog.models import CatalogEntry

logger = logging.getLogger(__name__)


def assemble(entries: Iterable[CatalogEntry]) -> List[CatalogEntry]:
    """
    Check that every law_id is unique and sort entries by law_id.

    Python compares str by code point, so the order does not depend on the
    locale or platform.

    Raises:
        AssemblerInvariantError: a law_id appears more than once
    """
    entries = list(entries)
    counts = Counter(entry.law_id for entry in entries)
    duplicates = sorted(law_id for law_id, count in counts.items() if count > 1)
    if duplicates:
        raise AssemblerInvariantError(duplicates)

    logger.debug(f"Assembled {len(entries)} catalog entries")
    return sorted(entries, key=lambda entry: entry.law_id)
