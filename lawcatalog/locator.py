"""
Discovery of law XML files under a work directory.

e-Gov distributes its bulk download as "<root>/<law dir>/<law file>.xml",
where each file name reads <law_id>_<YYYYMMDD>_<amendment_id>.xml. The scan
recurses, so any deeper or flatter layout works as well.
"""

import logging
import os
import re
from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

from lawcatalog.errors import DiscoveryError
from lawcatalog.models import LawFileRef

logger = logging.getLogger(__name__)

LAW_FILE_RE = re.compile(
    r"^(?P<law_id>[0-9A-Za-z]+)_(?P<year>\d{4})(?P<month>\d{2})(?P<day>\d{2})"
    r"_(?P<amendment_id>[0-9A-Za-z]+)\.xml$"
)

# Amendment id of a law file that holds the law as originally promulgated
UNAMENDED_ID = re.compile(r"^0+$")


def parse_file_name(path: Path) -> Optional[LawFileRef]:
    """
    Derive a LawFileRef from a law file path.

    Returns:
        LawFileRef, or None if the name does not follow the law file convention
    """
    match = LAW_FILE_RE.match(path.name)
    if not match:
        return None

    try:
        revision_date = date(
            int(match["year"]), int(match["month"]), int(match["day"])
        )
    except ValueError:
        logger.debug(f"Invalid revision date in {path.name}, skipping")
        return None

    amendment_id = match["amendment_id"]
    return LawFileRef(
        path=path,
        law_id=match["law_id"],
        revision_key=f"{match['year']}{match['month']}{match['day']}_{amendment_id}",
        revision_date=revision_date,
        amendment_law_id=None if UNAMENDED_ID.match(amendment_id) else amendment_id,
    )


def validate_root(root: Union[str, Path]) -> Path:
    """Check that root is an existing, readable directory."""
    root = Path(root)
    if not root.exists():
        raise DiscoveryError(root, "directory not found")
    if not root.is_dir():
        raise DiscoveryError(root, "not a directory")
    if not os.access(root, os.R_OK | os.X_OK):
        raise DiscoveryError(root, "permission denied")
    return root


def discover(root: Union[str, Path]) -> Iterator[LawFileRef]:
    """
    Lazily yield a LawFileRef for every law file under root.

    The root is validated before the first item is produced, so a missing
    directory fails on the first next() call. Directories are walked in
    sorted order; files whose names do not match are skipped silently.

    Raises:
        DiscoveryError: root is missing, not a directory, or unreadable
    """
    root = validate_root(root)

    def on_error(error: OSError) -> None:
        if Path(error.filename or "") == root:
            raise DiscoveryError(root, str(error))
        logger.warning(f"Cannot read directory {error.filename}: {error.strerror}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            ref = parse_file_name(Path(dirpath) / filename)
            if ref is None:
                logger.debug(f"Not a law file, skipping: {filename}")
                continue
            yield ref


def group_by_law_id(refs: Iterable[LawFileRef]) -> Dict[str, List[LawFileRef]]:
    """Group file refs by law_id."""
    groups: Dict[str, List[LawFileRef]] = defaultdict(list)
    for ref in refs:
        groups[ref.law_id].append(ref)
    return dict(groups)
