"""
Catalog serialization with atomic replacement of the output file.

The catalog is written to a temporary file next to the output path and moved
into place with os.replace(), so readers see either the previous catalog or
the complete new one, never a truncated file.
"""

import json
import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from lawcatalog.errors import WriteError
from lawcatalog.models import CatalogEntry

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644
WRITE_BITS = stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH


def catalog_records(entries: Sequence[CatalogEntry]) -> List[Dict[str, Any]]:
    """Convert entries to JSON-ready dicts in the fixed field order."""
    return [entry.model_dump(mode="json") for entry in entries]


def serialize_catalog(entries: Sequence[CatalogEntry]) -> bytes:
    """Render the catalog as UTF-8 JSON text."""
    text = json.dumps(catalog_records(entries), indent=2, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def write_catalog(entries: Sequence[CatalogEntry], output: Union[str, Path]) -> Path:
    """
    Atomically write the catalog to output.

    Args:
        entries: Assembled, ordered catalog entries
        output: Destination JSON file

    Returns:
        Path of the written catalog

    Raises:
        WriteError: any I/O failure; the previous file at output (if any)
            is left as it was
    """
    output = Path(output)
    payload = serialize_catalog(entries)

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        mode = (
            stat.S_IMODE(output.stat().st_mode) if output.is_file() else DEFAULT_FILE_MODE
        )
        # A read-only catalog must not be swapped out from under its owner
        if output.is_file() and (not mode & WRITE_BITS or not os.access(output, os.W_OK)):
            raise WriteError(output, "permission denied")
        fd, tmp_name = tempfile.mkstemp(
            dir=output.parent, prefix=f".{output.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise WriteError(output, str(e)) from e

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, output)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise WriteError(output, str(e)) from e

    logger.info(f"Catalog written to {output} ({len(entries)} laws, {len(payload)} bytes)")
    return output
