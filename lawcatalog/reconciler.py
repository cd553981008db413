"""
Cross-checking extracted records against an authoritative law index.

The index is loaded once into an immutable mapping (law_id -> IndexEntry) and
passed explicitly to reconcile(). The XML-derived metadata always wins; the
index only fills empty fields and is otherwise used to flag disagreements.

Supported index files:
- all_law_list.csv as distributed by e-Gov (Japanese headers, Shift_JIS)
- CSV with English headers: law_id, title[, category, law_num]
- JSON array of catalog entries, or of {"id", "name", "num"} objects
"""

import json
import logging
from collections import Counter
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd
from pydantic import ValidationError

from lawcatalog import config
from lawcatalog.errors import IndexLoadError
from lawcatalog.models import (
    CanonicalLawRecord,
    CatalogEntry,
    IndexEntry,
    ReconciliationFlag,
)

logger = logging.getLogger(__name__)

LawIndex = Mapping[str, IndexEntry]

# all_law_list.csv columns:
# 法令種別,法令番号,法令名,法令名読み,旧法令名,公布日,改正法令名,改正法令番号,改正法令公布日,
# 施行日,施行日備考,法令ID,本文URL,未施行,所管課確認中
EGOV_COLUMNS = {
    "法令ID": "law_id",
    "法令名": "title",
    "法令種別": "category",
    "法令番号": "law_num",
}
INDEX_FIELDS = ("law_id", "title", "category", "law_num")

# Keys of the JSON index written by earlier versions of the tool
LEGACY_JSON_KEYS = {"id": "law_id", "name": "title", "num": "law_num"}

# Fields compared between a record and its index entry, in report order
COMPARED_FIELDS = ("title", "category", "law_num")

UTF8_BOM = b"\xef\xbb\xbf"


def _detect_encoding(path: Path, encoding: Optional[str]) -> str:
    if encoding:
        return encoding
    with open(path, "rb") as f:
        if f.read(len(UTF8_BOM)) == UTF8_BOM:
            return "utf-8-sig"
    return config.INDEX_ENCODING


def _read_csv_rows(path: Path, encoding: Optional[str]) -> List[Dict[str, Any]]:
    encoding = _detect_encoding(path, encoding)
    try:
        df = pd.read_csv(path, dtype=str, encoding=encoding, keep_default_na=False)
    except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise IndexLoadError(path, f"{type(e).__name__}: {e}") from e

    df.columns = [str(column).strip() for column in df.columns]
    df = df.rename(columns=EGOV_COLUMNS)
    if "law_id" not in df.columns:
        raise IndexLoadError(
            path, f"no law id column (expected 法令ID or law_id), got: {list(df.columns)}"
        )
    if "title" not in df.columns:
        df["title"] = ""

    present = [field for field in INDEX_FIELDS if field in df.columns]
    return df[present].to_dict(orient="records")


def _read_json_rows(path: Path) -> List[Dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise IndexLoadError(path, f"{type(e).__name__}: {e}") from e

    if not isinstance(data, list):
        raise IndexLoadError(path, "JSON index must be an array of objects")

    rows = []
    for item in data:
        if not isinstance(item, dict):
            raise IndexLoadError(path, f"JSON index item is not an object: {item!r}")
        row = {LEGACY_JSON_KEYS.get(key, key): value for key, value in item.items()}
        for field in INDEX_FIELDS:
            value = row.get(field)
            if value is not None and not isinstance(value, str):
                raise IndexLoadError(
                    path, f"JSON index field {field!r} must be a string, got: {value!r}"
                )
        rows.append({field: row.get(field) for field in INDEX_FIELDS})
    return rows


def load_index(path: Union[str, Path], encoding: Optional[str] = None) -> LawIndex:
    """
    Load the authoritative index into an immutable law_id -> IndexEntry map.

    Rows without a law id are ignored. When a law id repeats, the first row
    wins.

    Args:
        path: Index file (.json, otherwise read as CSV)
        encoding: CSV text encoding; default is UTF-8 with BOM if present,
            otherwise config.INDEX_ENCODING

    Returns:
        Read-only mapping of law_id to IndexEntry

    Raises:
        IndexLoadError: the file is missing, unreadable or has no law id column
    """
    path = Path(path)
    if not path.is_file():
        raise IndexLoadError(path, "file not found")

    try:
        if path.suffix.lower() == ".json":
            rows = _read_json_rows(path)
        else:
            rows = _read_csv_rows(path, encoding)
    except OSError as e:
        raise IndexLoadError(path, str(e)) from e

    entries: Dict[str, IndexEntry] = {}
    duplicates = 0
    for row in rows:
        law_id = (row.get("law_id") or "").strip()
        if not law_id:
            continue
        if law_id in entries:
            duplicates += 1
            continue
        try:
            entries[law_id] = IndexEntry(
                law_id=law_id,
                title=row.get("title") or "",
                category=row.get("category") or None,
                law_num=row.get("law_num") or None,
            )
        except ValidationError as e:
            raise IndexLoadError(path, f"invalid row for {law_id}: {e}") from e

    if duplicates:
        logger.info(f"Ignored {duplicates} repeated law id row(s) in {path}")
    logger.info(f"Loaded {len(entries)} index entries from {path}")
    return MappingProxyType(entries)


def compare_fields(record: CanonicalLawRecord, entry: IndexEntry) -> List[str]:
    """Names of fields that are set on both sides and disagree."""
    mismatched = []
    for field in COMPARED_FIELDS:
        extracted = (getattr(record, field) or "").strip()
        indexed = (getattr(entry, field) or "").strip()
        if extracted and indexed and extracted != indexed:
            mismatched.append(field)
    return mismatched


def reconcile_record(
    record: CanonicalLawRecord, index: Optional[LawIndex]
) -> CatalogEntry:
    """Merge one record with its index entry (if any) into a CatalogEntry."""
    if index is None:
        return CatalogEntry.from_record(record, ReconciliationFlag.NO_INDEX)

    entry = index.get(record.law_id)
    if entry is None:
        return CatalogEntry.from_record(record, ReconciliationFlag.INDEX_MISSING)

    # Fill gaps the document left empty
    overrides = {}
    if not record.title and entry.title:
        overrides["title"] = entry.title
    if not record.law_num and entry.law_num:
        overrides["law_num"] = entry.law_num

    mismatched = compare_fields(record, entry)
    if mismatched:
        logger.info(f"{record.law_id}: index disagrees on {', '.join(mismatched)}")
        flag = ReconciliationFlag.FIELD_MISMATCH
    else:
        flag = ReconciliationFlag.MATCHED

    return CatalogEntry.from_record(
        record,
        flag,
        index_title=entry.title or None,
        mismatched_fields=mismatched,
        **overrides,
    )


def reconcile(
    records: Iterable[CanonicalLawRecord], index: Optional[LawIndex] = None
) -> List[CatalogEntry]:
    """
    Reconcile every record against the index.

    Args:
        records: Canonical records
        index: Index loaded by load_index(), or None when no index was given

    Returns:
        One CatalogEntry per record, in input order
    """
    entries = [reconcile_record(record, index) for record in records]
    counts = Counter(entry.reconciliation_flag.value for entry in entries)
    logger.info(f"Reconciliation: {dict(sorted(counts.items()))}")
    return entries
