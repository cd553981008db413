"""
Pydantic models for catalog pipeline data.

Every stage hands the next one validated models:

    LawFileRef         (locator)    one discovered XML file
    LawDocument        (parsers)    fields decoded from one XML document
    ExtractedMetadata  (extractor)  one successfully decoded file
    CanonicalLawRecord (resolver)   one law, all revisions folded together
    IndexEntry         (reconciler) one row of the authoritative index
    CatalogEntry       (reconciler) one line of the output catalog

CatalogEntry declares its fields in output order; CatalogWriter relies on
pydantic keeping declaration order when dumping.
"""

from datetime import date
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_serializer, model_validator


# =============================================================================
# Dates
# =============================================================================


class Era(str, Enum):
    """Japanese era names as written in the Era attribute of <Law>."""

    MEIJI = "Meiji"
    TAISHO = "Taisho"
    SHOWA = "Showa"
    HEISEI = "Heisei"
    REIWA = "Reiwa"

    @property
    def start(self) -> date:
        return ERA_START[self]


# First day of each era. Meiji is counted from 1868-01-01 (retroactive).
ERA_START: Dict[Era, date] = {
    Era.MEIJI: date(1868, 1, 1),
    Era.TAISHO: date(1912, 7, 30),
    Era.SHOWA: date(1926, 12, 25),
    Era.HEISEI: date(1989, 1, 8),
    Era.REIWA: date(2019, 5, 1),
}


class LawDate(BaseModel):
    """
    A date in the Japanese era calendar.

    Promulgation dates in e-Gov XML always carry an era and year; month and
    day are optional and are left out of the JSON output when unknown.
    """

    era: Era = Field(..., description="Era name: Meiji, Taisho, Showa, Heisei, Reiwa")
    year: int = Field(..., description="Year within the era (1-based)", ge=1)
    month: Optional[int] = Field(None, description="Month (1-12)", ge=1, le=12)
    day: Optional[int] = Field(None, description="Day of month (1-31)", ge=1, le=31)

    model_config = {"frozen": True}

    @classmethod
    def from_ad(cls, year: int, month: int, day: int) -> "LawDate":
        """Convert a Gregorian date into the era calendar."""
        target = date(year, month, day)
        era = Era.MEIJI
        for candidate in Era:
            if target >= candidate.start:
                era = candidate
        return cls(era=era, year=year - era.start.year + 1, month=month, day=day)

    @model_serializer(mode="wrap")
    def _omit_unknown(self, handler):
        data = handler(self)
        return {key: value for key, value in data.items() if value is not None}


# =============================================================================
# Discovery and extraction
# =============================================================================


class LawFileRef(BaseModel):
    """
    One law XML file found under the work directory.

    Derived from file names of the form <law_id>_<YYYYMMDD>_<amendment_id>.xml.
    revision_key is the "<YYYYMMDD>_<amendment_id>" part; the fixed-width date
    prefix makes its string order chronological.
    """

    path: Path = Field(..., description="Path of the XML file as discovered")
    law_id: str = Field(..., description="Law identifier: '322AC0000000001'")
    revision_key: str = Field(..., description="Revision ordering key: '20210601_503AC0000000036'")
    revision_date: date = Field(..., description="Date the revision takes effect")
    amendment_law_id: Optional[str] = Field(
        None, description="Law id of the amending law (None for the unamended original)"
    )

    model_config = {"frozen": True}


class LawDocument(BaseModel):
    """Metadata decoded from one law XML document by a document parser."""

    era: Era
    year: int = Field(..., ge=1)
    promulgate_month: Optional[int] = Field(None, ge=1, le=12)
    promulgate_day: Optional[int] = Field(None, ge=1, le=31)
    law_type: str = Field(..., description="LawType attribute: Act, CabinetOrder, ...")
    law_num: str = Field("", description="Law number text: '昭和二十二年法律第一号'")
    title: str = Field("", description="LawTitle text (empty when the document has none)")

    model_config = {"str_strip_whitespace": True}

    @property
    def promulgation_date(self) -> LawDate:
        return LawDate(
            era=self.era,
            year=self.year,
            month=self.promulgate_month,
            day=self.promulgate_day,
        )


class ExtractedMetadata(BaseModel):
    """Metadata of one successfully decoded law file."""

    law_id: str
    title: str
    promulgation_date: LawDate
    law_type: str
    category: str = Field(..., description="Law category: 法律, 政令, 府省令, ...")
    law_num: str = ""
    source_ref: LawFileRef


# =============================================================================
# Resolution
# =============================================================================


class RevisionEntry(BaseModel):
    """One revision of a law in a record's revision history."""

    revision_key: str
    revision_date: date
    patch_date: Optional[LawDate] = Field(
        None, description="revision_date in the era calendar (filled in when omitted)"
    )
    amendment_law_id: Optional[str] = None
    file: str = Field(..., description="Path of the revision's XML file")

    @model_validator(mode="after")
    def fill_patch_date(self) -> "RevisionEntry":
        if self.patch_date is None:
            d = self.revision_date
            self.patch_date = LawDate.from_ad(d.year, d.month, d.day)
        return self

    @classmethod
    def from_ref(cls, ref: LawFileRef) -> "RevisionEntry":
        return cls(
            revision_key=ref.revision_key,
            revision_date=ref.revision_date,
            amendment_law_id=ref.amendment_law_id,
            file=ref.path.as_posix(),
        )


class CanonicalLawRecord(BaseModel):
    """
    One law with all of its successfully extracted revisions folded together.

    current_file is the revision with the greatest revision_key; the history
    is ascending by revision_key with no key repeated.
    """

    law_id: str
    title: str
    promulgation_date: LawDate
    law_type: str
    category: str
    law_num: str = ""
    current_file: str
    revision_history: List[RevisionEntry] = Field(..., min_length=1)

    @field_validator("revision_history")
    @classmethod
    def validate_history_order(cls, v: List[RevisionEntry]) -> List[RevisionEntry]:
        """Ensure revision keys are strictly ascending."""
        keys = [entry.revision_key for entry in v]
        if any(a >= b for a, b in zip(keys, keys[1:])):
            raise ValueError(f"revision_history must be strictly ascending, got: {keys}")
        return v

    @model_validator(mode="after")
    def validate_current_file(self) -> "CanonicalLawRecord":
        """Ensure current_file is the latest revision."""
        if self.revision_history[-1].file != self.current_file:
            raise ValueError(
                f"current_file {self.current_file} is not the latest revision "
                f"({self.revision_history[-1].file})"
            )
        return self


# =============================================================================
# Reconciliation and output
# =============================================================================


class IndexEntry(BaseModel):
    """One law from the authoritative index (read-only reference data)."""

    law_id: str
    title: str = ""
    category: Optional[str] = None
    law_num: Optional[str] = None

    model_config = {"str_strip_whitespace": True, "frozen": True}


class ReconciliationFlag(str, Enum):
    """Match status of a catalog entry against the authoritative index."""

    MATCHED = "matched"
    INDEX_MISSING = "index-missing"
    FIELD_MISMATCH = "field-mismatch"
    NO_INDEX = "no-index"


class CatalogEntry(BaseModel):
    """One law in the output catalog. Field order is the JSON field order."""

    law_id: str
    title: str
    promulgation_date: LawDate
    law_type: str
    category: str
    current_file: str
    revision_history: List[RevisionEntry]
    reconciliation_flag: ReconciliationFlag
    law_num: str = ""
    index_title: Optional[str] = Field(
        None, description="Title recorded in the index, kept for auditing"
    )
    mismatched_fields: List[str] = Field(default_factory=list)

    @classmethod
    def from_record(
        cls,
        record: CanonicalLawRecord,
        flag: ReconciliationFlag,
        index_title: Optional[str] = None,
        mismatched_fields: Optional[List[str]] = None,
        **overrides,
    ) -> "CatalogEntry":
        data = record.model_dump()
        data.update(overrides)
        return cls(
            **data,
            reconciliation_flag=flag,
            index_title=index_title,
            mismatched_fields=mismatched_fields or [],
        )


class SkippedFile(BaseModel):
    """A file left out of the catalog because its extraction failed."""

    law_id: str
    path: str
    cause: str


class RunSummary(BaseModel):
    """What a catalog run did, reported at the end of the run."""

    files_discovered: int = 0
    laws_cataloged: int = 0
    skipped_files: List[SkippedFile] = Field(default_factory=list)
    dropped_law_ids: List[str] = Field(default_factory=list)
    flag_counts: Dict[str, int] = Field(default_factory=dict)
    output: Optional[str] = None

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_files)
