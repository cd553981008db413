"""Exception hierarchy for the catalog pipeline."""

from pathlib import Path
from typing import Optional, Union


class CatalogError(Exception):
    """Base class for all pipeline errors."""


class DiscoveryError(CatalogError):
    """The XML root directory is missing or unreadable."""

    def __init__(self, root: Union[str, Path], cause: str):
        self.root = Path(root)
        self.cause = cause
        super().__init__(f"Cannot scan {self.root}: {cause}")


class ExtractionError(CatalogError):
    """
    One law file could not be decoded into metadata.

    Recoverable: the extractor returns it as a value so sibling files keep
    going, and the builder reports it in the run summary.
    """

    def __init__(self, law_id: str, path: Union[str, Path], cause: str):
        self.law_id = law_id
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"{law_id} ({self.path}): {cause}")


class IndexLoadError(CatalogError):
    """The authoritative index was requested but cannot be read."""

    def __init__(self, path: Union[str, Path], cause: str):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Cannot load index {self.path}: {cause}")


class AssemblerInvariantError(CatalogError):
    """A duplicate law_id reached assembly. This is a bug, not bad input."""

    def __init__(self, law_ids: list[str]):
        self.law_ids = law_ids
        super().__init__(
            f"Duplicate law_id(s) reached catalog assembly: {', '.join(law_ids)}"
        )


class WriteError(CatalogError):
    """The catalog could not be written to its output path."""

    def __init__(self, path: Union[str, Path], cause: Optional[str] = None):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Cannot write catalog to {self.path}: {cause}")
