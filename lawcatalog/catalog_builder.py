"""
CatalogBuilder class for orchestrating a catalog run.

Stages:
1. Discover law XML files under the work directory.
2. Extract metadata from every file (concurrently, failures isolated).
3. Resolve revisions into one record per law.
4. Reconcile against the authoritative index, if one was given.
5. Assemble and atomically write the JSON catalog.
"""

import asyncio
import logging
from collections import Counter
from pathlib import Path
from typing import List, Optional

from lawcatalog import config
from lawcatalog.assembler import assemble
from lawcatalog.common import log_stage_header
from lawcatalog.extractor import extract_all, partition
from lawcatalog.locator import discover, validate_root
from lawcatalog.models import LawFileRef, RunSummary, SkippedFile
from lawcatalog.parsers import get_parser
from lawcatalog.reconciler import LawIndex, load_index, reconcile
from lawcatalog.resolver import resolve_all
from lawcatalog.writer import write_catalog

logger = logging.getLogger(__name__)


class CatalogBuilder:
    """
    Builds the law catalog for one work directory.
    """

    def __init__(
        self,
        work_dir: Path,
        out_file: Path,
        index_file: Optional[Path] = None,
        index_encoding: Optional[str] = None,
        source: str = config.DEFAULT_SOURCE,
        max_concurrency: int = config.MAX_CONCURRENCY,
        show_progress: bool = True,
    ):
        """
        Initialize the CatalogBuilder.

        Args:
            work_dir: Directory containing law XML files (scanned recursively).
            out_file: Output JSON catalog path.
            index_file: Optional authoritative index (CSV or JSON).
            index_encoding: Optional text encoding of a CSV index.
            source: Document source code understood by get_parser().
            max_concurrency: Maximum number of files read/parsed at once.
            show_progress: Display a progress bar during extraction.
        """
        self.work_dir = Path(work_dir)
        self.out_file = Path(out_file)
        self.index_file = Path(index_file) if index_file else None
        self.index_encoding = index_encoding
        self.max_concurrency = max_concurrency
        self.show_progress = show_progress

        self.parser = get_parser(source)
        logger.info(f"Using parser for source: {self.parser.source}")

    def validate_source(self) -> List[LawFileRef]:
        """
        Validate the work directory and find law XML files.

        Returns:
            List of discovered law files.
        """
        validate_root(self.work_dir)
        refs = list(discover(self.work_dir))
        if not refs:
            logger.warning(f"No law XML files found in {self.work_dir}")
        return refs

    def load_index(self) -> Optional[LawIndex]:
        """Load the authoritative index, or return None when none was given."""
        if self.index_file is None:
            logger.info("No index given, every law will be flagged no-index")
            return None
        return load_index(self.index_file, encoding=self.index_encoding)

    async def run_async(self) -> RunSummary:
        """
        Execute the full catalog pipeline.

        Raises:
            DiscoveryError, IndexLoadError, AssemblerInvariantError, WriteError
        """
        logger.info(f"lawcatalog version {config.CATALOG_VERSION}")
        logger.info(f"Work directory: {self.work_dir}")
        logger.info(f"Output: {self.out_file}")

        validate_root(self.work_dir)
        index = self.load_index()

        log_stage_header(logger, 1, "Discover law files")
        refs = self.validate_source()
        law_ids = {ref.law_id for ref in refs}
        logger.info(f"Found {len(refs)} files for {len(law_ids)} laws")

        log_stage_header(logger, 2, "Extract metadata")
        results = await extract_all(
            refs,
            self.parser,
            max_concurrency=self.max_concurrency,
            show_progress=self.show_progress,
        )
        extracted, failed = partition(results)
        logger.info(f"Extracted {len(extracted)} files, {len(failed)} failed")

        log_stage_header(logger, 3, "Resolve revisions")
        records, dropped = resolve_all(extracted, law_ids)

        log_stage_header(logger, 4, "Reconcile with index")
        entries = reconcile(records, index)

        log_stage_header(logger, 5, "Write catalog")
        catalog = assemble(entries)
        write_catalog(catalog, self.out_file)

        skipped = sorted(
            (
                SkippedFile(law_id=e.law_id, path=e.path.as_posix(), cause=e.cause)
                for e in failed
            ),
            key=lambda s: s.path,
        )
        summary = RunSummary(
            files_discovered=len(refs),
            laws_cataloged=len(catalog),
            skipped_files=skipped,
            dropped_law_ids=dropped,
            flag_counts=dict(
                sorted(Counter(e.reconciliation_flag.value for e in catalog).items())
            ),
            output=self.out_file.as_posix(),
        )

        logger.info("Catalog complete!")
        logger.info(f"  Files discovered: {summary.files_discovered}")
        logger.info(f"  Laws cataloged: {summary.laws_cataloged}")
        logger.info(f"  Files skipped: {summary.skipped_count}")
        logger.info(f"  Laws dropped: {len(summary.dropped_law_ids)}")
        return summary

    def run(self) -> RunSummary:
        """Run the pipeline on a fresh event loop."""
        return asyncio.run(self.run_async())
