"""
Per-file metadata extraction with bounded concurrency.

Each law file is read and decoded in its own asyncio task. Tasks never raise:
they return either ExtractedMetadata or an ExtractionError, so one bad
document cannot abort its siblings. An asyncio.Semaphore caps how many files
are open and being parsed at once.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Tuple, Union

from tqdm import tqdm

from lawcatalog import config
from lawcatalog.errors import ExtractionError
from lawcatalog.models import ExtractedMetadata, LawFileRef
from lawcatalog.parsers import BaseParser, DocumentParseError

logger = logging.getLogger(__name__)

ExtractionResult = Union[ExtractedMetadata, ExtractionError]

# LawType attribute -> law category as named in the e-Gov law list (法令種別)
LAW_TYPE_CATEGORIES: Dict[str, str] = {
    "Constitution": "憲法",
    "Act": "法律",
    "CabinetOrder": "政令",
    "ImperialOrder": "勅令",
    "MinisterialOrdinance": "府省令",
    "Rule": "規則",
    "Misc": "その他",
}


def category_for(law_type: str) -> str:
    """Map a LawType to its category, falling back to "その他"."""
    return LAW_TYPE_CATEGORIES.get(law_type, LAW_TYPE_CATEGORIES["Misc"])


def extract_metadata(ref: LawFileRef, parser: BaseParser) -> ExtractedMetadata:
    """
    Read one law file and project its document header into ExtractedMetadata.

    Args:
        ref: File to read
        parser: Document parser for the file's source

    Returns:
        ExtractedMetadata for the file

    Raises:
        ExtractionError: the file cannot be read or decoded
    """
    try:
        content = ref.path.read_bytes()
    except OSError as e:
        raise ExtractionError(ref.law_id, ref.path, f"cannot read file: {e}") from e

    try:
        document = parser.parse_document(content)
    except DocumentParseError as e:
        raise ExtractionError(ref.law_id, ref.path, str(e)) from e

    if not document.title:
        logger.warning(f"No <LawTitle> in {ref.path}")

    return ExtractedMetadata(
        law_id=ref.law_id,
        title=document.title,
        promulgation_date=document.promulgation_date,
        law_type=document.law_type,
        category=category_for(document.law_type),
        law_num=document.law_num,
        source_ref=ref,
    )


async def extract_one(
    ref: LawFileRef, parser: BaseParser, gate: asyncio.Semaphore
) -> ExtractionResult:
    """Extract one file under the concurrency gate, returning errors as values."""
    async with gate:
        try:
            return await asyncio.to_thread(extract_metadata, ref, parser)
        except ExtractionError as e:
            logger.warning(f"Skipping {ref.path}: {e.cause}")
            return e


async def extract_all(
    refs: Iterable[LawFileRef],
    parser: BaseParser,
    max_concurrency: int = config.MAX_CONCURRENCY,
    show_progress: bool = True,
) -> List[ExtractionResult]:
    """
    Extract metadata from every file, at most max_concurrency at a time.

    Results come back in completion order; downstream stages re-sort.

    Args:
        refs: Files to extract
        parser: Document parser shared by all tasks
        max_concurrency: Maximum number of in-flight reads/parses
        show_progress: Display a tqdm progress bar

    Returns:
        One ExtractedMetadata or ExtractionError per input file
    """
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")

    gate = asyncio.Semaphore(max_concurrency)
    tasks = [asyncio.create_task(extract_one(ref, parser, gate)) for ref in refs]

    results: List[ExtractionResult] = []
    try:
        for future in tqdm(
            asyncio.as_completed(tasks),
            total=len(tasks),
            desc="Extracting metadata",
            unit="file",
            disable=not show_progress,
        ):
            results.append(await future)
    except BaseException:
        # Anything other than an ExtractionError is a bug; stop the whole batch
        for task in tasks:
            task.cancel()
        raise
    return results


def partition(
    results: Iterable[ExtractionResult],
) -> Tuple[List[ExtractedMetadata], List[ExtractionError]]:
    """Split extraction results into successes and failures."""
    extracted: List[ExtractedMetadata] = []
    failed: List[ExtractionError] = []
    for result in results:
        if isinstance(result, ExtractionError):
            failed.append(result)
        else:
            extracted.append(result)
    return extracted, failed
