#!/usr/bin/env python3
"""
Build a JSON catalog of the law XML files in a work directory.

Usage:
  lawcatalog --work data/法令データ一式 --output data/all_law_list.json
  lawcatalog --work data/xml --output catalog.json --index data/all_law_list.csv
"""

import argparse
import logging
from pathlib import Path

from lawcatalog import config
from lawcatalog.catalog_builder import CatalogBuilder
from lawcatalog.common import setup_logging
from lawcatalog.errors import CatalogError


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_arg_parser() -> argparse.ArgumentParser:
    arg_parser = argparse.ArgumentParser(
        description="List law XML files with their metadata as a JSON catalog"
    )
    arg_parser.add_argument(
        "-w", "--work",
        required=True,
        help="Directory containing the law XML files"
    )
    arg_parser.add_argument(
        "-o", "--output",
        required=True,
        help="Output JSON catalog path"
    )
    arg_parser.add_argument(
        "--index",
        help="Authoritative law index (all_law_list.csv or a JSON catalog)"
    )
    arg_parser.add_argument(
        "--index-encoding",
        default=None,
        help=f"Text encoding of a CSV index. Default: UTF-8 if BOM, else {config.INDEX_ENCODING}"
    )
    arg_parser.add_argument(
        "--max-concurrency",
        type=positive_int,
        default=config.MAX_CONCURRENCY,
        help=f"Files read and parsed at once. Default: {config.MAX_CONCURRENCY}"
    )
    arg_parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level. Default: INFO"
    )
    arg_parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar"
    )
    return arg_parser


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    logger = setup_logging("lawcatalog", level=getattr(logging, args.log_level))

    try:
        builder = CatalogBuilder(
            work_dir=Path(args.work),
            out_file=Path(args.output),
            index_file=Path(args.index) if args.index else None,
            index_encoding=args.index_encoding,
            max_concurrency=args.max_concurrency,
            show_progress=not args.no_progress,
        )
        summary = builder.run()
    except (CatalogError, ValueError) as e:
        logger.error(f"Catalog run failed: {e}")
        return 1

    print(f"Laws cataloged: {summary.laws_cataloged}")
    print(f"Files skipped: {summary.skipped_count}")
    for skipped in summary.skipped_files:
        print(f"  {skipped.path}: {skipped.cause}")
    if summary.dropped_law_ids:
        print(f"Laws dropped: {', '.join(summary.dropped_law_ids)}")
    return 0


if __name__ == "__main__":
    exit(main())
