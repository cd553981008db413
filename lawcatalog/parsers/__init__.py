"""
Parser module for law document XML.

This module provides the abstract base class and source-specific parsers
that decode one law XML document into a LawDocument.

Usage:
    from lawcatalog.parsers import get_parser

    parser = get_parser("egov")
    document = parser.parse_document(xml_bytes)
"""

from .base import BaseParser, DocumentParseError


def get_parser(source: str) -> BaseParser:
    """
    Factory function to get the parser for a document source.

    Args:
        source: Source code (e.g., "egov")

    Returns:
        Parser instance for the specified source

    Raises:
        ValueError: If the source is not supported
    """
    source = source.lower()

    if source == "egov":
        from .egov import EGovParser
        return EGovParser()
    raise ValueError(f"Unsupported document source: {source}. Supported: egov")


__all__ = ["get_parser", "BaseParser", "DocumentParseError"]
