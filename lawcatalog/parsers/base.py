"""
Abstract base parser for law document XML.

Defines the interface that all source-specific parsers must implement.
"""

from abc import ABC, abstractmethod

from lawcatalog.models import LawDocument


class DocumentParseError(ValueError):
    """Raised when a document cannot be decoded into a LawDocument."""


class BaseParser(ABC):
    """
    Abstract base class for source-specific law document parsers.

    Each document source (e-Gov, ...) extends this class to implement its
    XML structure. Parsers are stateless and safe to call from worker threads.

    Subclasses must implement:
    - parse_document(): Decode one XML document into a LawDocument
    """

    def __init__(self, source: str):
        """
        Initialize the parser.

        Args:
            source: Source code (e.g., "egov")
        """
        self.source = source.lower()

    @abstractmethod
    def parse_document(self, content: bytes) -> LawDocument:
        """
        Decode one law XML document.

        Args:
            content: Raw bytes of the XML file

        Returns:
            LawDocument with the document's metadata

        Raises:
            DocumentParseError: malformed markup, undecodable text, or a
                missing required field
        """

    def extract_text_plain(self, element) -> str:
        """
        Extract plain text from an XML element recursively.

        Ruby readings (<Rt>) are dropped so the base text reads naturally.

        Args:
            element: lxml Element object

        Returns:
            Plain text string
        """
        text_parts = []

        if element.text:
            text_parts.append(element.text.strip())

        for child in element:
            # Comments and processing instructions have a non-string tag
            if isinstance(child.tag, str) and child.tag != "Rt":
                child_text = self.extract_text_plain(child)
                if child_text:
                    text_parts.append(child_text)
            # Get tail text (text after the child element)
            if child.tail:
                text_parts.append(child.tail.strip())

        return "".join(part for part in text_parts if part)
