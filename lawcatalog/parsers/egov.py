"""
e-Gov law XML parser implementation.

Parses law XML files published by the e-Gov legal-search portal
(法令標準XMLスキーマ). Only the document header is needed for the catalog:

    <Law Era="Showa" Year="22" Num="1" LawType="Act" PromulgateMonth="04" PromulgateDay="16">
      <LawNum>昭和二十二年法律第一号</LawNum>
      <LawBody>
        <LawTitle Kana="..." Abbrev="...">...</LawTitle>
"""

import logging
from typing import Optional

from lxml import etree
from pydantic import ValidationError

from lawcatalog.models import Era, LawDocument
from lawcatalog.parsers.base import BaseParser, DocumentParseError

logger = logging.getLogger(__name__)

REQUIRED_ATTRIBUTES = ("Era", "Year", "LawType")


class EGovParser(BaseParser):
    """
    Parser for e-Gov law XML documents.

    Older files carry the promulgation month/day as Month/Day attributes,
    newer ones as PromulgateMonth/PromulgateDay; both are accepted.
    """

    def __init__(self):
        """Initialize e-Gov parser."""
        super().__init__(source="egov")

    def _xml_parser(self) -> etree.XMLParser:
        # A fresh parser per call keeps the method thread-safe
        return etree.XMLParser(
            resolve_entities=False, no_network=True, huge_tree=True, remove_comments=True
        )

    def parse_document(self, content: bytes) -> LawDocument:
        """
        Decode the header of one e-Gov law document.

        Args:
            content: Raw bytes of the XML file (UTF-8 unless the XML
                declaration says otherwise)

        Returns:
            LawDocument; title is empty if the document has no <LawTitle>

        Raises:
            DocumentParseError: malformed XML, encoding error, root element is
                not <Law>, unknown era, or missing Era/Year/LawType
        """
        if not content.strip():
            raise DocumentParseError("Empty document")
        try:
            root = etree.fromstring(content, parser=self._xml_parser())
        except etree.XMLSyntaxError as e:
            raise DocumentParseError(f"XML syntax error: {e}") from e

        if root.tag != "Law":
            raise DocumentParseError(f"Root element is <{root.tag}>, expected <Law>")

        missing = [name for name in REQUIRED_ATTRIBUTES if not root.get(name)]
        if missing:
            raise DocumentParseError(
                f"<Law> is missing required attribute(s): {', '.join(missing)}"
            )

        era_str = root.get("Era").strip()
        try:
            era = Era(era_str)
        except ValueError:
            raise DocumentParseError(f"Unknown era: {era_str}") from None

        law_num_elem = root.find("LawNum")
        law_num = (
            self.extract_text_plain(law_num_elem) if law_num_elem is not None else ""
        )

        title_elem = root.find("LawBody/LawTitle")
        if title_elem is not None:
            title = self.extract_text_plain(title_elem)
        else:
            title = ""

        try:
            return LawDocument(
                era=era,
                year=self._int_attribute(root, "Year"),
                promulgate_month=self._int_attribute(root, "PromulgateMonth", "Month"),
                promulgate_day=self._int_attribute(root, "PromulgateDay", "Day"),
                law_type=root.get("LawType"),
                law_num=law_num,
                title=title,
            )
        except ValidationError as e:
            raise DocumentParseError(f"Invalid <Law> header: {e}") from e

    @staticmethod
    def _int_attribute(element, *names: str) -> Optional[int]:
        """Read the first present attribute among names as an integer."""
        for name in names:
            value = element.get(name)
            if value is None or not value.strip():
                continue
            try:
                return int(value)
            except ValueError:
                raise DocumentParseError(
                    f"Attribute {name}={value!r} is not a number"
                ) from None
        return None
