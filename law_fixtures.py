"""
Helpers for building small e-Gov style law XML trees in tests.
"""

from pathlib import Path
from typing import Optional

UNAMENDED = "000000000000000"


def law_xml(
    title: Optional[str] = "テスト法",
    era: str = "Reiwa",
    year: str = "3",
    law_type: str = "Act",
    num: str = "1",
    month: Optional[str] = "06",
    day: Optional[str] = "01",
    law_num: str = "令和三年法律第一号",
) -> str:
    """Return a minimal e-Gov law document."""
    attributes = f'Era="{era}" Year="{year}" Num="{num}" LawType="{law_type}" Lang="ja"'
    if month is not None:
        attributes += f' PromulgateMonth="{month}"'
    if day is not None:
        attributes += f' PromulgateDay="{day}"'
    title_elem = f'<LawTitle Kana="てすとほう">{title}</LawTitle>' if title is not None else ""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f"<Law {attributes}>\n"
        f"  <LawNum>{law_num}</LawNum>\n"
        "  <LawBody>\n"
        f"    {title_elem}\n"
        "    <MainProvision><Article Num=\"1\"><Paragraph Num=\"1\">"
        "<ParagraphSentence><Sentence>この法律は、テストのためのものである。</Sentence>"
        "</ParagraphSentence></Paragraph></Article></MainProvision>\n"
        "  </LawBody>\n"
        "</Law>\n"
    )


def write_law_file(
    root: Path,
    law_id: str,
    revision_date: str = "20210601",
    amendment_id: str = UNAMENDED,
    subdir: Optional[str] = None,
    content: Optional[str] = None,
    **xml_fields,
) -> Path:
    """
    Write one law file laid out like the e-Gov bulk download:
    <root>/<subdir>/<law_id>_<revision_date>_<amendment_id>.xml
    """
    name = f"{law_id}_{revision_date}_{amendment_id}"
    directory = root / (subdir if subdir is not None else name)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.xml"
    text = content if content is not None else law_xml(**xml_fields)
    path.write_bytes(text.encode("utf-8"))
    return path
