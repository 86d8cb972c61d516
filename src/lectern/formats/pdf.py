# ABOUTME: PDF document-property extraction using pypdf.
# ABOUTME: Reads the info dictionary and page count; raises PdfReadError on unreadable files.

import re
from pathlib import Path

from pypdf import PdfReader

from lectern.metadata.types import MetadataRecord

_KEYWORD_SPLIT_RE = re.compile(r"[,;]")


class PdfReadError(Exception):
    """Raised when a PDF file cannot be read or parsed."""


def _clean(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _split_keywords(keywords: str | None) -> tuple[str, ...]:
    if not keywords:
        return ()
    return tuple(k.strip() for k in _KEYWORD_SPLIT_RE.split(keywords) if k.strip())


def read_pdf_metadata(path: Path) -> MetadataRecord:
    """Extract document properties from a PDF file.

    Title, author, subject (used as description), keywords (used as
    categories), and the page count.

    Raises:
        PdfReadError: If the file cannot be read or parsed.
    """
    if not path.exists():
        raise PdfReadError(f"File not found: {path}")

    try:
        reader = PdfReader(str(path))
        info = reader.metadata
        page_count = len(reader.pages)
    except Exception as exc:
        raise PdfReadError(f"Failed to read PDF: {path}: {exc}") from exc

    if info is None:
        return MetadataRecord(page_count=page_count)

    author = _clean(info.author)
    return MetadataRecord(
        title=_clean(info.title),
        authors=(author,) if author else (),
        description=_clean(info.subject),
        categories=_split_keywords(_clean(info.get("/Keywords"))),
        page_count=page_count,
    )
