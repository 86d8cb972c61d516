# ABOUTME: EPUB metadata extraction using ebooklib.
# ABOUTME: Reads Dublin Core descriptor fields and the embedded cover; raises EpubReadError on malformed files.

import logging
import re
from pathlib import Path

import ebooklib
from ebooklib import epub

from lectern.metadata.types import MetadataRecord

logger = logging.getLogger(__name__)

_ISBN_PREFIX_RE = re.compile(r"^(urn:)?isbn:?", re.IGNORECASE)
_ISBN13_PREFIXES = ("978", "979")
_IMAGE_ITEM_TYPES = (ebooklib.ITEM_IMAGE, ebooklib.ITEM_COVER)


class EpubReadError(Exception):
    """Raised when an EPUB file cannot be read or parsed."""


def _get_metadata_value(book: epub.EpubBook, namespace: str, name: str) -> str | None:
    """Extract a single metadata value from an EpubBook, or None if missing."""
    values = book.get_metadata(namespace, name)
    if not values:
        return None
    # Metadata entries are tuples of (value, attributes)
    value = values[0][0]
    return str(value).strip() if value else None


def _get_metadata_values(book: epub.EpubBook, namespace: str, name: str) -> tuple[str, ...]:
    """Extract every non-empty value of a repeatable metadata field, in order."""
    entries = book.get_metadata(namespace, name)
    return tuple(str(entry[0]).strip() for entry in entries if entry[0] and str(entry[0]).strip())


def classify_isbn(identifier: str) -> tuple[str | None, str | None]:
    """Classify an identifier as (isbn_10, isbn_13).

    Hyphens, spaces, and a leading ``urn:isbn:`` are ignored. Thirteen digits
    with a Bookland prefix is ISBN-13; nine digits plus a digit or X check
    character is ISBN-10; anything else is not an ISBN.
    """
    cleaned = _ISBN_PREFIX_RE.sub("", identifier.strip())
    cleaned = cleaned.replace("-", "").replace(" ", "")
    if len(cleaned) == 13 and cleaned.isdigit() and cleaned.startswith(_ISBN13_PREFIXES):
        return None, cleaned
    if len(cleaned) == 10 and cleaned[:9].isdigit() and (
        cleaned[9].isdigit() or cleaned[9] in "xX"
    ):
        return cleaned.upper(), None
    return None, None


def _detect_isbns(identifiers: tuple[str, ...]) -> tuple[str | None, str | None]:
    """Find the first ISBN-10 and ISBN-13 among the identifiers."""
    isbn_10 = None
    isbn_13 = None
    for value in identifiers:
        found_10, found_13 = classify_isbn(value)
        isbn_10 = isbn_10 or found_10
        isbn_13 = isbn_13 or found_13
    return isbn_10, isbn_13


def _extract_cover_image(book: epub.EpubBook) -> bytes | None:
    """Extract cover image data from an EPUB, if present."""
    # Check for cover image in metadata
    cover_id = None
    meta_entries = book.get_metadata("OPF", "cover")
    if meta_entries:
        cover_id = meta_entries[0][1].get("content")

    if cover_id:
        cover_item = book.get_item_with_id(cover_id)
        if cover_item:
            return cover_item.get_content()

    # Fallback: look for image items with "cover" in the id or filename
    for item in book.get_items():
        item_id = item.get_id() or ""
        item_name = item.get_name() or ""
        if "cover" in item_id.lower() or "cover" in item_name.lower():
            if item.get_type() in _IMAGE_ITEM_TYPES:
                return item.get_content()

    return None


def read_epub_metadata(path: Path) -> MetadataRecord:
    """Extract metadata from an EPUB file.

    Args:
        path: Path to the EPUB file.

    Returns:
        MetadataRecord populated with the descriptor fields that are present.
        The title may be None; callers supply a fallback.

    Raises:
        EpubReadError: If the file cannot be read or parsed.
    """
    if not path.exists():
        raise EpubReadError(f"File not found: {path}")

    try:
        book = epub.read_epub(str(path), options={"ignore_ncx": True})
    except Exception as exc:
        raise EpubReadError(f"Failed to read EPUB: {path}: {exc}") from exc

    isbn_10, isbn_13 = _detect_isbns(_get_metadata_values(book, "DC", "identifier"))

    return MetadataRecord(
        title=_get_metadata_value(book, "DC", "title"),
        authors=_get_metadata_values(book, "DC", "creator"),
        description=_get_metadata_value(book, "DC", "description"),
        publisher=_get_metadata_value(book, "DC", "publisher"),
        published_date=_get_metadata_value(book, "DC", "date"),
        isbn_10=isbn_10,
        isbn_13=isbn_13,
        categories=_get_metadata_values(book, "DC", "subject"),
        language=_get_metadata_value(book, "DC", "language"),
        cover_image=_extract_cover_image(book),
    )
