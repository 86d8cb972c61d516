# ABOUTME: Format dispatch for embedded metadata extraction.
# ABOUTME: Never raises; any parse failure degrades to a filename-derived title.

import logging
from dataclasses import replace
from pathlib import Path

from lectern.formats.epub import EpubReadError, read_epub_metadata
from lectern.formats.pdf import PdfReadError, read_pdf_metadata
from lectern.metadata.types import BookFormat, MetadataRecord, has_value

logger = logging.getLogger(__name__)


def title_from_filename(path: Path) -> str:
    """Derive a display title from a file name: 'My_Great-Book.epub' -> 'My Great Book'."""
    return path.stem.replace("_", " ").replace("-", " ").strip()


def extract_embedded(path: Path, fmt: BookFormat) -> MetadataRecord:
    """Read the metadata stored inside a book file.

    EPUB descriptor fields and PDF document properties are parsed; MOBI
    files are left to the network lookup. Unreadable files yield a record
    with only the filename title, and a missing title is always filled from
    the filename.
    """
    fallback_title = title_from_filename(path)

    try:
        if fmt is BookFormat.EPUB:
            record = read_epub_metadata(path)
        elif fmt is BookFormat.PDF:
            record = read_pdf_metadata(path)
        else:
            record = MetadataRecord()
    except (EpubReadError, PdfReadError, OSError) as exc:
        logger.warning("Embedded metadata unreadable for %s: %s", path.name, exc)
        return MetadataRecord(title=fallback_title)

    if not has_value(record.title):
        record = replace(record, title=fallback_title)
    return record
