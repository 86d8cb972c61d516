# ABOUTME: Shared pytest fixtures for Lectern tests.
# ABOUTME: Provides sample EPUB and PDF files (valid and corrupt) built with ebooklib and pypdf.

from collections.abc import Callable
from pathlib import Path

import pytest
from ebooklib import epub
from pypdf import PdfWriter

from tests.fixtures.images import PNG_BYTES


def write_epub(
    path: Path,
    *,
    title: str | None = None,
    authors: tuple[str, ...] = (),
    identifier: str = "lectern-test-id",
    cover: bytes | None = None,
    **dc_fields: str,
) -> Path:
    """Write a minimal, structurally valid EPUB with the given metadata."""
    book = epub.EpubBook()
    book.set_identifier(identifier)
    if title is not None:
        book.set_title(title)
    book.set_language("en")
    for author in authors:
        book.add_author(author)
    for name, value in dc_fields.items():
        book.add_metadata("DC", name, value)
    if cover is not None:
        book.set_cover("cover.png", cover)

    chapter = epub.EpubHtml(title="Chapter 1", file_name="chap01.xhtml", lang="en")
    chapter.content = b"<html><body><h1>Chapter 1</h1><p>Content.</p></body></html>"
    book.add_item(chapter)

    book.toc = [epub.Link("chap01.xhtml", "Chapter 1", "chap01")]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", chapter]

    epub.write_epub(str(path), book)
    return path


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def epub_factory(tmp_path: Path) -> Callable[..., Path]:
    """Build EPUB files in tmp_path: epub_factory("name.epub", title=..., ...)."""

    def make(filename: str, **kwargs: object) -> Path:
        return write_epub(tmp_path / filename, **kwargs)

    return make


@pytest.fixture
def sample_epub(tmp_path: Path) -> Path:
    """Create a minimal valid EPUB file with known metadata."""
    return write_epub(
        tmp_path / "name_of_the_rose.epub",
        title="The Name of the Rose",
        authors=("Umberto Eco",),
        identifier="test-isbn-978-0-123456-47-2",
        publisher="Harcourt",
        description="A mystery set in a medieval monastery.",
    )


@pytest.fixture
def isbn_epub(tmp_path: Path) -> Path:
    """An EPUB whose only useful metadata is a title and an ISBN-13 identifier."""
    return write_epub(
        tmp_path / "isbn_book.epub",
        title="Test Book",
        identifier="urn:isbn:978-0-00-000000-2",
    )


@pytest.fixture
def cover_epub(tmp_path: Path) -> Path:
    """An EPUB carrying an embedded cover image."""
    return write_epub(
        tmp_path / "with_cover.epub",
        title="Covered",
        authors=("Cover Artist",),
        cover=PNG_BYTES,
    )


@pytest.fixture
def minimal_epub(tmp_path: Path) -> Path:
    """Create an EPUB with minimal metadata (only title)."""
    return write_epub(tmp_path / "minimal.epub", title="Untitled Book", identifier="minimal-id")


@pytest.fixture
def corrupt_epub(tmp_path: Path) -> Path:
    """Create a corrupt file that is not a valid EPUB."""
    filepath = tmp_path / "corrupt.epub"
    filepath.write_text("this is not a valid epub file")
    return filepath


@pytest.fixture
def sample_pdf(tmp_path: Path) -> Path:
    """A two-page PDF with document properties set."""
    writer = PdfWriter()
    writer.add_blank_page(width=72, height=72)
    writer.add_blank_page(width=72, height=72)
    writer.add_metadata(
        {
            "/Title": "Field Notes",
            "/Author": "Jane Doe",
            "/Subject": "Observations from the field.",
            "/Keywords": "nature, birds; travel",
        }
    )
    filepath = tmp_path / "field_notes.pdf"
    with open(filepath, "wb") as f:
        writer.write(f)
    return filepath


@pytest.fixture
def untitled_pdf(tmp_path: Path) -> Path:
    """A PDF with no document properties at all."""
    writer = PdfWriter()
    writer.add_blank_page(width=72, height=72)
    filepath = tmp_path / "book.pdf"
    with open(filepath, "wb") as f:
        writer.write(f)
    return filepath


@pytest.fixture
def corrupt_pdf(tmp_path: Path) -> Path:
    filepath = tmp_path / "broken.pdf"
    filepath.write_bytes(b"%PDF-1.4 truncated garbage")
    return filepath
