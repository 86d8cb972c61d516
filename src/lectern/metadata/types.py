# ABOUTME: Core data structures for book metadata and cover image candidates.
# ABOUTME: MetadataRecord is the immutable interchange format between extraction, lookup, and merge.

from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path


class BookFormat(str, Enum):
    """File formats the library can import."""

    EPUB = "epub"
    PDF = "pdf"
    MOBI = "mobi"

    @property
    def extensions(self) -> tuple[str, ...]:
        return _FORMAT_EXTENSIONS[self]

    @classmethod
    def from_path(cls, path: Path) -> "BookFormat | None":
        """Detect the format from a file extension, or None if unsupported."""
        suffix = path.suffix.lower()
        for fmt, extensions in _FORMAT_EXTENSIONS.items():
            if suffix in extensions:
                return fmt
        return None


_FORMAT_EXTENSIONS: dict[BookFormat, tuple[str, ...]] = {
    BookFormat.EPUB: (".epub",),
    BookFormat.PDF: (".pdf",),
    BookFormat.MOBI: (".mobi", ".azw", ".azw3"),
}


class CoverSource(str, Enum):
    """Where a piece of metadata or a cover image came from."""

    EMBEDDED = "embedded"
    GOOGLE_BOOKS = "googlebooks"
    OPEN_LIBRARY = "openlibrary"

    @property
    def display_name(self) -> str:
        return _SOURCE_NAMES[self]


_SOURCE_NAMES: dict[CoverSource, str] = {
    CoverSource.EMBEDDED: "Embedded",
    CoverSource.GOOGLE_BOOKS: "Google Books",
    CoverSource.OPEN_LIBRARY: "Open Library",
}


@dataclass(frozen=True)
class MetadataRecord:
    """Bibliographic facts about one book, from a single source or merged.

    Every field is optional: an empty record is the normal state before
    enrichment. Records are never mutated after construction; use
    ``dataclasses.replace`` or the merge engine to derive new ones.
    """

    title: str | None = None
    authors: tuple[str, ...] = ()
    description: str | None = None
    publisher: str | None = None
    published_date: str | None = None
    page_count: int | None = None
    isbn_10: str | None = None
    isbn_13: str | None = None
    categories: tuple[str, ...] = ()
    language: str | None = None
    cover_image_url: str | None = None
    cover_image: bytes | None = None
    average_rating: float | None = None
    ratings_count: int | None = None

    @property
    def author(self) -> str:
        """Convenience property: joined author string for display."""
        return ", ".join(self.authors) if self.authors else ""

    @property
    def first_author(self) -> str | None:
        return self.authors[0] if self.authors else None

    @property
    def isbn(self) -> str | None:
        """Best ISBN for lookups: ISBN-13 when known, else ISBN-10."""
        return self.isbn_13 or self.isbn_10

    @property
    def display_title(self) -> str:
        return self.title or "Unknown Title"

    @property
    def has_cover(self) -> bool:
        """Whether cover image data is present."""
        return self.cover_image is not None and len(self.cover_image) > 0

    @property
    def is_empty(self) -> bool:
        return not any(has_value(getattr(self, f.name)) for f in fields(self))

    def with_cover_image(self, data: bytes | None) -> "MetadataRecord":
        return replace(self, cover_image=data)


def has_value(value: object) -> bool:
    """True when a metadata field carries usable data.

    None, blank strings, and empty collections all count as absent.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (tuple, list, bytes)):
        return len(value) > 0
    return True


@dataclass(frozen=True)
class CoverCandidate:
    """One selectable cover image tied to a specific catalog edition.

    ``thumbnail`` is only populated after the preview has been downloaded;
    candidates without it are never handed to callers.
    """

    identity: str
    source: CoverSource
    label: str
    thumbnail_url: str
    full_url: str
    thumbnail: bytes | None = None

    @property
    def has_thumbnail(self) -> bool:
        return self.thumbnail is not None and len(self.thumbnail) > 0

    def with_thumbnail(self, data: bytes) -> "CoverCandidate":
        return replace(self, thumbnail=data)


def build_cover_label(
    source: CoverSource, year: str | None = None, publisher: str | None = None
) -> str:
    """Build a provenance label like 'Open Library · 2003 · Penguin'."""
    parts = [source.display_name]
    if year:
        parts.append(year)
    if publisher:
        parts.append(publisher)
    return " · ".join(parts)
