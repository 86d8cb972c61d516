# ABOUTME: Schema models and parsing functions for Open Library API JSON responses.
# ABOUTME: Converts OL-specific data structures into MetadataRecord and CoverCandidate instances.

import re

from pydantic import BaseModel, ConfigDict, Field

from lectern.metadata.types import (
    CoverCandidate,
    CoverSource,
    MetadataRecord,
    build_cover_label,
)

_COVERS_BASE_URL = "https://covers.openlibrary.org/b"
_MAX_CATEGORIES = 5
_YEAR_RE = re.compile(r"\b(\d{4})\b")

# Size preference for the Books API "cover" map (largest first).
_BOOKS_API_COVER_SIZES = ("large", "medium", "small")


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore")


class NamedRef(_Model):
    """An author, publisher, or subject reference as returned by the Books API."""

    name: str | None = None


class BooksApiEntry(_Model):
    """One entry of a Books API (jscmd=data) response."""

    title: str | None = None
    authors: list[NamedRef] = Field(default_factory=list)
    publishers: list[NamedRef] = Field(default_factory=list)
    publish_date: str | None = None
    number_of_pages: int | None = None
    subjects: list[NamedRef] = Field(default_factory=list)
    identifiers: dict[str, list[str]] = Field(default_factory=dict)
    cover: dict[str, str] | None = None


class SearchDoc(_Model):
    """One document from the Search API."""

    key: str | None = None
    title: str | None = None
    author_name: list[str] = Field(default_factory=list)
    publisher: list[str] = Field(default_factory=list)
    first_publish_year: int | None = None
    subject: list[str] = Field(default_factory=list)
    number_of_pages_median: int | None = None
    cover_i: int | None = None
    isbn: list[str] = Field(default_factory=list)
    language: list[str] = Field(default_factory=list)
    edition_key: list[str] = Field(default_factory=list)


class SearchResponse(_Model):
    numFound: int = 0
    docs: list[SearchDoc] = Field(default_factory=list)


class TextValue(_Model):
    value: str | None = None


class Work(_Model):
    """Works endpoint response. Description is a string or a typed text block."""

    key: str | None = None
    title: str | None = None
    description: str | TextValue | None = None


class Edition(_Model):
    """Editions endpoint (/books/<key>.json) response."""

    key: str | None = None
    title: str | None = None
    covers: list[int] = Field(default_factory=list)
    publish_date: str | None = None
    publishers: list[str] = Field(default_factory=list)


def build_cover_url(isbn: str, size: str = "L") -> str:
    """Build an Open Library cover image URL for a given ISBN.

    Args:
        isbn: The ISBN to look up cover art for.
        size: Image size: "S" (small), "M" (medium), or "L" (large).
    """
    return f"{_COVERS_BASE_URL}/isbn/{isbn}-{size}.jpg"


def build_cover_id_url(cover_id: int, size: str = "L") -> str:
    """Build an Open Library cover image URL from a numeric cover id."""
    return f"{_COVERS_BASE_URL}/id/{cover_id}-{size}.jpg"


def _first_name(refs: list[NamedRef]) -> str | None:
    for ref in refs:
        if ref.name:
            return ref.name
    return None


def _first_of_length(values: list[str], length: int) -> str | None:
    for value in values:
        if len(value) == length:
            return value
    return None


def parse_books_api_entry(entry: BooksApiEntry) -> MetadataRecord:
    """Parse a Books API (bibkeys=ISBN:...) entry into a MetadataRecord."""
    cover_url = None
    if entry.cover:
        cover_url = next(
            (entry.cover[size] for size in _BOOKS_API_COVER_SIZES if entry.cover.get(size)),
            None,
        )

    isbn_10s = entry.identifiers.get("isbn_10", [])
    isbn_13s = entry.identifiers.get("isbn_13", [])

    return MetadataRecord(
        title=entry.title,
        authors=tuple(a.name for a in entry.authors if a.name),
        publisher=_first_name(entry.publishers),
        published_date=entry.publish_date,
        page_count=entry.number_of_pages,
        isbn_10=isbn_10s[0] if isbn_10s else None,
        isbn_13=isbn_13s[0] if isbn_13s else None,
        categories=tuple(s.name for s in entry.subjects if s.name)[:_MAX_CATEGORIES],
        cover_image_url=cover_url,
    )


def parse_search_doc(doc: SearchDoc) -> MetadataRecord:
    """Parse a Search API document into a MetadataRecord."""
    published = str(doc.first_publish_year) if doc.first_publish_year else None
    cover_url = build_cover_id_url(doc.cover_i) if doc.cover_i and doc.cover_i > 0 else None

    return MetadataRecord(
        title=doc.title,
        authors=tuple(doc.author_name),
        publisher=doc.publisher[0] if doc.publisher else None,
        published_date=published,
        page_count=doc.number_of_pages_median,
        isbn_10=_first_of_length(doc.isbn, 10),
        isbn_13=_first_of_length(doc.isbn, 13),
        categories=tuple(doc.subject[:_MAX_CATEGORIES]),
        language=doc.language[0] if doc.language else None,
        cover_image_url=cover_url,
    )


def parse_works_response(work: Work) -> str | None:
    """Extract the description from an Open Library Works response.

    Handles the OL quirk where description can be either a plain string
    or a dict with {"type": ..., "value": "actual text"}.
    """
    desc = work.description
    if desc is None:
        return None
    if isinstance(desc, str):
        return desc
    return desc.value


def _year(publish_date: str | None) -> str | None:
    if not publish_date:
        return None
    match = _YEAR_RE.search(publish_date)
    return match.group(1) if match else publish_date


def edition_cover_id(edition: Edition) -> int | None:
    """First valid cover id of an edition (OL uses -1 for removed covers)."""
    return next((cover_id for cover_id in edition.covers if cover_id > 0), None)


def parse_edition_cover(edition: Edition) -> CoverCandidate | None:
    """Build a cover candidate from an edition, or None if it has no cover."""
    cover_id = edition_cover_id(edition)
    if cover_id is None:
        return None
    publisher = edition.publishers[0] if edition.publishers else None
    return CoverCandidate(
        identity=f"openlibrary:cover:{cover_id}",
        source=CoverSource.OPEN_LIBRARY,
        label=build_cover_label(CoverSource.OPEN_LIBRARY, _year(edition.publish_date), publisher),
        thumbnail_url=build_cover_id_url(cover_id, "M"),
        full_url=build_cover_id_url(cover_id, "L"),
    )


def isbn_cover_candidate(isbn: str) -> CoverCandidate:
    """Direct ISBN-keyed cover candidate that needs no catalog search.

    ``default=false`` makes the CDN answer 404 instead of a blank
    placeholder when it has no cover for the ISBN.
    """
    return CoverCandidate(
        identity=f"openlibrary:isbn:{isbn}",
        source=CoverSource.OPEN_LIBRARY,
        label=f"{CoverSource.OPEN_LIBRARY.display_name} · ISBN",
        thumbnail_url=build_cover_url(isbn, "M") + "?default=false",
        full_url=build_cover_url(isbn, "L") + "?default=false",
    )
