# ABOUTME: Schema models and parsing functions for Google Books API JSON responses.
# ABOUTME: Converts volume entries into MetadataRecord and CoverCandidate instances.

import re

from pydantic import BaseModel, ConfigDict, Field

from lectern.metadata.types import (
    CoverCandidate,
    CoverSource,
    MetadataRecord,
    build_cover_label,
)

# Largest first. Used when choosing the main cover URL.
IMAGE_SIZE_PREFERENCE = (
    "extraLarge",
    "large",
    "medium",
    "small",
    "thumbnail",
    "smallThumbnail",
)
_THUMBNAIL_SIZES = ("thumbnail", "smallThumbnail")
_FULL_SIZE_PREFERENCE = ("extraLarge", "large", "medium", "thumbnail")

_ZOOM_RE = re.compile(r"([?&]zoom=)1(?=&|$)")
_YEAR_RE = re.compile(r"^\d{4}")


class IndustryIdentifier(BaseModel):
    """An ISBN or other identifier attached to a volume."""

    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    identifier: str | None = None


class VolumeInfo(BaseModel):
    """Google Books volumeInfo block. Every field is optional."""

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    subtitle: str | None = None
    authors: list[str] = Field(default_factory=list)
    publisher: str | None = None
    publishedDate: str | None = None
    description: str | None = None
    pageCount: int | None = None
    categories: list[str] = Field(default_factory=list)
    language: str | None = None
    averageRating: float | None = None
    ratingsCount: int | None = None
    industryIdentifiers: list[IndustryIdentifier] = Field(default_factory=list)
    imageLinks: dict[str, str] | None = None


class Volume(BaseModel):
    """A single search result."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    volumeInfo: VolumeInfo = Field(default_factory=VolumeInfo)


class VolumesResponse(BaseModel):
    """Google Books volumes search response."""

    model_config = ConfigDict(extra="ignore")

    totalItems: int = 0
    items: list[Volume] = Field(default_factory=list)


def _https(url: str) -> str:
    if url.startswith("http://"):
        return "https://" + url[len("http://"):]
    return url


def high_resolution_variant(url: str) -> str:
    """Rewrite a Google Books image URL to request the zoom=0 rendition."""
    return _ZOOM_RE.sub(r"\g<1>0", url)


def best_image_url(image_links: dict[str, str] | None) -> str | None:
    """Pick the largest listed cover image, rewritten to https."""
    if not image_links:
        return None
    for size in IMAGE_SIZE_PREFERENCE:
        url = image_links.get(size)
        if url:
            return _https(url)
    return None


def _isbns(info: VolumeInfo) -> tuple[str | None, str | None]:
    isbn_10 = None
    isbn_13 = None
    for entry in info.industryIdentifiers:
        if entry.type == "ISBN_13" and isbn_13 is None:
            isbn_13 = entry.identifier
        elif entry.type == "ISBN_10" and isbn_10 is None:
            isbn_10 = entry.identifier
    return isbn_10, isbn_13


def parse_volume(info: VolumeInfo) -> MetadataRecord:
    """Convert a volumeInfo block into a MetadataRecord."""
    isbn_10, isbn_13 = _isbns(info)
    return MetadataRecord(
        title=info.title,
        authors=tuple(info.authors),
        description=info.description,
        publisher=info.publisher,
        published_date=info.publishedDate,
        page_count=info.pageCount,
        isbn_10=isbn_10,
        isbn_13=isbn_13,
        categories=tuple(info.categories),
        language=info.language,
        cover_image_url=best_image_url(info.imageLinks),
        average_rating=info.averageRating,
        ratings_count=info.ratingsCount,
    )


def parse_first_volume(response: VolumesResponse) -> MetadataRecord | None:
    """Return the first result as a record, or None for an empty result set."""
    if not response.items:
        return None
    return parse_volume(response.items[0].volumeInfo)


def parse_cover_candidate(volume: Volume) -> CoverCandidate | None:
    """Build a cover candidate from a volume, or None if it has no usable images.

    The preview comes from the thumbnail sizes; the full-resolution URL is
    the largest listed size. When only a thumbnail is listed, its zoom
    parameter is bumped to request a larger rendition.
    """
    links = volume.volumeInfo.imageLinks or {}

    thumbnail_url = next((links[k] for k in _THUMBNAIL_SIZES if links.get(k)), None)
    full_key = next((k for k in _FULL_SIZE_PREFERENCE if links.get(k)), None)
    if thumbnail_url is None or full_key is None:
        return None

    full_url = _https(links[full_key])
    if full_key == "thumbnail":
        full_url = high_resolution_variant(full_url)
    thumbnail_url = _https(thumbnail_url)

    info = volume.volumeInfo
    year = None
    if info.publishedDate:
        match = _YEAR_RE.match(info.publishedDate)
        year = match.group(0) if match else None

    identity = f"googlebooks:{volume.id}" if volume.id else f"googlebooks:{thumbnail_url}"
    return CoverCandidate(
        identity=identity,
        source=CoverSource.GOOGLE_BOOKS,
        label=build_cover_label(CoverSource.GOOGLE_BOOKS, year, info.publisher),
        thumbnail_url=thumbnail_url,
        full_url=full_url,
    )
