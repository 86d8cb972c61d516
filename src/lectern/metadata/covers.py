# ABOUTME: Cover candidate gathering across providers with concurrent thumbnail fetching.
# ABOUTME: Deduplicates by thumbnail URL, downloads previews, and drops candidates that fail to load.

import asyncio
import io
import logging
from collections.abc import Iterable, Sequence

from PIL import Image, UnidentifiedImageError

from lectern.metadata.http import HttpClient, MetadataFetchError
from lectern.metadata.openlibrary_parser import isbn_cover_candidate
from lectern.metadata.provider import MetadataProvider, SearchTerms
from lectern.metadata.types import CoverCandidate

logger = logging.getLogger(__name__)

DEFAULT_MAX_CANDIDATES = 8
DEFAULT_PER_PROVIDER_LIMIT = 4
DEFAULT_THUMBNAIL_CONCURRENCY = 8


def is_valid_image(data: bytes) -> bool:
    """Whether the bytes decode as a complete raster image.

    A recognised header is not enough: truncated or corrupt bodies fail the
    full decode and are rejected.
    """
    if not data:
        return False
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
        # verify() leaves the image unusable, so decode from a fresh handle.
        with Image.open(io.BytesIO(data)) as image:
            image.load()
    except (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError):
        return False
    return True


async def download_image(http: HttpClient, url: str) -> bytes | None:
    """Fetch an image, returning None on network failure or a non-image body."""
    try:
        data = await http.get_bytes(url)
    except MetadataFetchError as exc:
        logger.debug("Image download failed for %s: %s", url, exc)
        return None
    if not is_valid_image(data):
        logger.debug("Discarding undecodable image from %s (%d bytes)", url, len(data))
        return None
    return data


def dedupe_candidates(candidates: Iterable[CoverCandidate]) -> list[CoverCandidate]:
    """Keep the first candidate for each thumbnail URL, preserving order."""
    seen: set[str] = set()
    unique: list[CoverCandidate] = []
    for candidate in candidates:
        if candidate.thumbnail_url in seen:
            continue
        seen.add(candidate.thumbnail_url)
        unique.append(candidate)
    return unique


class CoverGatherer:
    """Collects cover options for one book from every provider.

    Each provider contributes a few candidates from distinct editions. An
    ISBN-keyed candidate goes first when an ISBN is known. The combined list
    is deduplicated and capped before any thumbnail is downloaded; only
    candidates whose thumbnail loaded are returned.
    """

    def __init__(
        self,
        providers: Sequence[MetadataProvider],
        http_client: HttpClient,
        *,
        max_candidates: int = DEFAULT_MAX_CANDIDATES,
        per_provider_limit: int = DEFAULT_PER_PROVIDER_LIMIT,
        thumbnail_concurrency: int = DEFAULT_THUMBNAIL_CONCURRENCY,
    ) -> None:
        self._providers = list(providers)
        self._http = http_client
        self._max_candidates = max_candidates
        self._per_provider_limit = per_provider_limit
        self._thumbnail_concurrency = thumbnail_concurrency

    async def gather(
        self,
        title: str | None = None,
        author: str | None = None,
        isbn: str | None = None,
    ) -> list[CoverCandidate]:
        terms = SearchTerms.build(title, author, isbn)
        if terms.is_empty:
            return []

        per_provider = await asyncio.gather(
            *(
                provider.cover_candidates(
                    terms.title, terms.author, terms.isbn, limit=self._per_provider_limit
                )
                for provider in self._providers
            )
        )

        assembled: list[CoverCandidate] = []
        if terms.isbn:
            assembled.append(isbn_cover_candidate(terms.isbn))
        for candidates in per_provider:
            assembled.extend(candidates)

        unique = dedupe_candidates(assembled)[: self._max_candidates]
        if not unique:
            return []
        return await self.fetch_thumbnails(unique)

    async def fetch_thumbnails(
        self, candidates: Sequence[CoverCandidate]
    ) -> list[CoverCandidate]:
        """Download every thumbnail concurrently and keep only the ones that loaded."""
        semaphore = asyncio.Semaphore(self._thumbnail_concurrency)

        async def fetch(candidate: CoverCandidate) -> CoverCandidate | None:
            async with semaphore:
                data = await download_image(self._http, candidate.thumbnail_url)
            if data is None:
                return None
            return candidate.with_thumbnail(data)

        results = await asyncio.gather(*(fetch(c) for c in candidates))
        loaded = [c for c in results if c is not None]
        if len(loaded) < len(candidates):
            logger.debug(
                "Dropped %d of %d cover candidates with unloadable thumbnails",
                len(candidates) - len(loaded),
                len(candidates),
            )
        return loaded
