# ABOUTME: Google Books metadata provider implementation.
# ABOUTME: Searches the volumes API by ISBN or title/author and returns the best record or cover candidates.

import logging
from typing import Any

from pydantic import ValidationError

from lectern.metadata.googlebooks_parser import (
    VolumesResponse,
    parse_cover_candidate,
    parse_first_volume,
)
from lectern.metadata.http import HttpClient, MetadataFetchError
from lectern.metadata.provider import SearchTerms
from lectern.metadata.types import CoverCandidate, CoverSource, MetadataRecord

logger = logging.getLogger(__name__)

_VOLUMES_URL = "https://www.googleapis.com/books/v1/volumes"


def build_query(terms: SearchTerms) -> str | None:
    """Build the ``q`` parameter: ``isbn:<isbn>`` alone, or intitle/inauthor terms."""
    if terms.isbn:
        return f"isbn:{terms.isbn}"
    parts = []
    if terms.title:
        parts.append(f"intitle:{terms.title}")
    if terms.author:
        parts.append(f"inauthor:{terms.author}")
    if not parts:
        return None
    return " ".join(parts)


class GoogleBooksProvider:
    """Metadata provider backed by the Google Books volumes API.

    Works without an API key at a low daily quota; a key raises the quota.
    Uses dependency-injected HttpClient for testability.
    """

    def __init__(self, http_client: HttpClient, *, api_key: str | None = None) -> None:
        self._http = http_client
        self._api_key = api_key

    @property
    def name(self) -> str:
        return "googlebooks"

    @property
    def source(self) -> CoverSource:
        return CoverSource.GOOGLE_BOOKS

    async def search(
        self,
        title: str | None = None,
        author: str | None = None,
        isbn: str | None = None,
    ) -> MetadataRecord | None:
        """Return the first matching volume as a record, or None if not found."""
        response = await self._volumes(SearchTerms.build(title, author, isbn), max_results=1)
        if response is None:
            return None
        return parse_first_volume(response)

    async def cover_candidates(
        self,
        title: str | None = None,
        author: str | None = None,
        isbn: str | None = None,
        *,
        limit: int = 4,
    ) -> list[CoverCandidate]:
        """Return cover candidates from up to ``limit`` distinct volumes.

        Volumes sharing a thumbnail are collapsed to the first one.
        """
        response = await self._volumes(SearchTerms.build(title, author, isbn), max_results=limit)
        if response is None:
            return []

        candidates: list[CoverCandidate] = []
        seen_thumbnails: set[str] = set()
        for volume in response.items:
            candidate = parse_cover_candidate(volume)
            if candidate is None or candidate.thumbnail_url in seen_thumbnails:
                continue
            seen_thumbnails.add(candidate.thumbnail_url)
            candidates.append(candidate)
        return candidates[:limit]

    async def _volumes(self, terms: SearchTerms, max_results: int) -> VolumesResponse | None:
        """Run a volumes query. Returns None when no query is possible or on any failure."""
        query = build_query(terms)
        if query is None:
            return None

        params: dict[str, str] = {
            "q": query,
            "maxResults": str(max_results),
            "printType": "books",
        }
        if self._api_key:
            params["key"] = self._api_key

        try:
            data: Any = await self._http.get_json(_VOLUMES_URL, params=params)
        except MetadataFetchError as exc:
            logger.warning("Google Books search failed for %s: %s", query, exc)
            return None

        try:
            return VolumesResponse.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "Unexpected Google Books response for %s: %d validation error(s)",
                query,
                exc.error_count(),
            )
            return None
