# ABOUTME: Open Library metadata provider implementation.
# ABOUTME: Looks up openlibrary.org by ISBN or title/author and gathers per-edition cover candidates.

import asyncio
import logging
from dataclasses import replace
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from lectern.metadata.http import HttpClient, MetadataFetchError
from lectern.metadata.openlibrary_parser import (
    BooksApiEntry,
    Edition,
    SearchDoc,
    SearchResponse,
    Work,
    parse_books_api_entry,
    parse_edition_cover,
    parse_search_doc,
    parse_works_response,
)
from lectern.metadata.provider import SearchTerms
from lectern.metadata.types import CoverCandidate, CoverSource, MetadataRecord

logger = logging.getLogger(__name__)

_OL_BASE = "https://openlibrary.org"
_MAX_EDITIONS = 8
_COVER_SEARCH_FIELDS = "key,title,edition_key,cover_edition_key"

ModelT = TypeVar("ModelT", bound=BaseModel)


class OpenLibraryProvider:
    """Metadata provider backed by the Open Library API.

    Supports ISBN-based lookup through the Books API (most precise) and
    title/author search (broader). Free and keyless. Uses dependency-injected
    HttpClient for testability.
    """

    def __init__(self, http_client: HttpClient) -> None:
        self._http = http_client

    @property
    def name(self) -> str:
        return "openlibrary"

    @property
    def source(self) -> CoverSource:
        return CoverSource.OPEN_LIBRARY

    async def search(
        self,
        title: str | None = None,
        author: str | None = None,
        isbn: str | None = None,
    ) -> MetadataRecord | None:
        """Return the best record for the query, or None if nothing was found."""
        terms = SearchTerms.build(title, author, isbn)
        if terms.is_empty:
            return None
        if terms.isbn:
            return await self.search_by_isbn(terms.isbn)
        return await self.search_by_title_author(terms.title, terms.author)

    async def search_by_isbn(self, isbn: str) -> MetadataRecord | None:
        """Look up a book by ISBN via the Books API.

        The response is a map keyed by ``"ISBN:<isbn>"``; a missing key means
        the catalog does not know the ISBN.
        """
        bibkey = f"ISBN:{isbn}"
        data = await self._get_json(
            f"{_OL_BASE}/api/books",
            {"bibkeys": bibkey, "format": "json", "jscmd": "data"},
        )
        if not isinstance(data, dict) or bibkey not in data:
            return None

        entry = self._validate(BooksApiEntry, data[bibkey], f"books api {bibkey}")
        if entry is None:
            return None
        return parse_books_api_entry(entry)

    async def search_by_title_author(
        self, title: str | None, author: str | None = None
    ) -> MetadataRecord | None:
        """Search Open Library by title and/or author and return the first hit.

        The hit is enriched with its work description when the work key is
        known; a failed follow-up keeps the plain search result.
        """
        params: dict[str, str] = {"limit": "1"}
        if title:
            params["title"] = title
        if author:
            params["author"] = author

        doc = await self._first_doc(params)
        if doc is None:
            return None

        record = parse_search_doc(doc)
        if doc.key:
            description = await self._work_description(doc.key)
            if description:
                record = replace(record, description=description)
        return record

    async def cover_candidates(
        self,
        title: str | None = None,
        author: str | None = None,
        isbn: str | None = None,
        *,
        limit: int = 4,
    ) -> list[CoverCandidate]:
        """Return cover candidates from distinct editions of the matching work.

        The work is found by title/author (or by ISBN when nothing else is
        known); its editions are fetched concurrently and each distinct cover
        id becomes one candidate.
        """
        terms = SearchTerms.build(title, author, isbn)
        params: dict[str, str] = {"limit": "1", "fields": _COVER_SEARCH_FIELDS}
        if terms.title or terms.author:
            if terms.title:
                params["title"] = terms.title
            if terms.author:
                params["author"] = terms.author
        elif terms.isbn:
            params["isbn"] = terms.isbn
        else:
            return []

        doc = await self._first_doc(params)
        if doc is None or not doc.edition_key:
            return []

        editions = await asyncio.gather(
            *(self._edition(key) for key in doc.edition_key[:_MAX_EDITIONS])
        )

        candidates: list[CoverCandidate] = []
        seen_identities: set[str] = set()
        for edition in editions:
            if edition is None:
                continue
            candidate = parse_edition_cover(edition)
            if candidate is None or candidate.identity in seen_identities:
                continue
            seen_identities.add(candidate.identity)
            candidates.append(candidate)
            if len(candidates) >= limit:
                break
        return candidates

    async def _first_doc(self, params: dict[str, str]) -> SearchDoc | None:
        data = await self._get_json(f"{_OL_BASE}/search.json", params)
        if data is None:
            return None
        response = self._validate(SearchResponse, data, "search")
        if response is None or not response.docs:
            return None
        return response.docs[0]

    async def _work_description(self, works_key: str) -> str | None:
        data = await self._get_json(f"{_OL_BASE}{works_key}.json")
        if data is None:
            return None
        work = self._validate(Work, data, works_key)
        return parse_works_response(work) if work is not None else None

    async def _edition(self, edition_key: str) -> Edition | None:
        data = await self._get_json(f"{_OL_BASE}/books/{edition_key}.json")
        if data is None:
            return None
        return self._validate(Edition, data, edition_key)

    async def _get_json(self, url: str, params: dict[str, str] | None = None) -> Any:
        try:
            return await self._http.get_json(url, params=params)
        except MetadataFetchError as exc:
            logger.warning("Open Library request failed for %s: %s", url, exc)
            return None

    @staticmethod
    def _validate(model: type[ModelT], data: Any, what: str) -> ModelT | None:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "Unexpected Open Library response for %s: %d validation error(s)",
                what,
                exc.error_count(),
            )
            return None
