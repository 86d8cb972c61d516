# ABOUTME: Enrichment orchestrator: embedded extraction, provider lookups, merge, cover download, commit.
# ABOUTME: Runs once per imported file as the unit of retry, with a result cache checked at entry.

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from lectern.config import EnrichmentConfig
from lectern.formats.extractor import extract_embedded
from lectern.metadata.cache import ResultCache, file_identity
from lectern.metadata.covers import CoverGatherer, download_image
from lectern.metadata.googlebooks import GoogleBooksProvider
from lectern.metadata.http import HttpClient
from lectern.metadata.merge import merge
from lectern.metadata.openlibrary import OpenLibraryProvider
from lectern.metadata.provider import MetadataProvider, SearchTerms
from lectern.metadata.types import BookFormat, CoverCandidate, MetadataRecord, has_value

logger = logging.getLogger(__name__)


class EnrichmentState(str, Enum):
    """Stages of one enrichment run, in the order they can occur."""

    NOT_STARTED = "not_started"
    EXTRACTING_EMBEDDED = "extracting_embedded"
    QUERYING_PRIMARY = "querying_primary"
    QUERYING_SECONDARY = "querying_secondary"
    MERGING_FINAL = "merging_final"
    DOWNLOADING_COVER = "downloading_cover"
    COMMITTING = "committing"
    DONE = "done"


StateCallback = Callable[[EnrichmentState], None]

# Receives the final record and the cover options (None when the options were
# not gathered on this run). Returns False if the target no longer exists.
CommitFn = Callable[[MetadataRecord, list[CoverCandidate] | None], bool]


@dataclass
class EnrichmentOutcome:
    """Result of one orchestration run."""

    record: MetadataRecord
    covers: list[CoverCandidate] | None = None
    states: list[EnrichmentState] = field(default_factory=list)
    from_cache: bool = False
    committed: bool = False


class _StateTrace:
    def __init__(self, label: str, on_state: StateCallback | None) -> None:
        self._label = label
        self._on_state = on_state
        self.states: list[EnrichmentState] = []

    def enter(self, state: EnrichmentState) -> None:
        self.states.append(state)
        logger.debug("%s: %s", self._label, state.value)
        if self._on_state is not None:
            self._on_state(state)


def needs_secondary(record: MetadataRecord) -> bool:
    """Whether the secondary provider could still add a cover URL or description."""
    return not has_value(record.cover_image_url) or not has_value(record.description)


class Enricher:
    """Turns a bare book file into a merged MetadataRecord plus cover options.

    Embedded data is the base and wins every field it has; the primary
    provider fills gaps next, and the secondary provider is only consulted
    while the cover URL or description is still missing. Network failures
    never escape: the worst outcome is a record holding the filename title.
    """

    def __init__(
        self,
        primary: MetadataProvider,
        secondary: MetadataProvider,
        http_client: HttpClient,
        *,
        cache: ResultCache | None = None,
        gatherer: CoverGatherer | None = None,
        cache_by_content: bool = False,
    ) -> None:
        self._primary = primary
        self._secondary = secondary
        self._http = http_client
        self._cache = cache if cache is not None else ResultCache()
        self._gatherer = gatherer or CoverGatherer([primary, secondary], http_client)
        self._cache_by_content = cache_by_content

    @property
    def cache(self) -> ResultCache:
        return self._cache

    async def fetch_metadata(
        self, path: Path, fmt: BookFormat, *, refresh: bool = False
    ) -> MetadataRecord:
        """Return the enriched record for a file, served from cache when possible."""
        outcome = await self.enrich(path, fmt, refresh=refresh, with_covers=False)
        return outcome.record

    async def fetch_cover_options(
        self,
        title: str | None = None,
        author: str | None = None,
        isbn: str | None = None,
    ) -> list[CoverCandidate]:
        """Gather cover candidates with loaded thumbnails from every provider."""
        return await self._gatherer.gather(title, author, isbn)

    async def download_full_cover(self, candidate: CoverCandidate) -> bytes | None:
        """Download the full-resolution image for a chosen candidate, or None on failure."""
        return await download_image(self._http, candidate.full_url)

    async def enrich(
        self,
        path: Path,
        fmt: BookFormat,
        commit: CommitFn | None = None,
        *,
        refresh: bool = False,
        with_covers: bool = True,
        on_state: StateCallback | None = None,
    ) -> EnrichmentOutcome:
        """Run the full pipeline for one file.

        ``refresh`` forces a cache miss without touching the cached entry.
        When ``with_covers`` is set, cover candidates are gathered in
        parallel with the provider lookups, seeded by the embedded metadata.
        ``commit`` is called once with the final record. Without one the run
        still passes through COMMITTING but nothing is written and
        ``committed`` is False. Cancelling the calling task cancels every
        request still in flight.
        """
        trace = _StateTrace(path.name, on_state)
        trace.enter(EnrichmentState.NOT_STARTED)

        key = self._cache_key(path)
        cached = None if refresh or key is None else self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            committed = self._commit(commit, cached, None, trace)
            trace.enter(EnrichmentState.DONE)
            return EnrichmentOutcome(
                record=cached, states=trace.states, from_cache=True, committed=committed
            )

        trace.enter(EnrichmentState.EXTRACTING_EMBEDDED)
        embedded = extract_embedded(path, fmt)

        covers: list[CoverCandidate] | None = None
        async with asyncio.TaskGroup() as tg:
            covers_task = None
            if with_covers:
                covers_task = tg.create_task(
                    self._gatherer.gather(embedded.title, embedded.first_author, embedded.isbn)
                )
            record = await self._resolve(embedded, trace)
        if covers_task is not None:
            covers = covers_task.result()

        if key is not None:
            self._cache.put(key, record)

        committed = self._commit(commit, record, covers, trace)
        trace.enter(EnrichmentState.DONE)
        logger.info(
            "Enriched %s: title=%r cover=%s options=%s",
            path.name,
            record.title,
            "yes" if record.has_cover else "no",
            len(covers) if covers is not None else "-",
        )
        return EnrichmentOutcome(
            record=record, covers=covers, states=trace.states, committed=committed
        )

    async def _resolve(self, embedded: MetadataRecord, trace: _StateTrace) -> MetadataRecord:
        trace.enter(EnrichmentState.QUERYING_PRIMARY)
        terms = SearchTerms.from_record(embedded)
        primary = await self._primary.search(terms.title, terms.author, terms.isbn)
        if primary is None:
            logger.debug("%s: no match for %s", self._primary.name, terms)
        interim = merge(embedded, primary) if primary is not None else embedded

        secondary = None
        if needs_secondary(interim):
            trace.enter(EnrichmentState.QUERYING_SECONDARY)
            terms = SearchTerms.from_record(interim)
            secondary = await self._secondary.search(terms.title, terms.author, terms.isbn)
            if secondary is None:
                logger.debug("%s: no match for %s", self._secondary.name, terms)

        trace.enter(EnrichmentState.MERGING_FINAL)
        record = merge(interim, secondary) if secondary is not None else interim

        if record.cover_image_url and not record.has_cover:
            trace.enter(EnrichmentState.DOWNLOADING_COVER)
            data = await download_image(self._http, record.cover_image_url)
            if data is not None:
                record = record.with_cover_image(data)
            else:
                logger.info("Cover download failed for %s", record.cover_image_url)
        return record

    def _commit(
        self,
        commit: CommitFn | None,
        record: MetadataRecord,
        covers: list[CoverCandidate] | None,
        trace: _StateTrace,
    ) -> bool:
        trace.enter(EnrichmentState.COMMITTING)
        if commit is None:
            return False
        return commit(record, covers)

    def _cache_key(self, path: Path) -> str | None:
        try:
            return file_identity(path, by_content=self._cache_by_content)
        except OSError as exc:
            logger.warning("Cannot compute cache key for %s: %s", path, exc)
            return None


def build_enricher(config: EnrichmentConfig, http_client: HttpClient) -> Enricher:
    """Wire the default providers, cover gatherer, and cache from a config."""
    primary = GoogleBooksProvider(http_client, api_key=config.google_books_api_key)
    secondary = OpenLibraryProvider(http_client)
    gatherer = CoverGatherer(
        [primary, secondary],
        http_client,
        max_candidates=config.cover_candidate_limit,
        per_provider_limit=config.per_provider_cover_limit,
        thumbnail_concurrency=config.thumbnail_concurrency,
    )
    return Enricher(
        primary,
        secondary,
        http_client,
        gatherer=gatherer,
        cache_by_content=config.cache_by_content,
    )
