# ABOUTME: In-memory library of imported books and the commit side of enrichment.
# ABOUTME: Imports start enrichment fire-and-forget; deletes cancel it; commits never touch removed items.

import asyncio
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

from lectern.core.enrichment import EnrichmentOutcome, Enricher
from lectern.formats.extractor import title_from_filename
from lectern.metadata.types import BookFormat, CoverCandidate, MetadataRecord, has_value

logger = logging.getLogger(__name__)

EDITABLE_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "author",
        "description",
        "publisher",
        "published_date",
        "page_count",
        "isbn",
        "categories",
        "language",
    }
)


class UnsupportedFormatError(Exception):
    """Raised when importing a file whose format the library cannot handle."""


class ItemNotFoundError(LookupError):
    """Raised when an operation names an item that is not in the library."""


@dataclass
class LibraryItem:
    """A book in the library with its enrichment fields flattened onto it.

    ``metadata_fetched`` stays False until an enrichment run has committed,
    whether or not any lookup succeeded. Fields listed in ``edited_fields``
    were set by the user and are left alone by later commits.
    """

    title: str
    file_path: Path
    file_format: BookFormat
    id: UUID = field(default_factory=uuid4)
    author: str = ""
    description: str | None = None
    publisher: str | None = None
    published_date: str | None = None
    page_count: int | None = None
    isbn: str | None = None
    categories: tuple[str, ...] = ()
    language: str | None = None
    average_rating: float | None = None
    ratings_count: int | None = None
    cover_image: bytes | None = None
    cover_options: list[CoverCandidate] = field(default_factory=list)
    edited_fields: set[str] = field(default_factory=set)
    metadata_fetched: bool = False


def _record_values(record: MetadataRecord) -> dict[str, Any]:
    return {
        "title": record.title,
        "author": record.author,
        "description": record.description,
        "publisher": record.publisher,
        "published_date": record.published_date,
        "page_count": record.page_count,
        "isbn": record.isbn,
        "categories": record.categories,
        "language": record.language,
        "average_rating": record.average_rating,
        "ratings_count": record.ratings_count,
        "cover_image": record.cover_image,
    }


class Library:
    """Owns LibraryItems and schedules one enrichment task per item.

    All methods must be called from the event loop thread; importing and
    refreshing schedule work with ``asyncio.create_task`` and return at once.
    """

    def __init__(self, enricher: Enricher, *, with_covers: bool = True) -> None:
        self._enricher = enricher
        self._with_covers = with_covers
        self._items: dict[UUID, LibraryItem] = {}
        self._tasks: dict[UUID, asyncio.Task[EnrichmentOutcome]] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[LibraryItem]:
        return iter(list(self._items.values()))

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def get(self, item_id: UUID) -> LibraryItem | None:
        return self._items.get(item_id)

    def task_for(self, item_id: UUID) -> "asyncio.Task[EnrichmentOutcome] | None":
        """The in-flight enrichment task for an item, if any."""
        return self._tasks.get(item_id)

    def import_file(self, path: Path) -> LibraryItem:
        """Add a book file and start enriching it in the background.

        The item is usable immediately with its filename title.

        Raises:
            UnsupportedFormatError: If the extension is not EPUB, PDF, or MOBI.
        """
        fmt = BookFormat.from_path(path)
        if fmt is None:
            raise UnsupportedFormatError(f"Unsupported file format: {path.suffix or path.name}")

        item = LibraryItem(title=title_from_filename(path), file_path=path, file_format=fmt)
        self._items[item.id] = item
        self._start(item, refresh=False)
        return item

    def refresh(self, item_id: UUID) -> "asyncio.Task[EnrichmentOutcome]":
        """Re-run the whole pipeline for an item, bypassing the result cache."""
        return self._start(self._require(item_id), refresh=True)

    def enrich_pending(self) -> list["asyncio.Task[EnrichmentOutcome]"]:
        """Re-run enrichment for every item that has not completed one yet."""
        return [
            self._start(item, refresh=True)
            for item in self._items.values()
            if not item.metadata_fetched and item.id not in self._tasks
        ]

    def remove(self, item_id: UUID) -> LibraryItem | None:
        """Delete an item and cancel its in-flight enrichment."""
        item = self._items.pop(item_id, None)
        task = self._tasks.get(item_id)
        if task is not None and not task.done():
            task.cancel()
        return item

    def edit(self, item_id: UUID, **changes: Any) -> LibraryItem:
        """Apply user edits. Edited fields are protected from later commits.

        Raises:
            ItemNotFoundError: If the item does not exist.
            ValueError: If a field is not user-editable.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")
        item = self._require(item_id)
        for name, value in changes.items():
            setattr(item, name, value)
        item.edited_fields.update(changes)
        return item

    async def select_cover(self, item_id: UUID, candidate: CoverCandidate) -> bool:
        """Download a candidate's full-resolution cover and make it the item's cover.

        Returns False, leaving the current cover in place, if the download
        fails or the item was removed meanwhile.
        """
        self._require(item_id)
        data = await self._enricher.download_full_cover(candidate)
        item = self._items.get(item_id)
        if data is None or item is None:
            return False
        item.cover_image = data
        item.edited_fields.add("cover_image")
        return True

    def remove_cover(self, item_id: UUID) -> None:
        item = self._require(item_id)
        item.cover_image = None
        item.edited_fields.add("cover_image")

    async def wait(self) -> None:
        """Wait until every enrichment currently in flight has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    def _require(self, item_id: UUID) -> LibraryItem:
        item = self._items.get(item_id)
        if item is None:
            raise ItemNotFoundError(f"No library item {item_id}")
        return item

    def _start(self, item: LibraryItem, *, refresh: bool) -> "asyncio.Task[EnrichmentOutcome]":
        previous = self._tasks.get(item.id)
        if previous is not None and not previous.done():
            previous.cancel()

        item.metadata_fetched = False
        task = asyncio.create_task(
            self._run(item.id, item.file_path, item.file_format, refresh),
            name=f"enrich-{item.id}",
        )
        self._tasks[item.id] = task
        task.add_done_callback(lambda t, item_id=item.id: self._task_done(item_id, t))
        return task

    async def _run(
        self, item_id: UUID, path: Path, fmt: BookFormat, refresh: bool
    ) -> EnrichmentOutcome:
        def commit(record: MetadataRecord, covers: list[CoverCandidate] | None) -> bool:
            return self._commit(item_id, record, covers)

        return await self._enricher.enrich(
            path, fmt, commit, refresh=refresh, with_covers=self._with_covers
        )

    def _task_done(self, item_id: UUID, task: "asyncio.Task[EnrichmentOutcome]") -> None:
        if self._tasks.get(item_id) is task:
            del self._tasks[item_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Enrichment task for %s failed", item_id, exc_info=task.exception())

    def _commit(
        self,
        item_id: UUID,
        record: MetadataRecord,
        covers: list[CoverCandidate] | None,
    ) -> bool:
        item = self._items.get(item_id)
        if item is None:
            logger.info("Item %s was removed before enrichment finished; result discarded", item_id)
            return False

        for name, value in _record_values(record).items():
            if name in item.edited_fields or not has_value(value):
                continue
            setattr(item, name, value)
        if covers is not None:
            item.cover_options = list(covers)
        item.metadata_fetched = True
        return True
