# ABOUTME: MetadataProvider protocol defining the contract for catalog lookup services.
# ABOUTME: SearchTerms captures the ISBN-first query precedence shared by every provider.

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from lectern.metadata.types import CoverCandidate, CoverSource, MetadataRecord


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass(frozen=True)
class SearchTerms:
    """Query seed for a provider lookup.

    An ISBN, when present, is the whole query: it is the most precise key a
    catalog offers and is never combined with title or author. Without an
    ISBN, whichever of title and author are non-empty are used.
    """

    title: str | None = None
    author: str | None = None
    isbn: str | None = None

    @classmethod
    def build(
        cls,
        title: str | None = None,
        author: str | None = None,
        isbn: str | None = None,
    ) -> "SearchTerms":
        return cls(title=_clean(title), author=_clean(author), isbn=_clean(isbn))

    @classmethod
    def from_record(cls, record: MetadataRecord) -> "SearchTerms":
        return cls.build(record.title, record.first_author, record.isbn)

    @property
    def by_isbn(self) -> bool:
        return self.isbn is not None

    @property
    def is_empty(self) -> bool:
        """True when no query can be built at all."""
        return self.isbn is None and self.title is None and self.author is None


@runtime_checkable
class MetadataProvider(Protocol):
    """Protocol for catalog lookup services (Google Books, Open Library, ...).

    Implementations never raise for network or parse failures: ``search``
    returns None (not found) and ``cover_candidates`` an empty list.
    """

    @property
    def name(self) -> str: ...

    @property
    def source(self) -> CoverSource: ...

    async def search(
        self,
        title: str | None = None,
        author: str | None = None,
        isbn: str | None = None,
    ) -> MetadataRecord | None: ...

    async def cover_candidates(
        self,
        title: str | None = None,
        author: str | None = None,
        isbn: str | None = None,
        *,
        limit: int = 4,
    ) -> list[CoverCandidate]: ...
