# ABOUTME: In-process cache of completed enrichment results keyed by file identity.
# ABOUTME: Lock-guarded map with last-write-wins puts and no eviction for the process lifetime.

import hashlib
import threading
from pathlib import Path

from lectern.metadata.types import MetadataRecord

_CHUNK_SIZE = 65536


def content_digest(path: Path) -> str:
    """SHA-256 hex digest of a file, read in 64 KB chunks.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def file_identity(path: Path, *, by_content: bool = False) -> str:
    """Cache key for a book file.

    The file name by default. With ``by_content`` the SHA-256 of the file is
    used instead, so a file replaced in place is not served a stale result.
    """
    if by_content:
        return f"sha256:{content_digest(path)}"
    return path.name


class ResultCache:
    """Memoizes the last completed MetadataRecord per file identity.

    Entries are never evicted; cardinality is bounded by the number of
    imported files. Records are immutable, so readers can share them freely.
    """

    def __init__(self) -> None:
        self._entries: dict[str, MetadataRecord] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> MetadataRecord | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, record: MetadataRecord) -> None:
        with self._lock:
            self._entries[key] = record

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
