from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Optional, Tuple, TypeVar

from jobdash.models import Job, LogEntry, PageCursors

T = TypeVar("T")


@dataclass(frozen=True)
class CacheSnapshot(Generic[T]):
    items: Tuple[T, ...] = ()
    cursors: PageCursors = field(default_factory=PageCursors)


class CollectionCache(Generic[T]):
    """
    Last fetched set of one resource kind. The backend is the only source of
    truth: every fetch replaces the whole set, nothing is merged or patched.
    """

    def __init__(self) -> None:
        self._snapshot: CacheSnapshot[T] = CacheSnapshot()

    def replace(self, items, cursors: Optional[PageCursors] = None) -> CacheSnapshot[T]:
        self._snapshot = CacheSnapshot(items=tuple(items), cursors=cursors or PageCursors())
        return self._snapshot

    def current(self) -> CacheSnapshot[T]:
        return self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot.items)


def job_cache() -> CollectionCache[Job]:
    return CollectionCache()


def log_cache() -> CollectionCache[LogEntry]:
    return CollectionCache()
