from __future__ import annotations

import logging
import itertools
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..errors import ActionFailed
from .interfaces import JobOutcome, JobRunner, ReviewSource
from .models import ChangeKind, Record, Review

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 120


class CacheState(Enum):
    EMPTY = "empty"
    LOADING = "loading"
    FRESH = "fresh"
    STALE = "stale"


@dataclass
class CachedFile:
    """Mutable cache cell for one pull request file.

    Cells are only changed in place by the optimistic viewed-state toggle;
    everything rendered is a `Record` copied out of them.
    """

    path: str
    additions: int = 0
    deletions: int = 0
    reviewed: bool = False

    def to_record(self, review_id: str | None = None) -> Record:
        return Record(
            path=self.path,
            kind=ChangeKind.MODIFIED,
            additions=self.additions,
            deletions=self.deletions,
            reviewed=self.reviewed,
            review_id=review_id,
        )


@dataclass
class CacheEntry:
    files: list[CachedFile] | None
    fetched_at: float
    error: str | None = None


@dataclass(frozen=True)
class CacheLookup:
    state: CacheState
    files: list[CachedFile] | None = None
    error: str | None = None


class ReviewCache:
    """TTL cache of pull request files keyed by pull request number.

    Entries older than the TTL are stale: they keep being served while a
    refetch is in flight, but no longer count as fresh.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[int, CacheEntry] = {}
        self._loading: set[int] = set()

    def lookup(self, scope: int) -> CacheLookup:
        entry = self._entries.get(scope)
        files = entry.files if entry else None
        error = entry.error if entry else None
        if scope in self._loading:
            return CacheLookup(CacheState.LOADING, files, error)
        if entry is None:
            return CacheLookup(CacheState.EMPTY)
        if self._clock() - entry.fetched_at < self.ttl_seconds:
            return CacheLookup(CacheState.FRESH, files, error)
        return CacheLookup(CacheState.STALE, files, error)

    def is_loading(self, scope: int) -> bool:
        return scope in self._loading

    def begin_fetch(self, scope: int) -> bool:
        """Mark `scope` as loading. Returns False if a fetch is already in flight."""
        if scope in self._loading:
            return False
        self._loading.add(scope)
        return True

    def store(self, scope: int, files: list[CachedFile]) -> None:
        self._entries[scope] = CacheEntry(files=files, fetched_at=self._clock())
        self._loading.discard(scope)

    def store_error(self, scope: int, message: str) -> None:
        """Record a failed fetch, keeping previously cached files visible."""
        previous = self._entries.get(scope)
        self._entries[scope] = CacheEntry(
            files=previous.files if previous else None,
            fetched_at=self._clock(),
            error=message,
        )
        self._loading.discard(scope)

    def invalidate(self, scope: int) -> None:
        """Mark an entry stale without dropping its data."""
        entry = self._entries.get(scope)
        if entry is not None:
            entry.fetched_at = float("-inf")

    def find(self, scope: int, path: str) -> CachedFile | None:
        entry = self._entries.get(scope)
        if entry is None or entry.files is None:
            return None
        return next((f for f in entry.files if f.path == path), None)

    def age(self, scope: int) -> float | None:
        entry = self._entries.get(scope)
        if entry is None or entry.fetched_at == float("-inf"):
            return None
        return self._clock() - entry.fetched_at


@dataclass(frozen=True)
class ReviewFilesFetched:
    """A background fetch for `scope` finished; `error` is set when it failed."""

    token: int
    scope: int
    error: str | None = None


@dataclass(frozen=True)
class ReviewToggleSucceeded:
    token: int
    scope: int
    path: str
    reviewed: bool


@dataclass(frozen=True)
class ReviewToggleFailed:
    """The remote viewed-state mutation failed and the cache was rolled back."""

    token: int
    scope: int
    path: str
    reviewed: bool
    error: str


@dataclass
class FetchResult:
    records: list[Record] | None
    loading: bool = False
    failed: bool = False
    error: str | None = None


class ReviewUpdater:
    """Fetches pull request files through the cache and applies optimistic toggles.

    Completions are converted to event objects and handed to `post`; the
    receiver decides whether the menu that asked is still open.
    """

    def __init__(
        self,
        cache: ReviewCache,
        source: ReviewSource,
        runner: JobRunner,
        post: Callable[[object], None],
    ) -> None:
        self.cache = cache
        self.source = source
        self.runner = runner
        self.post = post
        # (scope, path) -> (sequence, state) of the newest toggle still being pushed
        self._pending: dict[tuple[int, str], tuple[int, bool]] = {}
        # (scope, path) -> last state the remote is known to hold, while toggles are pending
        self._confirmed: dict[tuple[int, str], bool] = {}
        self._sequence = itertools.count(1)

    def fetch_files(self, review: Review, token: int) -> FetchResult:
        """Return cached files for `review`, starting a background fetch when needed.

        Args:
            review: The pull request whose files are wanted.
            token: Identity of the requesting menu session, echoed in the event.

        Returns:
            A `FetchResult`. `records` is None only when nothing is cached yet.
        """
        scope = review.number
        found = self.cache.lookup(scope)
        records = [f.to_record(review.id) for f in found.files] if found.files is not None else None
        if found.state is CacheState.FRESH:
            return FetchResult(records, failed=records is None and found.error is not None, error=found.error)
        if found.state is CacheState.LOADING:
            return FetchResult(records, loading=True)
        self.cache.begin_fetch(scope)
        logger.debug(f"Fetching review files for #{scope} ({found.state.value})")
        self.runner.submit(
            lambda: self.source.fetch_files_with_review_state(review),
            lambda outcome: self._on_fetched(scope, token, outcome),
        )
        return FetchResult(records, loading=True)

    def _on_fetched(self, scope: int, token: int, outcome: JobOutcome) -> None:
        if not outcome.ok:
            message = str(outcome.error)
            logger.error(f"Failed to fetch review files for #{scope}: {message}")
            self.cache.store_error(scope, message)
            self.post(ReviewFilesFetched(token, scope, error=message))
            return
        cells = [
            CachedFile(
                path=r.path,
                additions=r.additions or 0,
                deletions=r.deletions or 0,
                reviewed=bool(r.reviewed),
            )
            for r in outcome.value
        ]
        for cell in cells:
            pending = self._pending.get((scope, cell.path))
            if pending is not None:
                cell.reviewed = pending[1]
        self.cache.store(scope, cells)
        self.post(ReviewFilesFetched(token, scope))

    def toggle_reviewed(self, review: Review, path: str, token: int, render: Callable[[bool], None]) -> bool:
        """Flip the viewed state of `path` immediately, then push it to the remote.

        The cache cell is changed in place and `render(new_state)` runs before
        the remote call is issued. A failed remote call posts
        `ReviewToggleFailed`; once no newer toggle of the same file is pending,
        the cell goes back to the last state the remote confirmed.

        Args:
            review: The pull request owning the file.
            path: File path within the pull request.
            token: Identity of the requesting menu session.
            render: Synchronous re-render hook receiving the new state.

        Returns:
            The new viewed state.

        Raises:
            ActionFailed: If the file is not in the cache.
        """
        scope = review.number
        cell = self.cache.find(scope, path)
        if cell is None:
            raise ActionFailed(f"{path} is not part of review #{scope}")
        previous = cell.reviewed
        cell.reviewed = not previous
        new_state = cell.reviewed
        seq = next(self._sequence)
        self._confirmed.setdefault((scope, path), previous)
        self._pending[(scope, path)] = (seq, new_state)

        render(new_state)

        self.runner.submit(
            lambda: self.source.set_reviewed(review.id, path, new_state),
            lambda outcome: self._on_toggled(scope, path, seq, new_state, token, outcome),
        )
        return new_state

    def _on_toggled(self, scope: int, path: str, seq: int, new_state: bool, token: int, outcome: JobOutcome) -> None:
        key = (scope, path)
        latest = key in self._pending and self._pending[key][0] == seq
        if outcome.ok and key in self._confirmed:
            self._confirmed[key] = new_state
        restored = self._confirmed.get(key, not new_state)
        if latest:
            del self._pending[key]
            self._confirmed.pop(key, None)
        if outcome.ok:
            logger.debug(f"Marked {path} in #{scope} as {'viewed' if new_state else 'not viewed'}")
            self.post(ReviewToggleSucceeded(token, scope, path, new_state))
            return
        message = str(outcome.error)
        logger.error(f"Failed to update viewed state of {path} in #{scope}: {message}")
        cell = self.cache.find(scope, path)
        if latest and cell is not None:
            # older toggles leave the cell to the newest one in flight
            cell.reviewed = restored
        current = cell.reviewed if cell is not None else restored
        self.post(ReviewToggleFailed(token, scope, path, current, message))
