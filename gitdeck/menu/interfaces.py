"""Contracts between the menu state machine and its collaborators.

The menu only talks to the version-control backend, the review host and the
display surface through these protocols, so tests can substitute small fakes
and the Textual front end stays a thin adapter.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from .models import Record, Review, StatusSnapshot, StyleSpan


class ChangeSource(Protocol):
    """Local working tree operations. All calls are synchronous and batch their paths."""

    def ensure_repository(self) -> None: ...

    def get_snapshot(self) -> StatusSnapshot: ...

    def stage(self, paths: list[str]) -> None: ...

    def unstage(self, paths: list[str]) -> None: ...

    def discard(self, path: str, is_untracked: bool) -> None: ...

    def restore(self, path: str) -> None: ...

    def revert_to_base(self, path: str, base_ref: str) -> None: ...

    def resolve_conflict(self, path: str, side: str) -> None: ...


class ReviewSource(Protocol):
    """Pull request lookups and viewed-state mutations."""

    remote: str

    def get_current_review(self) -> Review | None: ...

    async def fetch_files_with_review_state(self, review: Review) -> list[Record]: ...

    async def set_reviewed(self, review_id: str, path: str, reviewed: bool) -> None: ...


class EditorHost(Protocol):
    """The display surface the menu renders into."""

    def width(self) -> int: ...

    def set_title(self, title: str) -> None: ...

    def set_rows(self, texts: list[str]) -> None: ...

    def add_span(self, line: int, span: StyleSpan) -> None: ...

    def set_cursor(self, line: int | None) -> None: ...

    def open_file(self, path: str) -> None: ...

    def open_diff(self, path: str, ref: str | None = None, cached: bool = False) -> None: ...

    def confirm(self, message: str, on_answer: Callable[[bool], None]) -> None: ...

    def notify(self, message: str, severity: str = "information") -> None: ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class JobOutcome:
    """Result of a background job: either `value` or `error` is meaningful."""

    value: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class JobRunner(Protocol):
    def submit(self, factory: Callable[[], Awaitable[Any]], on_done: Callable[[JobOutcome], None]) -> Any: ...
