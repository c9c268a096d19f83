from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..config import AppConfig
from ..errors import ActionFailed, BackendUnavailable, SnapshotFailed
from .builder import BuildResult, build_review_lines, build_status_lines
from .interfaces import ChangeSource, EditorHost, JobRunner, ReviewSource
from .memory import SessionMemory
from .models import CategoryRow, ChangeKind, FileRow, Mode, Review, Row, Section, Session
from .navigation import move_cursor
from .refresh import TargetSelector, capture_anchor, next_unreviewed_path
from .review_cache import ReviewFilesFetched, ReviewToggleFailed, ReviewToggleSucceeded, ReviewUpdater

logger = logging.getLogger(__name__)


class Action(Enum):
    OPEN_DIFF = "open_diff"
    OPEN_FILE = "open_file"
    TOGGLE_STAGE = "toggle_stage"
    STAGE = "stage"
    UNSTAGE = "unstage"
    DISCARD = "discard"
    RESOLVE_OURS = "resolve_ours"
    RESOLVE_THEIRS = "resolve_theirs"
    REVERT_TO_BASE = "revert_to_base"
    TOGGLE_REVIEWED = "toggle_reviewed"
    REFRESH = "refresh"
    CLOSE = "close"


@dataclass(frozen=True)
class Confirmed:
    """The operator answered yes to a confirmation prompt raised by session `token`."""

    token: int
    run: Callable[[], None]


class MenuController:
    """State machine behind the review menu.

    Owns the open `Session`, dispatches to the status or review builder,
    preserves the cursor across rebuilds and routes operator input to the
    change and review sources. Completion events from background work and
    confirmation answers re-enter through `dispatch`, which drops anything
    addressed to a session that is no longer open.
    """

    def __init__(
        self,
        host: EditorHost,
        changes: ChangeSource,
        reviews: ReviewSource,
        memory: SessionMemory,
        config: AppConfig,
        runner: JobRunner,
    ) -> None:
        self.host = host
        self.changes = changes
        self.reviews = reviews
        self.memory = memory
        self.config = config
        self.updater = ReviewUpdater(memory.review_cache, reviews, runner, self.dispatch)
        self.session: Session | None = None
        self._tokens = itertools.count(1)

    # ---------------- Lifecycle ----------------

    @property
    def is_open(self) -> bool:
        return self.session is not None

    @property
    def mode(self) -> Mode:
        return self.session.mode if self.session else self.memory.last_mode

    def open(self, mode: Mode | None = None) -> bool:
        """Open the menu in `mode`, or in the mode used last.

        Returns:
            True if the menu is open afterwards.
        """
        if self.session is not None:
            return True
        try:
            self.changes.ensure_repository()
        except BackendUnavailable as e:
            logger.error(f"Cannot open menu: {e}")
            self.host.notify(str(e), "error")
            return False
        self.session = Session(mode=mode or self.memory.last_mode, token=next(self._tokens))
        self.memory.last_mode = self.session.mode
        self.host.set_title(self.session.mode.title)
        return self.rebuild()

    def close(self) -> None:
        if self.session is None:
            return
        self.session = None
        self.host.close()

    # ---------------- Rebuild and cursor placement ----------------

    def rebuild(self, focus_path: str | None = None) -> bool:
        """Rebuild the line model from fresh data and place the cursor.

        Args:
            focus_path: File that should receive the cursor if still listed.

        Returns:
            False if the snapshot failed and the menu was closed.
        """
        session = self.session
        if session is None:
            return False
        anchor = capture_anchor(session.model, session.cursor_line, self.memory.last_selected_path)
        try:
            result = self._build(session, TargetSelector(focus_path=focus_path))
        except SnapshotFailed as e:
            logger.error(f"Snapshot failed, closing menu: {e}")
            self.host.notify(str(e), "error")
            self.close()
            return False
        session.model = result.model
        session.cursor_line = result.target.select(result.model, anchor)
        entry = session.model.entry(session.cursor_line)
        if isinstance(entry, FileRow):
            self.memory.last_selected_path = entry.record.path
        logger.debug(
            f"Rebuilt {session.mode.value} menu: {session.model.line_count} lines, cursor at {session.cursor_line}"
        )
        self._render()
        return True

    def _build(self, session: Session, target: TargetSelector) -> BuildResult:
        width = self.host.width()
        if session.mode is Mode.STATUS:
            return build_status_lines(self.changes.get_snapshot(), width, self.config.show_icons, target)
        if session.mode is Mode.REVIEW:
            review = self._current_review(session)
            if review is None:
                return build_review_lines(None, None, width, self.config.show_icons, target=target)
            fetched = self.updater.fetch_files(review, session.token)
            return build_review_lines(
                review, fetched.records, width, self.config.show_icons, failed=fetched.failed, target=target
            )
        raise ValueError(f"Unsupported mode: {session.mode!r}")

    def _current_review(self, session: Session) -> Review | None:
        if not session.review_resolved:
            session.review = self.reviews.get_current_review()
            session.review_resolved = True
        return session.review

    def _render(self) -> None:
        session = self.session
        if session is None:
            return
        model = session.model
        self.host.set_rows(list(model.texts))
        for line, spans in enumerate(model.spans, start=1):
            for span in spans:
                self.host.add_span(line, span)
        self.host.set_cursor(session.cursor_line)

    # ---------------- Input ----------------

    def handle_navigate(self, direction: int) -> None:
        session = self.session
        if session is None:
            return
        line = move_cursor(session.model, session.cursor_line, direction)
        if line is None:
            return
        self._select_line(line)

    def _select_line(self, line: int) -> None:
        session = self.session
        if session is None:
            return
        session.cursor_line = line
        entry = session.model.entry(line)
        if isinstance(entry, FileRow):
            self.memory.last_selected_path = entry.record.path
        self.host.set_cursor(line)

    def handle_mode_switch(self, mode: Mode) -> None:
        """Switch to `mode` and rebuild; a no-op when already in it."""
        session = self.session
        if session is None or session.mode is mode:
            return
        session.mode = mode
        self.memory.last_mode = mode
        self.host.set_title(mode.title)
        self.rebuild()

    def handle_keybind(self, code: str) -> bool:
        """Run the two-key code `code`: diff codes open the diff, direct codes the file.

        Returns:
            True if the code is bound to a row in the current model.
        """
        session = self.session
        if session is None:
            return False
        model = session.model
        if code in model.keybind_to_line_diff:
            line = model.keybind_to_line_diff[code]
            self._select_line(line)
            self.handle_action(Action.OPEN_DIFF, line)
            return True
        if code in model.keybind_to_line_direct:
            line = model.keybind_to_line_direct[code]
            self._select_line(line)
            self.handle_action(Action.OPEN_FILE, line)
            return True
        return False

    def handle_action(self, action: Action, line: int | None = None) -> None:
        """Run `action` against the row at `line` (the cursor line by default)."""
        session = self.session
        if session is None:
            return
        if line is None:
            line = session.cursor_line
        entry = session.model.entry(line)
        handlers: dict[Action, Callable[[], None]] = {
            Action.OPEN_DIFF: lambda: self._open_diff(entry),
            Action.OPEN_FILE: lambda: self._open_file(entry),
            Action.TOGGLE_STAGE: lambda: self._toggle_stage(entry),
            Action.STAGE: lambda: self._stage(entry),
            Action.UNSTAGE: lambda: self._unstage(entry),
            Action.DISCARD: lambda: self._discard(entry),
            Action.RESOLVE_OURS: lambda: self._resolve(entry, "ours"),
            Action.RESOLVE_THEIRS: lambda: self._resolve(entry, "theirs"),
            Action.REVERT_TO_BASE: lambda: self._revert_to_base(entry),
            Action.TOGGLE_REVIEWED: lambda: self._toggle_reviewed(entry, line),
            Action.REFRESH: self._refresh,
            Action.CLOSE: self.close,
        }
        self._guarded(handlers[action])

    def _guarded(self, run: Callable[[], None]) -> None:
        try:
            run()
        except ActionFailed as e:
            logger.error(f"Action failed: {e}")
            self.host.notify(str(e), "error")

    # ---------------- Completion events ----------------

    def dispatch(self, event: object) -> None:
        """Handle an event delivered by a background job or a prompt.

        Cache updates re-render whichever menu is open on the same review.
        Fetch errors and confirmations carry the token of the session that
        started them and are dropped once that session is gone.
        """
        session = self.session
        live = session is not None and getattr(event, "token", None) == session.token
        if isinstance(event, ReviewFilesFetched):
            if live and event.error:
                self.host.notify(f"Failed to load review files: {event.error}", "error")
            if self._showing_review(event.scope):
                self.rebuild()
            elif not live:
                logger.debug(f"Review files for #{event.scope} cached: menu closed")
        elif isinstance(event, ReviewToggleSucceeded):
            logger.debug(f"Viewed state of {event.path} confirmed for #{event.scope}")
        elif isinstance(event, ReviewToggleFailed):
            self.host.notify(f"Could not update viewed state of {event.path}: {event.error}", "error")
            if self._showing_review(event.scope):
                self.rebuild()
        elif isinstance(event, Confirmed):
            if not live:
                logger.debug("Discarding confirmation: menu closed")
                return
            self._guarded(event.run)
        else:
            logger.warning(f"Unhandled menu event: {event!r}")

    def _showing_review(self, scope: int) -> bool:
        session = self.session
        return (
            session is not None
            and session.mode is Mode.REVIEW
            and session.review is not None
            and session.review.number == scope
        )

    # ---------------- Action handlers ----------------

    def _confirm(self, message: str, run: Callable[[], None]) -> None:
        token = self.session.token if self.session else 0

        def on_answer(answer: bool) -> None:
            if answer:
                self.dispatch(Confirmed(token, run))

        self.host.confirm(message, on_answer)

    def _mutate(self, run: Callable[[], None]) -> None:
        run()
        self.rebuild()

    def _base_ref(self) -> str | None:
        review = self.session.review if self.session else None
        if review is None:
            return None
        return f"{self.reviews.remote}/{review.base_branch}"

    def _in_mode(self, mode: Mode) -> bool:
        return self.session is not None and self.session.mode is mode

    def _open_diff(self, entry: Row | None) -> None:
        if isinstance(entry, CategoryRow):
            if self._in_mode(Mode.STATUS):
                self._toggle_stage(entry)
            return
        if not isinstance(entry, FileRow):
            return
        record = entry.record
        if self._in_mode(Mode.REVIEW):
            self.host.open_diff(record.path, self._base_ref())
        elif entry.section is Section.STAGED:
            self.host.open_diff(record.path, "HEAD", cached=True)
        elif entry.section is Section.CONFLICTS or record.kind is ChangeKind.UNTRACKED:
            self.host.open_file(record.path)
        else:
            self.host.open_diff(record.path)

    def _open_file(self, entry: Row | None) -> None:
        if not isinstance(entry, FileRow):
            return
        if entry.record.kind is ChangeKind.DELETED:
            self.host.notify(f"{entry.record.path} has been deleted", "warning")
            return
        self.host.open_file(entry.record.path)

    def _paths(self, entry: Row | None) -> list[str]:
        if isinstance(entry, FileRow):
            return [entry.record.path]
        if isinstance(entry, CategoryRow) and self.session is not None:
            return [r.path for r in self.session.model.records_in(entry.section)]
        return []

    def _toggle_stage(self, entry: Row | None) -> None:
        if not self._in_mode(Mode.STATUS) or not isinstance(entry, (FileRow, CategoryRow)):
            return
        if entry.section is Section.STAGED:
            self._unstage(entry)
        else:
            self._stage(entry)

    def _stage(self, entry: Row | None) -> None:
        if not self._in_mode(Mode.STATUS) or not isinstance(entry, (FileRow, CategoryRow)):
            return
        if entry.section is Section.STAGED:
            self.host.notify("Already staged", "warning")
            return
        paths = self._paths(entry)
        if not paths:
            return
        if entry.section is Section.CONFLICTS:
            noun = paths[0] if len(paths) == 1 else f"{len(paths)} conflicted files"
            self._confirm(f"Mark {noun} as resolved?", lambda: self._mutate(lambda: self.changes.stage(paths)))
            return
        self._mutate(lambda: self.changes.stage(paths))

    def _unstage(self, entry: Row | None) -> None:
        if not self._in_mode(Mode.STATUS) or not isinstance(entry, (FileRow, CategoryRow)):
            return
        if entry.section is not Section.STAGED:
            self.host.notify("Nothing staged here", "warning")
            return
        paths = self._paths(entry)
        if paths:
            self._mutate(lambda: self.changes.unstage(paths))

    def _discard(self, entry: Row | None) -> None:
        if not self._in_mode(Mode.STATUS):
            return
        if isinstance(entry, CategoryRow):
            self.host.notify("Discard works on a single file", "warning")
            return
        if not isinstance(entry, FileRow):
            return
        path = entry.record.path
        if entry.section is Section.CONFLICTS:
            self.host.notify("Resolve conflicts with ours or theirs", "warning")
        elif entry.section is Section.STAGED:
            self._confirm(
                f"Discard all changes to {path}?",
                lambda: self._mutate(lambda: self.changes.discard(path, False)),
            )
        elif entry.record.kind is ChangeKind.UNTRACKED:
            self._confirm(f"Delete untracked file {path}?", lambda: self._mutate(lambda: self.changes.discard(path, True)))
        else:
            self._confirm(f"Discard unstaged changes to {path}?", lambda: self._mutate(lambda: self.changes.restore(path)))

    def _resolve(self, entry: Row | None, side: str) -> None:
        if not (self._in_mode(Mode.STATUS) and isinstance(entry, FileRow) and entry.section is Section.CONFLICTS):
            self.host.notify("Not a conflicted file", "warning")
            return
        path = entry.record.path
        self._confirm(
            f"Resolve {path} using {side}?",
            lambda: self._mutate(lambda: self.changes.resolve_conflict(path, side)),
        )

    def _revert_to_base(self, entry: Row | None) -> None:
        if not (self._in_mode(Mode.REVIEW) and isinstance(entry, FileRow)):
            return
        base_ref = self._base_ref()
        if base_ref is None:
            return
        path = entry.record.path

        def revert() -> None:
            self.changes.revert_to_base(path, base_ref)
            self.host.notify(f"Reverted {path} to {base_ref}")
            self.rebuild()

        if entry.record.kind in (ChangeKind.ADDED, ChangeKind.DELETED):
            verb = "Delete" if entry.record.kind is ChangeKind.ADDED else "Restore"
            self._confirm(f"{verb} {path} to match {base_ref}?", revert)
        else:
            revert()

    def _toggle_reviewed(self, entry: Row | None, line: int | None) -> None:
        session = self.session
        if session is None or session.mode is not Mode.REVIEW or session.review is None:
            return
        if not isinstance(entry, FileRow) or line is None:
            return
        focus = None if entry.record.reviewed else next_unreviewed_path(session.model, line)

        def render(_reviewed: bool) -> None:
            if focus is not None:
                self.memory.last_selected_path = focus
            self.rebuild(focus_path=focus)

        self.updater.toggle_reviewed(session.review, entry.record.path, session.token, render)

    def _refresh(self) -> None:
        session = self.session
        if session is None:
            return
        if session.mode is Mode.REVIEW:
            if session.review is not None:
                self.memory.review_cache.invalidate(session.review.number)
            session.review_resolved = False
        self.rebuild()

    # ---------------- Status line ----------------

    def counts_text(self) -> str:
        """Short summary of the rows in the current model, for the status line."""
        session = self.session
        if session is None:
            return ""
        model = session.model
        if session.mode is Mode.STATUS:
            conflicts = len(model.records_in(Section.CONFLICTS))
            parts = [f"{conflicts} conflicts"] if conflicts else []
            parts.append(f"{len(model.records_in(Section.STAGED))} staged")
            parts.append(f"{len(model.records_in(Section.UNSTAGED))} changes")
            return " • ".join(parts)
        reviewed = len(model.records_in(Section.REVIEWED))
        total = reviewed + len(model.records_in(Section.UNREVIEWED))
        return f"{reviewed}/{total} reviewed" if total else ""

    def review_scope(self) -> int | None:
        """Number of the pull request shown in review mode, if any."""
        session = self.session
        if session is None or session.mode is not Mode.REVIEW or session.review is None:
            return None
        return session.review.number
