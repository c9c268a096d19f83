from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .menu.keybinds import is_keybind_prefix

if TYPE_CHECKING:
    from .tui import GitDeckApp

logger = logging.getLogger(__name__)

# Keys that move the cursor when they do not start a two-key code
NAVIGATION_KEYS: dict[str, int] = {"j": 1, "down": 1, "k": -1, "up": -1}


class ChordBuffer:
    """Holds the first key of a two-key code until the second arrives or time runs out."""

    def __init__(self) -> None:
        self.pending: str | None = None

    def start(self, key: str) -> None:
        self.pending = key

    def complete(self, key: str) -> str:
        """Return the full code formed with `key` and clear the buffer."""
        code = f"{self.pending or ''}{key}"
        self.pending = None
        return code

    def clear(self) -> str | None:
        """Drop the buffered key, returning it."""
        key, self.pending = self.pending, None
        return key


class EventHandler:
    """Handles key events for the GitDeckApp.

    Two-key codes start with one of `h j k l ;` or `H J K L :`. A first key
    that could start a code bound in the current menu is held for
    `sequence_timeout_ms`; when no second key arrives in time it runs as a
    plain key, so `j` and `k` still navigate.
    """

    def __init__(self, app: GitDeckApp) -> None:
        """Initialize with reference to the main app."""
        self.app = app
        self.chords = ChordBuffer()
        self._timer: Any = None

    @property
    def pending_chord(self) -> str | None:
        return self.chords.pending

    def on_key(self, event) -> None:  # type: ignore[override]
        """Key handling: two-key codes first, then cursor movement."""
        character = getattr(event, "character", None)
        key = getattr(event, "key", None)
        if key is None or len(self.app.screen_stack) > 1:
            return
        if self.chords.pending is not None:
            self._cancel_timer()
            if not character:
                self.flush()
            elif self._handle_second_key(character, event):
                return
        if character and self._maybe_start_chord(character, event):
            return
        self._handle_navigation_key(character or key, event)

    def _handle_second_key(self, character: str, event) -> bool:
        """Try to complete the pending code; fall back to running the held key on its own.

        Returns:
            True if the event was consumed by a bound code.
        """
        first = self.chords.pending
        code = self.chords.complete(character)
        if self.app.controller.handle_keybind(code):
            logger.debug(f"Ran two-key code {code!r}")
            self._consume(event)
            self.app._update_status()
            return True
        if first is not None:
            self._run_single(first)
        self.app._update_status()
        return False

    def _maybe_start_chord(self, character: str, event) -> bool:
        if not is_keybind_prefix(character) or not self._has_codes_starting(character):
            return False
        self.chords.start(character)
        timeout = self.app.cfg.sequence_timeout_ms / 1000
        self._timer = self.app.set_timer(timeout, self.flush)
        self._consume(event)
        self.app._update_status()
        return True

    def _has_codes_starting(self, character: str) -> bool:
        session = self.app.controller.session
        if session is None:
            return False
        codes = [*session.model.keybind_to_line_diff, *session.model.keybind_to_line_direct]
        return any(code.startswith(character) for code in codes)

    def _handle_navigation_key(self, key: str, event) -> None:
        direction = NAVIGATION_KEYS.get(key)
        if direction is None:
            return
        self.app.controller.handle_navigate(direction)
        self._consume(event)

    def flush(self) -> None:
        """Run a held first key as a plain key once the chord timeout expires."""
        self._timer = None
        first = self.chords.clear()
        if first is not None:
            self._run_single(first)
        self.app._update_status()

    def _run_single(self, key: str) -> None:
        handlers: dict[str, Callable[[], None]] = {
            "j": lambda: self.app.controller.handle_navigate(1),
            "k": lambda: self.app.controller.handle_navigate(-1),
        }
        handlers.get(key, lambda: None)()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    @staticmethod
    def _consume(event) -> None:
        with contextlib.suppress(AttributeError):
            event.prevent_default()
        event.stop()
