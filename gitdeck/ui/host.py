from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Callable
from typing import TYPE_CHECKING

from textual.app import SuspendNotSupported

from ..menu.models import StyleSpan
from .prompts import ConfirmScreen

if TYPE_CHECKING:  # For type checking only, not used at runtime
    from ..tui import GitDeckApp

logger = logging.getLogger(__name__)

# Columns taken by the panel border and padding
PANEL_CHROME = 4
MIN_PANEL_WIDTH = 40


class TextualHost:
    """Renders the menu into the app's panel and runs external programs for it."""

    def __init__(self, app: GitDeckApp) -> None:
        """Initialize with reference to the main app."""
        self.app = app

    @property
    def panel(self):
        return self.app._panel

    def width(self) -> int:
        size = self.panel.content_size.width
        if size > 0:
            return size
        estimate = int(self.app.size.width * self.app.cfg.width_ratio) - PANEL_CHROME
        return max(MIN_PANEL_WIDTH, estimate)

    def set_title(self, title: str) -> None:
        self.app._frame.border_title = title

    def set_rows(self, texts: list[str]) -> None:
        self.panel.set_rows(texts)

    def add_span(self, line: int, span: StyleSpan) -> None:
        self.panel.add_span(line, span)

    def set_cursor(self, line: int | None) -> None:
        self.panel.set_cursor(line)

    def open_file(self, path: str) -> None:
        self._run_external([*shlex.split(self.app.cfg.resolve_editor()), path])

    def open_diff(self, path: str, ref: str | None = None, cached: bool = False) -> None:
        self._run_external(self.app.git.difftool_argv(path, ref, cached))

    def _run_external(self, argv: list[str]) -> None:
        """Hand the terminal to `argv`, then rebuild the menu once it exits."""
        logger.debug(f"Running external command: {argv}")
        try:
            with self.app.suspend():
                subprocess.run(argv, cwd=self.app.git.cwd, check=False)
        except SuspendNotSupported:
            self.notify("Cannot run external programs in this terminal", "error")
            return
        except FileNotFoundError:
            self.notify(f"{argv[0]} not found", "error")
            return
        self.app.controller.rebuild()

    def confirm(self, message: str, on_answer: Callable[[bool], None]) -> None:
        self.app.push_screen(ConfirmScreen(message), callback=lambda answer: on_answer(bool(answer)))

    def notify(self, message: str, severity: str = "information") -> None:
        self.app.notify(message, title="gitdeck", severity=severity, timeout=3)  # type: ignore[arg-type]

    def close(self) -> None:
        self.app.exit()
