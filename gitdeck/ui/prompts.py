from __future__ import annotations

from typing import ClassVar

from rich.markup import escape
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Static


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no prompt for destructive actions. Dismisses with True only on an explicit yes."""

    CSS = """
    ConfirmScreen {
        align: center middle;
    }

    #confirm-container {
        width: 60;
        height: auto;
        background: $surface;
        border: thick $error;
        padding: 1 2;
    }

    #confirm-buttons {
        align: center middle;
        height: 1;
        margin-top: 1;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("y", "answer_yes", "Yes", show=False, priority=True),
        Binding("n", "answer_no", "No", show=False, priority=True),
        Binding("enter", "confirm", "Confirm", show=False, priority=True),
        Binding("escape", "answer_no", "Cancel", show=False, priority=True),
        Binding("q", "answer_no", "Cancel", show=False, priority=True),
        Binding("left", "select_yes", "Yes", show=False, priority=True),
        Binding("right", "select_no", "No", show=False, priority=True),
    ]

    def __init__(self, message: str) -> None:
        super().__init__()
        self.message = message
        # enter alone answers no until the operator moves to yes
        self.selected = "no"

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-container"):
            yield Static(f"[bold]{escape(self.message)}[/bold]")
            with Horizontal(id="confirm-buttons"):
                yield Static(id="yes-btn")
                yield Static("    ")
                yield Static(id="no-btn")
            yield Static("[dim]y yes  |  n / Esc no  |  Enter confirm selection[/dim]")

    def on_mount(self) -> None:
        self._update_selection()

    def _update_selection(self) -> None:
        yes_btn = self.query_one("#yes-btn", Static)
        no_btn = self.query_one("#no-btn", Static)
        if self.selected == "yes":
            yes_btn.update("[reverse bold red] YES [/]")
            no_btn.update("[dim] NO [/dim]")
        else:
            yes_btn.update("[dim] YES [/dim]")
            no_btn.update("[reverse bold green] NO [/]")

    def action_select_yes(self) -> None:
        self.selected = "yes"
        self._update_selection()

    def action_select_no(self) -> None:
        self.selected = "no"
        self._update_selection()

    def action_confirm(self) -> None:
        self.dismiss(self.selected == "yes")

    def action_answer_yes(self) -> None:
        self.dismiss(True)

    def action_answer_no(self) -> None:
        self.dismiss(False)
