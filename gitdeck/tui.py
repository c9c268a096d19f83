from __future__ import annotations

from typing import ClassVar

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.widgets import Label

from .config import AppConfig, load_config, resolve_token
from .event_handler import EventHandler
from .git import GitClient
from .github import GitHubClient, GitHubReviewSource
from .menu import Action, AsyncioJobRunner, MenuController, Mode, ReviewCache, SessionMemory
from .menu.interfaces import ReviewSource
from .ui import MenuPanel, StatusManager, TextualHost

STATUS_INTERVAL_SECONDS = 1.0


class GitDeckApp(App):
    """Textual TUI hosting the review menu as a floating panel."""

    CSS = """
    Screen { align: center middle; }
    #container { width: auto; height: auto; }
    #frame {
        border: round $accent;
        border-title-align: center;
        padding: 0 1;
        width: 60vw;
        height: 60vh;
    }
    #status { padding: 0 1; color: $text-muted; }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("q", "menu('close')", "Close"),
        Binding("escape", "menu('close')", "Close", show=False),
        Binding("enter", "menu('open_diff')", "Diff"),
        Binding("e", "menu('open_file')", "Edit"),
        Binding("minus", "menu('toggle_stage')", "Stage/Unstage"),
        Binding("s", "menu('stage')", "Stage", show=False),
        Binding("u", "menu('unstage')", "Unstage", show=False),
        Binding("x", "menu('discard')", "Discard"),
        Binding("O", "menu('resolve_ours')", "Ours", show=False),
        Binding("T", "menu('resolve_theirs')", "Theirs", show=False),
        Binding("R", "menu('revert_to_base')", "Revert", show=False),
        Binding("v", "menu('toggle_reviewed')", "Viewed"),
        Binding("space", "menu('toggle_reviewed')", "Viewed", show=False),
        Binding("r", "menu('refresh')", "Refresh"),
        Binding("tab", "switch_mode", "Mode", priority=True),
        Binding("1", "mode('status')", "Status", show=False),
        Binding("2", "mode('review')", "Review", show=False),
    ]

    def __init__(
        self,
        mode: Mode | None = None,
        cfg: AppConfig | None = None,
        git: GitClient | None = None,
        reviews: ReviewSource | None = None,
        memory: SessionMemory | None = None,
    ) -> None:
        """Initialize configuration, collaborators, widgets and the menu controller.

        Args:
            mode: Mode to open in; defaults to the configured `default_mode`.
            cfg: Configuration; loaded from disk when omitted.
            git: Working tree client.
            reviews: Pull request source; GitHub when omitted.
            memory: State shared by successive menu sessions.
        """
        super().__init__()
        self.cfg: AppConfig = cfg or load_config()
        self.git = git or GitClient()
        self.reviews = reviews or GitHubReviewSource(
            GitHubClient(resolve_token(self.cfg)), remote=self.cfg.remote, cwd=self.git.cwd
        )
        self.memory = memory or SessionMemory(
            last_mode=Mode(self.cfg.default_mode),
            review_cache=ReviewCache(self.cfg.review_cache_ttl_seconds),
        )
        self._start_mode = mode
        self.runner = AsyncioJobRunner()
        self._panel = MenuPanel(id="menu-panel")
        self._frame = VerticalScroll(self._panel, id="frame")
        self._frame.can_focus = False
        self._status = Label("", id="status")
        self.host = TextualHost(self)
        self.controller = MenuController(self.host, self.git, self.reviews, self.memory, self.cfg, self.runner)
        self._event_handler = EventHandler(self)
        self._status_manager = StatusManager(self)

    def compose(self) -> ComposeResult:
        with Vertical(id="container"):
            yield self._frame
            yield self._status

    def on_mount(self) -> None:
        """Size the panel from the configured ratios and open the menu."""
        self._frame.styles.width = f"{round(self.cfg.width_ratio * 100)}vw"
        self._frame.styles.height = f"{round(self.cfg.height_ratio * 100)}vh"
        if not self.controller.open(self._start_mode):
            self.exit(return_code=1)
            return
        self._update_status()
        self.set_interval(STATUS_INTERVAL_SECONDS, self._update_status)

    def _prompt_open(self) -> bool:
        return len(self.screen_stack) > 1

    def _update_status(self) -> None:
        if self.controller.is_open:
            self._status_manager.update_status_label()

    def action_menu(self, name: str) -> None:
        """Run a menu action against the cursor row."""
        if self._prompt_open():
            return
        self.controller.handle_action(Action(name))
        self._update_status()

    def action_mode(self, name: str) -> None:
        if self._prompt_open():
            return
        self.controller.handle_mode_switch(Mode(name))
        self._update_status()

    def action_switch_mode(self) -> None:
        """Flip between status and review mode."""
        target = Mode.REVIEW if self.controller.mode is Mode.STATUS else Mode.STATUS
        self.action_mode(target.value)

    def on_key(self, event) -> None:  # type: ignore[override]
        """Key handling: two-key codes and cursor movement."""
        self._event_handler.on_key(event)
