from __future__ import annotations

from types import SimpleNamespace

from rich.text import Span

from gitdeck.menu.models import Mode, StyleSpan
from gitdeck.menu.review_cache import ReviewCache
from gitdeck.ui.host import TextualHost
from gitdeck.ui.panel import STYLES, render_rows
from gitdeck.ui.status import StatusManager


class FakeLabel:
    def __init__(self) -> None:
        self._text = ""

    def update(self, text: str) -> None:
        self._text = text


class FakeController:
    def __init__(self, mode: Mode, counts: str, scope: int | None = None) -> None:
        self.mode = mode
        self._counts = counts
        self._scope = scope
        self.memory = SimpleNamespace(review_cache=ReviewCache(ttl_seconds=120, clock=lambda: 100.0))

    def counts_text(self) -> str:
        return self._counts

    def review_scope(self) -> int | None:
        return self._scope


def _app(controller: FakeController, pending: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(
        controller=controller,
        _event_handler=SimpleNamespace(pending_chord=pending),
        _status=FakeLabel(),
    )


def test_status_text_for_status_mode_with_pending_chord() -> None:
    app = _app(FakeController(Mode.STATUS, "1 staged • 2 changes"), pending="h")
    manager = StatusManager(app)
    manager.update_status_label()
    assert app._status._text == "Git Status • 1 staged • 2 changes • h…"


def test_status_text_shows_review_fetch_state() -> None:
    controller = FakeController(Mode.REVIEW, "1/3 reviewed", scope=42)
    app = _app(controller)
    manager = StatusManager(app)
    cache = controller.memory.review_cache

    cache.begin_fetch(42)
    assert manager.status_text() == "Review • 1/3 reviewed • Refreshing…"

    cache.store(42, [])
    assert manager.status_text() == "Review • 1/3 reviewed • fetched just now"


def test_status_text_without_counts() -> None:
    app = _app(FakeController(Mode.REVIEW, ""))
    assert StatusManager(app).status_text() == "Review"


def test_render_rows_applies_spans_and_cursor() -> None:
    texts = ["Changes (1)", "hh M a.py"]
    spans = {1: [StyleSpan(0, 7, "category")], 2: [StyleSpan(0, 2, "keybind")]}
    text = render_rows(texts, spans, cursor=2)

    assert text.plain == "Changes (1)\nhh M a.py"
    assert Span(0, 7, STYLES["category"]) in text.spans
    # second row starts after "Changes (1)\n"
    assert Span(12, 14, STYLES["keybind"]) in text.spans
    assert Span(12, 21, "reverse") in text.spans


def test_render_rows_without_cursor() -> None:
    text = render_rows(["No changes"], {}, cursor=None)
    assert text.plain == "No changes"
    assert all(span.style != "reverse" for span in text.spans)


def test_host_notify_and_title() -> None:
    notices: list[tuple[str, dict]] = []
    app = SimpleNamespace(
        _frame=SimpleNamespace(border_title=""),
        notify=lambda message, **kw: notices.append((message, kw)),
    )
    host = TextualHost(app)  # type: ignore[arg-type]
    host.set_title(" Review ")
    host.notify("Reverted a.py", "warning")
    assert app._frame.border_title == " Review "
    assert notices == [("Reverted a.py", {"title": "gitdeck", "severity": "warning", "timeout": 3})]


def test_host_width_falls_back_to_app_size() -> None:
    app = SimpleNamespace(
        _panel=SimpleNamespace(content_size=SimpleNamespace(width=0)),
        size=SimpleNamespace(width=200),
        cfg=SimpleNamespace(width_ratio=0.5),
    )
    host = TextualHost(app)  # type: ignore[arg-type]
    assert host.width() == 96
    app._panel.content_size.width = 70
    assert host.width() == 70
    app.size.width = 50
    app._panel.content_size.width = 0
    assert host.width() == 40
