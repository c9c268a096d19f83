from __future__ import annotations

from rich.text import Text
from textual.geometry import Region
from textual.widget import Widget

from ..menu.models import StyleSpan

# Style names emitted by the formatter and builder, mapped to rich styles
STYLES: dict[str, str] = {
    "keybind": "bold magenta",
    "icon": "cyan",
    "filename": "bold",
    "path": "dim",
    "category": "bold underline",
    "header": "bold cyan",
    "info": "italic dim",
    "status.added": "green",
    "status.modified": "yellow",
    "status.deleted": "red",
    "status.renamed": "blue",
    "status.copied": "blue",
    "status.untracked": "green",
    "status.conflict": "bold red",
}
CURSOR_STYLE = "reverse"


def render_rows(texts: list[str], spans: dict[int, list[StyleSpan]], cursor: int | None) -> Text:
    """Compose the styled panel body.

    Args:
        texts: One string per line.
        spans: Style spans keyed by 1-based line number.
        cursor: 1-based cursor line, highlighted as a whole.

    Returns:
        A rich `Text` with one line per row.
    """
    body = Text(no_wrap=True, overflow="crop")
    for line, text in enumerate(texts, start=1):
        row = Text(text, no_wrap=True)
        for span in spans.get(line, []):
            row.stylize(STYLES.get(span.style, ""), span.start, span.end)
        if line == cursor:
            row.stylize(CURSOR_STYLE)
        body.append_text(row)
        if line < len(texts):
            body.append("\n")
    return body


class MenuPanel(Widget):
    """Floating list of menu rows with a single highlighted cursor line."""

    DEFAULT_CSS = """
    MenuPanel {
        height: auto;
        width: 100%;
    }
    """

    def __init__(self, id: str | None = None) -> None:
        super().__init__(id=id)
        self.texts: list[str] = []
        self.spans: dict[int, list[StyleSpan]] = {}
        self.cursor: int | None = None

    def set_rows(self, texts: list[str]) -> None:
        self.texts = list(texts)
        self.spans = {}
        self.cursor = None
        self.refresh(layout=True)

    def add_span(self, line: int, span: StyleSpan) -> None:
        self.spans.setdefault(line, []).append(span)
        self.refresh()

    def set_cursor(self, line: int | None) -> None:
        self.cursor = line
        self.refresh()
        if line is not None and self.parent is not None:
            self.parent.scroll_to_region(Region(0, line - 1, max(1, self.size.width), 1), animate=False)

    def get_content_height(self, container, viewport, width: int) -> int:  # type: ignore[override]
        return max(1, len(self.texts))

    def render(self) -> Text:
        return render_rows(self.texts, self.spans, self.cursor)
