from __future__ import annotations

import posixpath
from dataclasses import dataclass, field

from .models import ChangeKind, StyleSpan

ELLIPSIS = "…"
KEYBIND_GUTTER = " " * 5
NAME_GAP = "  "
STATUS_PREFIX = "  "

# Nerd Font glyphs, only used when `show_icons` is enabled in the config
_ICONS_BY_EXTENSION: dict[str, str] = {
    "py": "\ue606",
    "js": "\ue74e",
    "jsx": "\ue7ba",
    "ts": "\ue628",
    "tsx": "\ue7ba",
    "lua": "\ue620",
    "go": "\ue626",
    "rs": "\ue7a8",
    "rb": "\ue739",
    "md": "\ue73e",
    "json": "\ue60b",
    "toml": "\ue615",
    "yaml": "\ue615",
    "yml": "\ue615",
    "html": "\ue736",
    "css": "\ue749",
    "scss": "\ue749",
    "sh": "\ue795",
}
_DEFAULT_ICON = "\uf15b"


@dataclass(frozen=True)
class FormattedLine:
    text: str
    spans: list[StyleSpan] = field(default_factory=list)


def split_path(path: str) -> tuple[str, str]:
    """Split a repository path into its file name and directory.

    Args:
        path: Repository-relative path using forward slashes.

    Returns:
        A `(name, directory)` tuple. The directory carries a trailing slash and
        is empty for files at the repository root.
    """
    trimmed = path.rstrip("/")
    name = posixpath.basename(trimmed)
    directory = posixpath.dirname(trimmed)
    return name, f"{directory}/" if directory else ""


def file_icon(name: str) -> str:
    """Return the icon glyph for a file name based on its extension."""
    _, _, ext = name.rpartition(".")
    return _ICONS_BY_EXTENSION.get(ext.lower(), _DEFAULT_ICON) if ext != name else _DEFAULT_ICON


def truncate_right(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    if width <= 1:
        return ELLIPSIS[: max(0, width)]
    return text[: width - 1] + ELLIPSIS


def truncate_left(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    if width < 2:
        return ""
    return ELLIPSIS + text[-(width - 1) :]


def format_file_line(
    path: str,
    kind: ChangeKind | str,
    total_width: int,
    max_name_width: int,
    keybind: str | None = None,
    icon: str | None = None,
) -> FormattedLine:
    """Render one file entry as a fixed-width row with style spans.

    Layout: ``(hh) <icon> name<pad>  dir/<pad>  M``. The name is padded to
    `max_name_width` and truncated with a trailing ellipsis when longer; the
    directory is truncated from the left when it does not fit the remaining
    width.

    Args:
        path: Repository-relative file path.
        kind: Change kind, or its one-character glyph.
        total_width: Exact width of the returned text.
        max_name_width: Width of the name column (icon included).
        keybind: Optional two-character code shown in the gutter.
        icon: Optional file type glyph placed before the name.

    Returns:
        A `FormattedLine` whose text is exactly `total_width` characters.
    """
    change = kind if isinstance(kind, ChangeKind) else ChangeKind(kind)
    name, directory = split_path(path)

    keybind_col = f"({keybind}) " if keybind else KEYBIND_GUTTER
    icon_col = f"{icon} " if icon else ""
    shown_name = truncate_right(name, max(1, max_name_width - len(icon_col)))
    name_col = (icon_col + shown_name).ljust(max_name_width)
    status_col = STATUS_PREFIX + change.glyph

    path_space = total_width - len(keybind_col) - len(name_col) - len(NAME_GAP) - len(status_col)
    shown_dir = truncate_left(directory, path_space)

    body = keybind_col + name_col + NAME_GAP + shown_dir.ljust(max(0, path_space))
    body_width = max(0, total_width - len(status_col))
    body = body[:body_width]
    text = body + status_col[max(0, len(status_col) - total_width) :]

    spans: list[StyleSpan] = []

    def add(start: int, end: int, style: str) -> None:
        end = min(end, body_width)
        if start < end:
            spans.append(StyleSpan(start, end, style))

    pos = 0
    if keybind:
        add(pos, pos + len(keybind) + 2, "keybind")
    pos += len(keybind_col)
    if icon_col:
        add(pos, pos + len(icon), "icon")
        pos += len(icon_col)
    add(pos, pos + len(shown_name), "filename")
    pos = len(keybind_col) + len(name_col) + len(NAME_GAP)
    add(pos, pos + len(shown_dir), "path")
    if total_width > 0:
        spans.append(StyleSpan(len(text) - 1, len(text), f"status.{change.name.lower()}"))

    return FormattedLine(text=text, spans=spans)
