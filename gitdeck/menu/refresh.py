from __future__ import annotations

from dataclasses import dataclass

from .models import CategoryRow, FileRow, LineModel, Section


@dataclass(frozen=True)
class CursorAnchor:
    """Where the cursor was before a rebuild.

    Attributes:
        section: Section of the row under the cursor, if any.
        index: Position of the file row within its section.
        is_category: Whether the cursor was on a category row.
        path: Path of the file under the cursor, or the remembered last path.
    """

    section: Section | None = None
    index: int | None = None
    is_category: bool = False
    path: str | None = None


def capture_anchor(model: LineModel, cursor_line: int | None, last_selected_path: str | None) -> CursorAnchor:
    """Capture the cursor position of the pre-rebuild model."""
    entry = model.entry(cursor_line)
    if isinstance(entry, FileRow):
        return CursorAnchor(section=entry.section, index=entry.index, path=entry.record.path)
    if isinstance(entry, CategoryRow):
        return CursorAnchor(section=entry.section, is_category=True, path=last_selected_path)
    return CursorAnchor(path=last_selected_path)


def _line_of_category(model: LineModel, section: Section) -> int | None:
    for line, row in model.line_to_entry.items():
        if isinstance(row, CategoryRow) and row.section is section:
            return line
    return None


def _line_of_file(model: LineModel, section: Section, index: int) -> int | None:
    for line, row in model.line_to_entry.items():
        if isinstance(row, FileRow) and row.section is section and row.index == index:
            return line
    return None


def line_of_path(model: LineModel, path: str) -> int | None:
    for line in sorted(model.line_to_entry):
        row = model.line_to_entry[line]
        if isinstance(row, FileRow) and row.record.path == path:
            return line
    return None


@dataclass(frozen=True)
class TargetSelector:
    """Decides where the cursor lands after a rebuild.

    Resolution order, first match wins: an explicit `focus_path`, the category
    row of the anchored section, the file row at the anchored
    `(section, index)`, the anchored path anywhere, the first selectable line.
    Returns None when nothing is selectable.
    """

    focus_path: str | None = None

    def select(self, model: LineModel, anchor: CursorAnchor) -> int | None:
        if not model.selectable:
            return None
        if self.focus_path is not None:
            line = line_of_path(model, self.focus_path)
            if line is not None:
                return line
        if anchor.section is not None:
            if anchor.is_category:
                line = _line_of_category(model, anchor.section)
                if line is not None:
                    return line
            elif anchor.index is not None:
                line = _line_of_file(model, anchor.section, anchor.index)
                if line is not None:
                    return line
        if anchor.path is not None:
            line = line_of_path(model, anchor.path)
            if line is not None:
                return line
        return min(model.selectable)


def next_unreviewed_path(model: LineModel, line: int) -> str | None:
    """Pick the file that should receive the cursor once `line` is marked reviewed.

    The next unreviewed file after `line`, wrapping to the first unreviewed
    file; the file at `line` itself when it is the only unreviewed one.
    """
    unreviewed = sorted(
        (ln, row)
        for ln, row in model.file_rows()
        if row.section is Section.UNREVIEWED
    )
    current = model.entry(line)
    current_path = current.record.path if isinstance(current, FileRow) else None
    others = [(ln, row) for ln, row in unreviewed if ln != line]
    if not others:
        return current_path
    for ln, row in others:
        if ln > line:
            return row.record.path
    return others[0][1].record.path
