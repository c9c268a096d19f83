from __future__ import annotations

from .models import LineModel


def _wrap(line: int, line_count: int) -> int:
    return (line - 1) % line_count + 1


def move_cursor(model: LineModel, line: int | None, direction: int) -> int | None:
    """Return the next selectable line in `direction`, wrapping around both ends.

    Args:
        model: The current line model.
        line: Current cursor line, or None when the cursor is unset.
        direction: +1 to move down, -1 to move up.

    Returns:
        The new cursor line. The cursor stays put when a full cycle finds no
        selectable line.
    """
    count = model.line_count
    if count == 0:
        return line
    start = line if line is not None else (0 if direction > 0 else count + 1)
    candidate = _wrap(start + direction, count)
    attempts = 0
    while candidate not in model.selectable and attempts < count:
        candidate = _wrap(candidate + direction, count)
        attempts += 1
    if candidate not in model.selectable:
        return line
    return candidate


def first_selectable(model: LineModel) -> int | None:
    return min(model.selectable) if model.selectable else None
