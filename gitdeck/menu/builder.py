from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from . import keybinds
from .formatter import file_icon, format_file_line, split_path
from .models import (
    CategoryRow,
    ChangeKind,
    FileRow,
    InfoRow,
    LineModel,
    Record,
    Review,
    Row,
    Section,
    SeparatorRow,
    StatusSnapshot,
    StyleSpan,
)
from .refresh import TargetSelector

NO_CHANGES_TEXT = "No changes to display"
NO_REVIEW_TEXT = "No open review for this branch"
LOADING_TEXT = "Loading…"
LOAD_FAILED_TEXT = "Failed to load review files"

MIN_NAME_WIDTH = 12


@dataclass
class BuildResult:
    model: LineModel
    target: TargetSelector = field(default_factory=TargetSelector)


class _LineModelWriter:
    """Accumulates rows and keeps the line-addressed maps in step with them."""

    def __init__(self, width: int, name_width: int, show_icons: bool) -> None:
        self.width = width
        self.name_width = name_width
        self.show_icons = show_icons
        self.model = LineModel()
        self._ordinal = 0
        self._selectable: set[int] = set()

    @property
    def next_line(self) -> int:
        return len(self.model.rows) + 1

    def _append(self, row: Row, text: str, spans: list[StyleSpan], selectable: bool) -> int:
        line = self.next_line
        self.model.rows.append(row)
        self.model.texts.append(text)
        self.model.spans.append(spans)
        if selectable:
            self._selectable.add(line)
            self.model.line_to_entry[line] = row
        return line

    def info(self, text: str, style: str = "info") -> None:
        self._append(InfoRow(text), text, [StyleSpan(0, len(text), style)] if text else [], False)

    def separator(self) -> None:
        self._append(SeparatorRow(), "", [], False)

    def category(self, section: Section, count: int) -> None:
        row = CategoryRow(section, count)
        text = row.text
        self._append(row, text, [StyleSpan(0, len(text), "category")], True)

    def files(self, section: Section, records: Iterable[Record]) -> None:
        for index, record in enumerate(records):
            self._ordinal += 1
            diff_key, direct_key = keybinds.assign(self._ordinal)
            name, _ = split_path(record.path)
            line = format_file_line(
                record.path,
                record.kind,
                self.width,
                self.name_width,
                keybind=diff_key,
                icon=file_icon(name) if self.show_icons else None,
            )
            row = FileRow(section, index, record, diff_key=diff_key, direct_key=direct_key)
            line_number = self._append(row, line.text, list(line.spans), True)
            if diff_key is not None:
                self.model.keybind_to_line_diff[diff_key] = line_number
            if direct_key is not None:
                self.model.keybind_to_line_direct[direct_key] = line_number

    def section(self, section: Section, records: list[Record]) -> None:
        self.category(section, len(records))
        self.files(section, records)

    def finish(self) -> LineModel:
        self.model.selectable = frozenset(self._selectable)
        return self.model


def name_column_width(records: Iterable[Record], width: int, show_icons: bool = False) -> int:
    """Width of the file name column: the longest name, capped to a third of the panel."""
    extra = 2 if show_icons else 0
    longest = max((len(split_path(r.path)[0]) + extra for r in records), default=0)
    cap = max(MIN_NAME_WIDTH, width // 3)
    return max(MIN_NAME_WIDTH, min(longest, cap))


def build_status_lines(
    snapshot: StatusSnapshot,
    width: int,
    show_icons: bool = False,
    target: TargetSelector | None = None,
) -> BuildResult:
    """Build the line model for the working tree.

    Conflicts are only listed when present; staged and unstaged categories are
    always shown. An entirely clean tree renders a single info row so the menu
    stays open for switching modes.

    Args:
        snapshot: Conflicts, staged and unstaged records in source order.
        width: Panel width in columns.
        show_icons: Whether to render file type icons.
        target: Cursor placement strategy to attach to the result.

    Returns:
        The built `LineModel` with its target selector.
    """
    target = target or TargetSelector()
    if snapshot.is_empty():
        writer = _LineModelWriter(width, MIN_NAME_WIDTH, show_icons)
        writer.info(NO_CHANGES_TEXT)
        return BuildResult(writer.finish(), target)

    everything = [*snapshot.conflicts, *snapshot.staged, *snapshot.unstaged]
    writer = _LineModelWriter(width, name_column_width(everything, width, show_icons), show_icons)
    if snapshot.conflicts:
        writer.section(Section.CONFLICTS, snapshot.conflicts)
        writer.separator()
    writer.section(Section.STAGED, snapshot.staged)
    writer.separator()
    writer.section(Section.UNSTAGED, snapshot.unstaged)
    return BuildResult(writer.finish(), target)


def review_change_kind(additions: int | None, deletions: int | None) -> ChangeKind:
    """Derive a change kind for a pull request file from its line counts."""
    added = additions or 0
    deleted = deletions or 0
    if deleted == 0 and added > 0:
        return ChangeKind.ADDED
    if added == 0 and deleted > 0:
        return ChangeKind.DELETED
    return ChangeKind.MODIFIED


def review_header(review: Review, records: list[Record]) -> str:
    done = sum(1 for r in records if r.reviewed)
    return f"#{review.number} {review.title}  ({done}/{len(records)} reviewed)"


def build_review_lines(
    review: Review | None,
    records: list[Record] | None,
    width: int,
    show_icons: bool = False,
    failed: bool = False,
    target: TargetSelector | None = None,
) -> BuildResult:
    """Build the line model for the files of an open pull request.

    Args:
        review: The pull request for the current branch, or None if there is none.
        records: Files with their viewed state, or None while nothing is cached yet.
        width: Panel width in columns.
        show_icons: Whether to render file type icons.
        failed: Whether the last fetch failed (only consulted when `records` is None).
        target: Cursor placement strategy to attach to the result.

    Returns:
        The built `LineModel` with its target selector.
    """
    target = target or TargetSelector()
    if review is None:
        writer = _LineModelWriter(width, MIN_NAME_WIDTH, show_icons)
        writer.info(NO_REVIEW_TEXT)
        return BuildResult(writer.finish(), target)
    if records is None:
        writer = _LineModelWriter(width, MIN_NAME_WIDTH, show_icons)
        writer.info(LOAD_FAILED_TEXT if failed else LOADING_TEXT)
        return BuildResult(writer.finish(), target)

    records = [
        Record(
            path=r.path,
            kind=review_change_kind(r.additions, r.deletions),
            additions=r.additions,
            deletions=r.deletions,
            reviewed=bool(r.reviewed),
            review_id=r.review_id,
        )
        for r in records
    ]
    unreviewed = [r for r in records if not r.reviewed]
    reviewed = [r for r in records if r.reviewed]

    writer = _LineModelWriter(width, name_column_width(records, width, show_icons), show_icons)
    writer.info(review_header(review, records), style="header")
    writer.separator()
    writer.section(Section.UNREVIEWED, unreviewed)
    writer.separator()
    writer.section(Section.REVIEWED, reviewed)
    return BuildResult(writer.finish(), target)
