from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class ChangeKind(Enum):
    """Kind of change for one file; the value is the status glyph shown in the menu."""

    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    RENAMED = "R"
    COPIED = "C"
    UNTRACKED = "?"
    CONFLICT = "U"

    @property
    def glyph(self) -> str:
        return self.value


class Section(Enum):
    """A group of rows in the menu.

    Status mode uses conflicts/staged/unstaged, review mode unreviewed/reviewed.
    """

    CONFLICTS = "conflicts"
    STAGED = "staged"
    UNSTAGED = "unstaged"
    UNREVIEWED = "unreviewed"
    REVIEWED = "reviewed"

    @property
    def label(self) -> str:
        return _SECTION_LABELS[self]


_SECTION_LABELS = {
    Section.CONFLICTS: "Merge Conflicts",
    Section.STAGED: "Staged Changes",
    Section.UNSTAGED: "Changes",
    Section.UNREVIEWED: "Unreviewed",
    Section.REVIEWED: "Reviewed",
}


class Mode(Enum):
    """The two render modes of the menu."""

    STATUS = "status"
    REVIEW = "review"

    @property
    def title(self) -> str:
        return " Git Status " if self is Mode.STATUS else " Review "


@dataclass(frozen=True)
class Record:
    """One changed file as produced by a snapshot.

    Attributes:
        path: Repository-relative path, unique within a section.
        kind: The kind of change.
        additions: Added line count (review mode only).
        deletions: Deleted line count (review mode only).
        reviewed: Viewed state on the pull request (review mode only).
        review_id: Opaque pull request handle used for the remote mutation.
        original_path: Source path of a rename or copy.
    """

    path: str
    kind: ChangeKind
    additions: int | None = None
    deletions: int | None = None
    reviewed: bool | None = None
    review_id: str | None = None
    original_path: str | None = None


@dataclass(frozen=True)
class StatusSnapshot:
    conflicts: list[Record] = field(default_factory=list)
    staged: list[Record] = field(default_factory=list)
    unstaged: list[Record] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.conflicts or self.staged or self.unstaged)


@dataclass(frozen=True)
class Review:
    """Identity of the pull request open for the current branch.

    Attributes:
        id: GraphQL node id, the handle for viewed-state mutations.
        number: Pull request number; also the review cache scope.
        title: Pull request title.
        base_branch: Name of the base branch (without remote prefix).
    """

    id: str
    number: int
    title: str
    base_branch: str


@dataclass(frozen=True)
class StyleSpan:
    """A styled column range within one rendered row (0-based, end exclusive)."""

    start: int
    end: int
    style: str


@dataclass(frozen=True)
class CategoryRow:
    section: Section
    count: int

    @property
    def text(self) -> str:
        return f"{self.section.label} ({self.count})"


@dataclass(frozen=True)
class FileRow:
    section: Section
    index: int
    record: Record
    diff_key: str | None = None
    direct_key: str | None = None


@dataclass(frozen=True)
class SeparatorRow:
    pass


@dataclass(frozen=True)
class InfoRow:
    text: str


Row = Union[CategoryRow, FileRow, SeparatorRow, InfoRow]


@dataclass
class LineModel:
    """The ordered, line-addressable rows of one render.

    Lines are 1-based. `texts` and `spans` are indexed by `line - 1`.
    """

    rows: list[Row] = field(default_factory=list)
    texts: list[str] = field(default_factory=list)
    spans: list[list[StyleSpan]] = field(default_factory=list)
    selectable: frozenset[int] = frozenset()
    line_to_entry: dict[int, Row] = field(default_factory=dict)
    keybind_to_line_diff: dict[str, int] = field(default_factory=dict)
    keybind_to_line_direct: dict[str, int] = field(default_factory=dict)

    @property
    def line_count(self) -> int:
        return len(self.rows)

    def entry(self, line: int | None) -> Row | None:
        if line is None:
            return None
        return self.line_to_entry.get(line)

    def file_rows(self) -> list[tuple[int, FileRow]]:
        return [(line, row) for line, row in self.line_to_entry.items() if isinstance(row, FileRow)]

    def records_in(self, section: Section) -> list[Record]:
        return [row.record for _, row in sorted(self.file_rows()) if row.section is section]


@dataclass
class Session:
    """State of one open menu; the model is replaced wholesale on every rebuild."""

    mode: Mode
    token: int
    model: LineModel = field(default_factory=LineModel)
    cursor_line: int | None = None
    review: Review | None = None
    review_resolved: bool = False
