from __future__ import annotations

from gitdeck.menu.builder import (
    LOAD_FAILED_TEXT,
    LOADING_TEXT,
    MIN_NAME_WIDTH,
    NO_CHANGES_TEXT,
    NO_REVIEW_TEXT,
    build_review_lines,
    build_status_lines,
    name_column_width,
    review_change_kind,
)
from gitdeck.menu.models import (
    CategoryRow,
    ChangeKind,
    FileRow,
    InfoRow,
    LineModel,
    Record,
    Review,
    Section,
    SeparatorRow,
    StatusSnapshot,
)
from gitdeck.menu.refresh import CursorAnchor

WIDTH = 60
REVIEW = Review(id="PR_kwDO", number=7, title="Add menu", base_branch="main")


def rec(path: str, kind: ChangeKind = ChangeKind.MODIFIED) -> Record:
    return Record(path=path, kind=kind)


def pr_file(path: str, additions: int = 1, deletions: int = 1, reviewed: bool = False) -> Record:
    return Record(path=path, kind=ChangeKind.MODIFIED, additions=additions, deletions=deletions, reviewed=reviewed)


def assert_invariants(model: LineModel) -> None:
    assert model.selectable == frozenset(model.line_to_entry)
    for line in model.selectable:
        assert isinstance(model.rows[line - 1], (CategoryRow, FileRow))
    assert len(set(model.keybind_to_line_diff.values())) == len(model.keybind_to_line_diff)
    assert len(set(model.keybind_to_line_direct.values())) == len(model.keybind_to_line_direct)
    assert len(model.keybind_to_line_diff) <= 25
    assert len(model.texts) == len(model.spans) == model.line_count


def test_clean_tree_renders_single_info_row() -> None:
    result = build_status_lines(StatusSnapshot(), WIDTH)
    model = result.model
    assert model.rows == [InfoRow(NO_CHANGES_TEXT)]
    assert model.texts == [NO_CHANGES_TEXT]
    assert model.selectable == frozenset()
    assert model.keybind_to_line_diff == {}
    assert result.target.select(model, CursorAnchor()) is None


def test_status_layout_staged_then_unstaged() -> None:
    snapshot = StatusSnapshot(
        staged=[rec("a.py", ChangeKind.ADDED)],
        unstaged=[rec("b.py"), rec("docs/c.md", ChangeKind.UNTRACKED)],
    )
    model = build_status_lines(snapshot, WIDTH).model
    assert [type(r) for r in model.rows] == [CategoryRow, FileRow, SeparatorRow, CategoryRow, FileRow, FileRow]
    assert model.texts[0] == "Staged Changes (1)"
    assert model.texts[3] == "Changes (2)"
    assert model.selectable == frozenset({1, 2, 4, 5, 6})
    assert model.keybind_to_line_diff == {"hh": 2, "jj": 5, "kk": 6}
    assert model.keybind_to_line_direct == {"HH": 2, "JJ": 5, "KK": 6}
    for line in (2, 5, 6):
        assert len(model.texts[line - 1]) == WIDTH
    assert model.texts[5].endswith("?")
    assert_invariants(model)


def test_file_rows_carry_their_section_index() -> None:
    snapshot = StatusSnapshot(unstaged=[rec("a.py"), rec("b.py"), rec("c.py")])
    model = build_status_lines(snapshot, WIDTH).model
    rows = [row for _, row in sorted(model.file_rows())]
    assert [(r.section, r.index) for r in rows] == [(Section.UNSTAGED, i) for i in range(3)]


def test_empty_staged_category_is_still_listed() -> None:
    model = build_status_lines(StatusSnapshot(unstaged=[rec("b.py")]), WIDTH).model
    assert model.texts[0] == "Staged Changes (0)"
    assert isinstance(model.rows[1], SeparatorRow)
    assert model.texts[2] == "Changes (1)"
    assert model.keybind_to_line_diff == {"hh": 4}


def test_conflicts_come_first_only_when_present() -> None:
    with_conflict = StatusSnapshot(conflicts=[rec("merge.py", ChangeKind.CONFLICT)], unstaged=[rec("b.py")])
    model = build_status_lines(with_conflict, WIDTH).model
    assert model.texts[0] == "Merge Conflicts (1)"
    assert isinstance(model.rows[2], SeparatorRow)
    assert model.texts[3] == "Staged Changes (0)"
    assert model.keybind_to_line_diff["hh"] == 2
    assert model.keybind_to_line_diff["jj"] == 7

    without = build_status_lines(StatusSnapshot(unstaged=[rec("b.py")]), WIDTH).model
    assert all(not (isinstance(r, CategoryRow) and r.section is Section.CONFLICTS) for r in without.rows)


def test_only_first_25_file_rows_get_keybinds() -> None:
    snapshot = StatusSnapshot(unstaged=[rec(f"file{i:02}.py") for i in range(30)])
    model = build_status_lines(snapshot, WIDTH).model
    rows = [row for _, row in sorted(model.file_rows())]
    assert len(rows) == 30
    assert all(r.diff_key is not None and r.direct_key is not None for r in rows[:25])
    assert all(r.diff_key is None and r.direct_key is None for r in rows[25:])
    assert len(model.keybind_to_line_diff) == len(model.keybind_to_line_direct) == 25
    assert_invariants(model)


def test_diff_and_direct_codes_share_the_ordinal() -> None:
    snapshot = StatusSnapshot(staged=[rec("a.py")], unstaged=[rec("b.py"), rec("c.py")])
    model = build_status_lines(snapshot, WIDTH).model
    for code, line in model.keybind_to_line_diff.items():
        row = model.line_to_entry[line]
        assert isinstance(row, FileRow)
        assert row.diff_key == code
        assert model.keybind_to_line_direct[row.direct_key] == line


def test_name_column_width_is_clamped() -> None:
    assert name_column_width([rec("a.py")], WIDTH) == MIN_NAME_WIDTH
    long = rec("x" * 50 + ".py")
    assert name_column_width([long], WIDTH) == WIDTH // 3
    assert name_column_width([rec("medium_name_file.py")], 120) == len("medium_name_file.py")


def test_review_without_pull_request() -> None:
    model = build_review_lines(None, None, WIDTH).model
    assert model.texts == [NO_REVIEW_TEXT]
    assert model.selectable == frozenset()


def test_review_loading_and_failed_placeholders() -> None:
    assert build_review_lines(REVIEW, None, WIDTH).model.texts == [LOADING_TEXT]
    assert build_review_lines(REVIEW, None, WIDTH, failed=True).model.texts == [LOAD_FAILED_TEXT]


def test_review_partitions_unreviewed_before_reviewed() -> None:
    records = [
        pr_file("src/a.py", reviewed=True),
        pr_file("src/b.py"),
        pr_file("src/c.py"),
    ]
    model = build_review_lines(REVIEW, records, WIDTH).model
    assert [type(r) for r in model.rows] == [
        InfoRow,
        SeparatorRow,
        CategoryRow,
        FileRow,
        FileRow,
        SeparatorRow,
        CategoryRow,
        FileRow,
    ]
    assert model.texts[0] == "#7 Add menu  (1/3 reviewed)"
    assert model.texts[2] == "Unreviewed (2)"
    assert model.texts[6] == "Reviewed (1)"
    assert [r.path for r in model.records_in(Section.UNREVIEWED)] == ["src/b.py", "src/c.py"]
    assert [r.path for r in model.records_in(Section.REVIEWED)] == ["src/a.py"]
    assert model.keybind_to_line_diff == {"hh": 4, "jj": 5, "kk": 8}
    assert_invariants(model)


def test_review_kinds_are_derived_from_line_counts() -> None:
    records = [
        pr_file("new.py", additions=10, deletions=0),
        pr_file("gone.py", additions=0, deletions=4),
        pr_file("edit.py", additions=2, deletions=3),
        pr_file("empty.py", additions=0, deletions=0),
    ]
    model = build_review_lines(REVIEW, records, WIDTH).model
    kinds = {r.path: r.kind for r in model.records_in(Section.UNREVIEWED)}
    assert kinds == {
        "new.py": ChangeKind.ADDED,
        "gone.py": ChangeKind.DELETED,
        "edit.py": ChangeKind.MODIFIED,
        "empty.py": ChangeKind.MODIFIED,
    }


def test_review_change_kind_handles_missing_counts() -> None:
    assert review_change_kind(None, None) is ChangeKind.MODIFIED
    assert review_change_kind(3, None) is ChangeKind.ADDED
    assert review_change_kind(None, 3) is ChangeKind.DELETED
