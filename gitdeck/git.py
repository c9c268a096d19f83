from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from .errors import ActionFailed, BackendUnavailable, SnapshotFailed
from .menu.models import ChangeKind, Record, StatusSnapshot

logger = logging.getLogger(__name__)

# Porcelain XY pairs that mark an unmerged path
CONFLICT_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})

_INDEX_KINDS = {
    "A": ChangeKind.ADDED,
    "M": ChangeKind.MODIFIED,
    "T": ChangeKind.MODIFIED,
    "D": ChangeKind.DELETED,
    "R": ChangeKind.RENAMED,
    "C": ChangeKind.COPIED,
}


def parse_porcelain(output: str) -> StatusSnapshot:
    """Parse `git status --porcelain=v1 -z` output into a snapshot.

    A path with both staged and unstaged changes yields one record in each
    section. Ignored entries are skipped.

    Args:
        output: Raw NUL-separated status output.

    Returns:
        The parsed `StatusSnapshot`.
    """
    snapshot = StatusSnapshot()
    tokens = output.split("\0")
    i = 0
    while i < len(tokens):
        entry = tokens[i]
        i += 1
        if len(entry) < 4:
            continue
        code, path = entry[:2], entry[3:]
        x, y = code[0], code[1]
        original = None
        if x in "RC":
            # the rename/copy source follows as its own token
            original = tokens[i] if i < len(tokens) else None
            i += 1
        if code == "!!":
            continue
        if code in CONFLICT_CODES:
            snapshot.conflicts.append(Record(path=path, kind=ChangeKind.CONFLICT))
            continue
        if code == "??":
            snapshot.unstaged.append(Record(path=path, kind=ChangeKind.UNTRACKED))
            continue
        if x in _INDEX_KINDS:
            snapshot.staged.append(Record(path=path, kind=_INDEX_KINDS[x], original_path=original))
        if y in ("M", "T"):
            snapshot.unstaged.append(Record(path=path, kind=ChangeKind.MODIFIED))
        elif y == "D":
            snapshot.unstaged.append(Record(path=path, kind=ChangeKind.DELETED))
    return snapshot


class GitClient:
    """Working tree operations over the `git` command line."""

    def __init__(self, cwd: str | Path | None = None, git: str = "git") -> None:
        self.cwd = str(cwd) if cwd is not None else None
        self.git = git

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Run a git subcommand in the repository.

        Args:
            *args: Arguments after `git`.
            check: Raise `ActionFailed` when git exits non-zero.

        Returns:
            The completed process with captured text output.

        Raises:
            BackendUnavailable: If the git executable cannot be found.
            ActionFailed: If `check` is set and git fails.
        """
        argv = [self.git, *args]
        logger.debug(f"Running {' '.join(argv)}")
        try:
            result = subprocess.run(argv, cwd=self.cwd, capture_output=True, text=True, check=False)
        except FileNotFoundError as e:
            raise BackendUnavailable(f"{self.git} is not installed or not found in PATH") from e
        if check and result.returncode != 0:
            message = (result.stderr or result.stdout).strip() or f"git {args[0]} exited with {result.returncode}"
            logger.error(f"git {args[0]} failed: {message}")
            raise ActionFailed(message)
        return result

    def ensure_repository(self) -> None:
        """Raise `BackendUnavailable` unless the working directory is inside a repository."""
        result = self._run("rev-parse", "--git-dir", check=False)
        if result.returncode != 0:
            raise BackendUnavailable("Not a git repository")

    def get_snapshot(self) -> StatusSnapshot:
        """Read the current working tree status.

        Raises:
            SnapshotFailed: If git cannot report the status.
        """
        try:
            result = self._run("status", "--porcelain=v1", "-z", "-u")
        except ActionFailed as e:
            raise SnapshotFailed(f"Failed to read git status: {e}") from e
        return parse_porcelain(result.stdout)

    def stage(self, paths: list[str]) -> None:
        if paths:
            self._run("add", "--", *paths)

    def unstage(self, paths: list[str]) -> None:
        if paths:
            self._run("restore", "--staged", "--", *paths)

    def discard(self, path: str, is_untracked: bool) -> None:
        """Drop every change to `path`: untracked files are deleted, tracked ones reset to HEAD."""
        if is_untracked:
            self._run("clean", "-f", "-d", "--", path)
        else:
            self._run("restore", "--source=HEAD", "--staged", "--worktree", "--", path)

    def restore(self, path: str) -> None:
        """Drop unstaged changes to `path`, keeping what is staged."""
        self._run("restore", "--", path)

    def revert_to_base(self, path: str, base_ref: str) -> None:
        """Make `path` match its content at `base_ref`, removing it if it did not exist there.

        Raises:
            ActionFailed: If git rejects the checkout or removal.
        """
        exists = self._run("cat-file", "-e", f"{base_ref}:{path}", check=False).returncode == 0
        if exists:
            self._run("restore", f"--source={base_ref}", "--staged", "--worktree", "--", path)
            return
        self._run("rm", "-f", "--ignore-unmatch", "--", path)
        self._run("clean", "-f", "--", path)

    def resolve_conflict(self, path: str, side: str) -> None:
        """Take `side` ("ours" or "theirs") of a conflicted file and stage the result."""
        if side not in ("ours", "theirs"):
            raise ValueError(f"Unknown conflict side: {side!r}")
        self._run("checkout", f"--{side}", "--", path)
        self._run("add", "--", path)

    def difftool_argv(self, path: str, ref: str | None = None, cached: bool = False) -> list[str]:
        """Command line showing the diff of `path`, against the index by default."""
        argv = [self.git, "difftool", "-y"]
        if cached:
            argv.append("--cached")
        if ref:
            argv.append(ref)
        argv.extend(["--", path])
        return argv
