from __future__ import annotations


class GitDeckError(Exception):
    """Base class for errors surfaced to the operator."""


class BackendUnavailable(GitDeckError):
    """Raised when the working directory is not a repository or `git` is missing.

    Fatal to opening the menu; reported once and the menu does not open.
    """


class SnapshotFailed(GitDeckError):
    """Raised when the status snapshot or pull request lookup fails mid-session."""


class ActionFailed(GitDeckError):
    """Raised when a stage/unstage/discard/revert or remote mutation fails."""


class GitHubError(ActionFailed):
    """Raised when the GitHub API rejects a request or returns GraphQL errors."""
