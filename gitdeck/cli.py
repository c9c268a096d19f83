from __future__ import annotations

import logging
import sys

from . import __version__
from .config import LOG_PATH, ensure_config_dir
from .errors import BackendUnavailable
from .git import GitClient
from .menu.models import Mode
from .tui import GitDeckApp


def main(argv: list[str] | None = None) -> int:
    """Entry point for the `gitdeck` console script.

    Launches the Textual TUI application or handles CLI flags.

    Args:
        argv: Arguments after the program name; defaults to `sys.argv[1:]`.

    Returns:
        The process exit code.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    mode: Mode | None = None
    debug = False
    for arg in args:
        if arg in ("--version", "-v"):
            print(f"gitdeck {__version__}")
            return 0
        if arg in ("--help", "-h"):
            print_help()
            return 0
        if arg == "--debug":
            debug = True
        elif arg == "review":
            mode = Mode.REVIEW
        elif arg == "status":
            mode = Mode.STATUS
        else:
            print(f"gitdeck: unknown argument {arg!r}", file=sys.stderr)
            print_help()
            return 2

    if debug:
        configure_logging()

    git = GitClient()
    try:
        git.ensure_repository()
    except BackendUnavailable as e:
        print(f"gitdeck: {e}", file=sys.stderr)
        return 1

    app = GitDeckApp(mode=mode, git=git)
    app.run()
    return app.return_code or 0


def configure_logging() -> None:
    """Send debug logs to a file under the config directory; the TUI owns the terminal."""
    ensure_config_dir()
    logging.basicConfig(
        filename=str(LOG_PATH),
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def print_help() -> None:
    """Print help message for gitdeck CLI commands."""
    help_text = """gitdeck - Review menu for working tree changes and pull request files

Usage:
  gitdeck              Open the menu in the configured default mode
  gitdeck status       Open the menu on working tree changes
  gitdeck review       Open the menu on the current branch's pull request
  gitdeck --version    Show version information
  gitdeck --help       Show this help message

Options:
  -h, --help           Show this help message
  -v, --version        Show version information
  --debug              Write debug logs to the gitdeck.log file in the config directory

Keys:
  j / k                Move the cursor (wraps around)
  hh, jj, kk, ...      Open the diff of the row showing that code
  HH, JJ, KK, ...      Open the file of the row showing that code
  enter                Diff the cursor row (toggle staging on a category)
  e                    Open the file in your editor
  -  s  u              Toggle staging, stage, unstage
  x                    Discard changes
  O / T                Resolve a conflict with ours / theirs
  R                    Revert a pull request file to the base branch
  v / space            Toggle a pull request file as viewed
  r                    Refresh
  tab  1  2            Switch mode
  q / escape           Close
"""
    print(help_text)


if __name__ == "__main__":
    sys.exit(main())
