from __future__ import annotations

import asyncio
import json
import logging
import subprocess
import time
from pathlib import Path
from typing import Any

import httpx

from .errors import GitHubError, SnapshotFailed
from .menu.models import ChangeKind, Record, Review

# Set up logging
logger = logging.getLogger(__name__)

GITHUB_GRAPHQL = "https://api.github.com/graphql"

# Rate limiting constants
RATE_LIMIT_RESET_HEADER = "X-RateLimit-Reset"
RATE_LIMIT_REMAINING_HEADER = "X-RateLimit-Remaining"
FORBIDDEN_STATUS_CODE = 403

PAGE_SIZE = 100
VIEWED = "VIEWED"

PR_VIEW_FIELDS = "id,number,title,baseRefName"

FILES_QUERY = """
query($id: ID!, $first: Int!, $after: String) {
  node(id: $id) {
    ... on PullRequest {
      files(first: $first, after: $after) {
        nodes { path additions deletions viewerViewedState }
        pageInfo { hasNextPage endCursor }
      }
    }
  }
}
"""

MARK_VIEWED_MUTATION = """
mutation($id: ID!, $path: String!) {
  markFileAsViewed(input: {pullRequestId: $id, path: $path}) { clientMutationId }
}
"""

UNMARK_VIEWED_MUTATION = """
mutation($id: ID!, $path: String!) {
  unmarkFileAsViewed(input: {pullRequestId: $id, path: $path}) { clientMutationId }
}
"""


class GitHubClient:
    """GitHub GraphQL client for pull request files and their viewed state."""

    def __init__(self, token: str | None, max_retries: int = 3) -> None:
        """Initialize the client.

        Args:
            token: A GitHub token. The GraphQL API rejects anonymous requests,
                so calls without one fail with `GitHubError`.
            max_retries: Maximum number of retries for failed requests.
        """
        self._headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "gitdeck",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._max_retries = max_retries
        self._rate_limit_remaining = 999  # Updated after the first response
        self._rate_limit_reset_time = 0

    async def _post(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL query or mutation and return its `data` object.

        Args:
            query: GraphQL document.
            variables: Variables for the document.

        Returns:
            The `data` member of the response.

        Raises:
            GitHubError: If the response carries GraphQL errors.
            httpx.HTTPStatusError: If the response indicates an HTTP error.
            httpx.RequestError: On network or timeout errors.
        """
        if self._rate_limit_remaining <= 1 and time.time() < self._rate_limit_reset_time:
            sleep_time = self._rate_limit_reset_time - time.time() + 1
            logger.warning(f"Rate limited. Sleeping for {sleep_time} seconds.")
            await asyncio.sleep(sleep_time)

        payload = {"query": query, "variables": variables}
        for attempt in range(self._max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=20) as client:
                    r = await client.post(GITHUB_GRAPHQL, headers=self._headers, json=payload)
                    self._update_rate_limit_info(r)
                    r.raise_for_status()
                    body = r.json()
            except httpx.HTTPStatusError as e:
                status_code = getattr(e.response, "status_code", None)
                if (
                    status_code == FORBIDDEN_STATUS_CODE
                    and self._rate_limit_remaining <= 1
                    and attempt < self._max_retries
                ):
                    if time.time() < self._rate_limit_reset_time:
                        sleep_time = self._rate_limit_reset_time - time.time() + 1
                        logger.warning(f"Hit rate limit. Waiting {sleep_time} seconds before retry.")
                        await asyncio.sleep(sleep_time)
                    continue
                logger.error(f"HTTP error {status_code} from GraphQL API: {e}")
                raise
            except httpx.RequestError as e:
                if attempt < self._max_retries:
                    logger.warning(f"Network error (attempt {attempt + 1}/{self._max_retries + 1}): {e}")
                    await asyncio.sleep(2**attempt)
                    continue
                logger.error(f"Network error after {self._max_retries + 1} attempts: {e}")
                raise
            errors = body.get("errors")
            if errors:
                message = "; ".join(str(err.get("message", err)) for err in errors)
                logger.error(f"GraphQL error: {message}")
                raise GitHubError(message)
            return body.get("data") or {}

        raise GitHubError("Max retries exceeded")

    def _update_rate_limit_info(self, response: httpx.Response) -> None:
        remaining = response.headers.get(RATE_LIMIT_REMAINING_HEADER)
        reset = response.headers.get(RATE_LIMIT_RESET_HEADER)
        try:
            if remaining is not None:
                self._rate_limit_remaining = int(remaining)
            if reset is not None:
                self._rate_limit_reset_time = int(reset)
        except ValueError:
            logger.debug(f"Unparseable rate limit headers: {remaining!r}, {reset!r}")

    async def list_review_files(self, pull_request_id: str) -> list[dict[str, Any]]:
        """List every file of a pull request with the viewer's viewed state.

        Args:
            pull_request_id: GraphQL node id of the pull request.

        Returns:
            File nodes with `path`, `additions`, `deletions` and `viewerViewedState`.

        Raises:
            GitHubError: If the node is not a pull request or the API reports errors.
        """
        files: list[dict[str, Any]] = []
        after: str | None = None
        while True:
            data = await self._post(FILES_QUERY, {"id": pull_request_id, "first": PAGE_SIZE, "after": after})
            node = data.get("node") or {}
            connection = node.get("files")
            if connection is None:
                raise GitHubError(f"Pull request {pull_request_id} not found")
            files.extend(connection.get("nodes") or [])
            page = connection.get("pageInfo") or {}
            if not page.get("hasNextPage"):
                return files
            after = page.get("endCursor")

    async def set_file_viewed(self, pull_request_id: str, path: str, viewed: bool) -> None:
        """Mark or unmark `path` as viewed by the authenticated user."""
        mutation = MARK_VIEWED_MUTATION if viewed else UNMARK_VIEWED_MUTATION
        await self._post(mutation, {"id": pull_request_id, "path": path})


def current_pull_request(cwd: str | None = None, gh: str = "gh") -> dict[str, Any] | None:
    """Look up the open pull request for the checked-out branch with `gh pr view`.

    Args:
        cwd: Repository directory, defaults to the process working directory.
        gh: The GitHub CLI executable.

    Returns:
        The decoded JSON object, or None when the branch has no pull request.

    Raises:
        SnapshotFailed: If `gh` is missing or the lookup fails for another reason.
    """
    argv = [gh, "pr", "view", "--json", PR_VIEW_FIELDS]
    try:
        result = subprocess.run(argv, cwd=cwd, capture_output=True, text=True, check=False)
    except FileNotFoundError as e:
        raise SnapshotFailed(f"{gh} is not installed or not found in PATH") from e
    if result.returncode != 0:
        stderr = result.stderr.strip()
        if "no pull requests found" in stderr.lower():
            return None
        logger.error(f"gh pr view failed: {stderr}")
        raise SnapshotFailed(f"Failed to look up pull request: {stderr or result.returncode}")
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise SnapshotFailed(f"Unexpected output from gh pr view: {e}") from e


class GitHubReviewSource:
    """Review source backed by the GitHub CLI for lookups and GraphQL for files."""

    def __init__(self, client: GitHubClient, remote: str = "origin", cwd: str | Path | None = None) -> None:
        self.client = client
        self.remote = remote
        self.cwd = str(cwd) if cwd is not None else None

    def get_current_review(self) -> Review | None:
        data = current_pull_request(self.cwd)
        if data is None:
            return None
        return Review(
            id=data["id"],
            number=int(data["number"]),
            title=data.get("title", ""),
            base_branch=data.get("baseRefName", ""),
        )

    async def fetch_files_with_review_state(self, review: Review) -> list[Record]:
        nodes = await self.client.list_review_files(review.id)
        return [
            Record(
                path=n["path"],
                kind=ChangeKind.MODIFIED,
                additions=n.get("additions"),
                deletions=n.get("deletions"),
                reviewed=n.get("viewerViewedState") == VIEWED,
                review_id=review.id,
            )
            for n in nodes
        ]

    async def set_reviewed(self, review_id: str, path: str, reviewed: bool) -> None:
        await self.client.set_file_viewed(review_id, path, reviewed)
