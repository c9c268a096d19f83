from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import pytest

import gitdeck.github as gh
from gitdeck.errors import GitHubError, SnapshotFailed
from gitdeck.menu.models import Review


class FakeResponse:
    def __init__(self, json_data: Any, headers: dict[str, str] | None = None) -> None:
        self._json = json_data
        self.headers = headers or {}

    def raise_for_status(self) -> None:  # no-op
        return None

    def json(self) -> Any:
        return self._json


class FakeAsyncClient:
    def __init__(self, responses: list[Any]) -> None:
        self._responses = responses
        self.seen_headers: list[dict[str, str]] = []
        self.seen_payloads: list[dict[str, Any]] = []

    async def __aenter__(self) -> FakeAsyncClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        return None

    async def post(self, url: str, headers: dict[str, str] | None = None, json: dict[str, Any] | None = None):
        assert url == gh.GITHUB_GRAPHQL
        self.seen_headers.append(headers or {})
        self.seen_payloads.append(json or {})
        if not self._responses:
            raise AssertionError("No more fake responses queued")
        action = self._responses.pop(0)
        if isinstance(action, Exception):
            raise action
        return FakeResponse(action)


def files_page(nodes: list[dict[str, Any]], end: str | None = None) -> dict[str, Any]:
    return {
        "data": {
            "node": {
                "files": {
                    "nodes": nodes,
                    "pageInfo": {"hasNextPage": end is not None, "endCursor": end},
                }
            }
        }
    }


def node(path: str, state: str = "UNVIEWED", additions: int = 1, deletions: int = 0) -> dict[str, Any]:
    return {"path": path, "additions": additions, "deletions": deletions, "viewerViewedState": state}


@pytest.mark.asyncio
async def test_list_review_files_follows_pages(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeAsyncClient([files_page([node("a.py")], end="c1"), files_page([node("b.py", "VIEWED")])])
    monkeypatch.setattr(gh.httpx, "AsyncClient", lambda timeout: fake)  # type: ignore[arg-type]

    client = gh.GitHubClient(token="t0k")
    files = await client.list_review_files("PR_1")

    assert [f["path"] for f in files] == ["a.py", "b.py"]
    assert [p["variables"]["after"] for p in fake.seen_payloads] == [None, "c1"]
    assert fake.seen_payloads[0]["variables"]["first"] == gh.PAGE_SIZE
    assert fake.seen_headers[0]["Authorization"] == "Bearer t0k"


@pytest.mark.asyncio
async def test_graphql_errors_raise(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeAsyncClient([{"errors": [{"message": "Bad credentials"}, {"message": "Try again"}]}])
    monkeypatch.setattr(gh.httpx, "AsyncClient", lambda timeout: fake)  # type: ignore[arg-type]

    with pytest.raises(GitHubError, match="Bad credentials; Try again"):
        await gh.GitHubClient(token=None).list_review_files("PR_1")
    assert "Authorization" not in fake.seen_headers[0]


@pytest.mark.asyncio
async def test_missing_pull_request_node(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeAsyncClient([{"data": {"node": None}}])
    monkeypatch.setattr(gh.httpx, "AsyncClient", lambda timeout: fake)  # type: ignore[arg-type]

    with pytest.raises(GitHubError, match="not found"):
        await gh.GitHubClient(token="t").list_review_files("PR_gone")


@pytest.mark.asyncio
async def test_set_file_viewed_picks_mutation(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeAsyncClient([{"data": {}}, {"data": {}}])
    monkeypatch.setattr(gh.httpx, "AsyncClient", lambda timeout: fake)  # type: ignore[arg-type]

    client = gh.GitHubClient(token="t")
    await client.set_file_viewed("PR_1", "a.py", True)
    await client.set_file_viewed("PR_1", "a.py", False)

    assert fake.seen_payloads[0]["query"] == gh.MARK_VIEWED_MUTATION
    assert fake.seen_payloads[1]["query"] == gh.UNMARK_VIEWED_MUTATION
    assert fake.seen_payloads[0]["variables"] == {"id": "PR_1", "path": "a.py"}


@pytest.mark.asyncio
async def test_network_error_is_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    req_err = gh.httpx.RequestError("net", request=None)
    fake = FakeAsyncClient([req_err, files_page([])])
    monkeypatch.setattr(gh.httpx, "AsyncClient", lambda timeout: fake)  # type: ignore[arg-type]

    slept: list[float] = []

    async def no_sleep(seconds):  # type: ignore[no-untyped-def]
        slept.append(seconds)

    monkeypatch.setattr(gh.asyncio, "sleep", no_sleep)

    files = await gh.GitHubClient(token="t", max_retries=1).list_review_files("PR_1")
    assert files == []
    assert slept == [1]


@pytest.mark.asyncio
async def test_network_error_gives_up_after_retries(monkeypatch: pytest.MonkeyPatch) -> None:
    req_err = gh.httpx.RequestError("net", request=None)
    fake = FakeAsyncClient([req_err, req_err])
    monkeypatch.setattr(gh.httpx, "AsyncClient", lambda timeout: fake)  # type: ignore[arg-type]

    async def no_sleep(_):  # type: ignore[no-untyped-def]
        return None

    monkeypatch.setattr(gh.asyncio, "sleep", no_sleep)

    with pytest.raises(gh.httpx.RequestError):
        await gh.GitHubClient(token="t", max_retries=1).list_review_files("PR_1")


def test_rate_limit_headers_are_tracked() -> None:
    client = gh.GitHubClient(token="t")
    client._update_rate_limit_info(SimpleNamespace(headers={"X-RateLimit-Remaining": "7", "X-RateLimit-Reset": "99"}))
    assert client._rate_limit_remaining == 7
    assert client._rate_limit_reset_time == 99

    client._update_rate_limit_info(SimpleNamespace(headers={"X-RateLimit-Remaining": "soon"}))
    assert client._rate_limit_remaining == 7


def gh_result(returncode: int = 0, stdout: str = "", stderr: str = "") -> SimpleNamespace:
    return SimpleNamespace(returncode=returncode, stdout=stdout, stderr=stderr)


def test_current_pull_request_decodes_json(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[list[str]] = []

    def fake_run(argv, **kwargs):  # type: ignore[no-untyped-def]
        seen.append(argv)
        return gh_result(stdout=json.dumps({"id": "PR_1", "number": 3}))

    monkeypatch.setattr(gh.subprocess, "run", fake_run)
    assert gh.current_pull_request() == {"id": "PR_1", "number": 3}
    assert seen == [["gh", "pr", "view", "--json", gh.PR_VIEW_FIELDS]]


def test_current_pull_request_none_when_branch_has_no_pr(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        gh.subprocess, "run", lambda argv, **kw: gh_result(1, stderr='no pull requests found for branch "x"\n')
    )
    assert gh.current_pull_request() is None


@pytest.mark.parametrize(
    "result",
    [gh_result(1, stderr="HTTP 401: Bad credentials"), gh_result(0, stdout="not json")],
)
def test_current_pull_request_failures(monkeypatch: pytest.MonkeyPatch, result: SimpleNamespace) -> None:
    monkeypatch.setattr(gh.subprocess, "run", lambda argv, **kw: result)
    with pytest.raises(SnapshotFailed):
        gh.current_pull_request()


def test_current_pull_request_without_gh(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(argv, **kwargs):  # type: ignore[no-untyped-def]
        raise FileNotFoundError("gh")

    monkeypatch.setattr(gh.subprocess, "run", boom)
    with pytest.raises(SnapshotFailed, match="not found in PATH"):
        gh.current_pull_request()


def test_review_source_builds_review(monkeypatch: pytest.MonkeyPatch) -> None:
    data = {
        "id": "PR_kwDO",
        "number": 42,
        "title": "Menu",
        "baseRefName": "main",
    }
    monkeypatch.setattr(gh, "current_pull_request", lambda cwd=None: data)
    source = gh.GitHubReviewSource(gh.GitHubClient(token="t"), remote="upstream")
    assert source.get_current_review() == Review(
        id="PR_kwDO",
        number=42,
        title="Menu",
        base_branch="main",
    )
    assert source.remote == "upstream"


@pytest.mark.asyncio
async def test_review_source_maps_viewed_state() -> None:
    class FakeClient:
        def __init__(self) -> None:
            self.viewed: list[tuple[str, str, bool]] = []

        async def list_review_files(self, pull_request_id: str) -> list[dict[str, Any]]:
            return [node("a.py", "VIEWED", 3, 1), node("b.py", "DISMISSED")]

        async def set_file_viewed(self, pull_request_id: str, path: str, viewed: bool) -> None:
            self.viewed.append((pull_request_id, path, viewed))

    client = FakeClient()
    source = gh.GitHubReviewSource(client)  # type: ignore[arg-type]
    review = Review(id="PR_1", number=1, title="t", base_branch="main")

    records = await source.fetch_files_with_review_state(review)
    assert [(r.path, r.reviewed, r.additions, r.deletions, r.review_id) for r in records] == [
        ("a.py", True, 3, 1, "PR_1"),
        ("b.py", False, 1, 0, "PR_1"),
    ]

    await source.set_reviewed("PR_1", "b.py", True)
    assert client.viewed == [("PR_1", "b.py", True)]
