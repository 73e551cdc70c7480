"""Tests for contribution reconciliation."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from profile_stats.config import EngineConfig
from profile_stats.contributions import (
    ScanResult,
    SearchResult,
    merge_sources,
    reconcile_contributions,
    reconcile_count,
    scan_contributions,
    search_contributions,
)
from profile_stats.errors import GitHubAPIError, RateLimited, RepositoryAccessDenied
from profile_stats.github.client import GitHubClient
from profile_stats.models import ContributionCounts, RepositorySummary
from profile_stats.period import resolve_period

MONTH = resolve_period("month", now=datetime(2024, 9, 20, tzinfo=timezone.utc))
ALL = resolve_period("all", now=datetime(2024, 9, 20, tzinfo=timezone.utc))


def _repos(n: int, owner: str = "alice") -> list[RepositorySummary]:
    return [RepositorySummary(id=i, owner_login=owner, name=f"repo{i}") for i in range(1, n + 1)]


@pytest.fixture
def mock_client():
    client = AsyncMock(spec=GitHubClient)
    client.list_commits.return_value = [{"sha": "a"}, {"sha": "b"}, {"sha": "c"}]
    client.list_pull_requests.return_value = [{"number": 1}, {"number": 2}]
    client.list_issues.return_value = [{"number": 3}]
    client.search_commits.return_value = 0
    client.search_issues.return_value = 0
    return client


@pytest.mark.parametrize(
    "scan, search, expected",
    [
        (10, 20, 20),
        (10, 12, 10),
        (10, 15, 10),
        (10, 16, 16),
        (0, 3, 3),
        (10, None, 10),
        (10, 0, 10),
    ],
)
def test_reconcile_count(scan, search, expected):
    assert reconcile_count(scan, search, threshold=1.5) == expected


@pytest.mark.asyncio
async def test_scan_accumulates_across_repositories(mock_client):
    result = await scan_contributions(mock_client, "alice", _repos(2), MONTH)

    assert result.counts == ContributionCounts(commits=6, pull_requests=4, issues=2)
    assert result.scanned == 2
    assert result.interrupted is False
    kwargs = mock_client.list_commits.await_args.kwargs
    assert kwargs["author"] == "alice"
    assert kwargs["since"] == "2024-09-01T00:00:00Z"
    assert kwargs["until"] == "2024-09-30T23:59:59Z"


@pytest.mark.asyncio
async def test_scan_is_unbounded_in_time_for_all(mock_client):
    await scan_contributions(mock_client, "alice", _repos(1), ALL)

    kwargs = mock_client.list_commits.await_args.kwargs
    assert kwargs["since"] is None
    assert kwargs["until"] is None


@pytest.mark.asyncio
async def test_scan_respects_repository_cap(mock_client):
    result = await scan_contributions(
        mock_client, "alice", _repos(5), MONTH, EngineConfig(max_scan_repos=2)
    )

    assert result.attempted == 2
    assert mock_client.list_commits.await_count == 2


@pytest.mark.asyncio
async def test_scan_skips_inaccessible_repository(mock_client):
    async def commits(owner, name, **kwargs):
        if name == "repo1":
            raise RepositoryAccessDenied(f"{owner}/{name}", 404)
        return [{"sha": "x"}]

    async def denied_for_repo1(owner, name, **kwargs):
        if name == "repo1":
            raise RepositoryAccessDenied(f"{owner}/{name}", 404)
        return []

    mock_client.list_commits.side_effect = commits
    mock_client.list_pull_requests.side_effect = denied_for_repo1
    mock_client.list_issues.side_effect = denied_for_repo1

    result = await scan_contributions(mock_client, "alice", _repos(2), MONTH)

    assert result.attempted == 2
    assert result.scanned == 1
    assert result.counts.commits == 1


@pytest.mark.asyncio
async def test_scan_keeps_partial_data_when_only_issues_fail(mock_client):
    mock_client.list_issues.side_effect = GitHubAPIError("issues disabled", 410)

    result = await scan_contributions(mock_client, "alice", _repos(1), MONTH)

    assert result.scanned == 1
    assert result.counts == ContributionCounts(commits=3, pull_requests=2, issues=0)


@pytest.mark.asyncio
async def test_scan_stops_on_rate_limit(mock_client):
    async def commits(owner, name, **kwargs):
        if name == "repo2":
            raise RateLimited("limit", 403)
        return [{"sha": "x"}, {"sha": "y"}]

    mock_client.list_commits.side_effect = commits

    result = await scan_contributions(mock_client, "alice", _repos(4), MONTH)

    assert result.interrupted is True
    assert result.scanned == 1
    assert result.counts.commits == 2
    assert mock_client.list_commits.await_count == 2


@pytest.mark.asyncio
async def test_search_queries_carry_date_qualifiers(mock_client):
    mock_client.search_commits.return_value = 40
    mock_client.search_issues.side_effect = [7, 3, 12]

    result = await search_contributions(mock_client, "alice", MONTH)

    assert result == SearchResult(commits=40, pull_requests=7, issues=3, reviews=12)
    commit_query = mock_client.search_commits.await_args.args[0]
    assert commit_query == "author:alice author-date:2024-09-01..2024-09-30"
    issue_queries = [c.args[0] for c in mock_client.search_issues.await_args_list]
    assert issue_queries == [
        "author:alice type:pr created:2024-09-01..2024-09-30",
        "author:alice type:issue created:2024-09-01..2024-09-30",
        "reviewed-by:alice type:pr created:2024-09-01..2024-09-30",
    ]


@pytest.mark.asyncio
async def test_search_failures_become_none(mock_client):
    mock_client.search_commits.side_effect = GitHubAPIError("Validation Failed", 422)
    mock_client.search_issues.return_value = 5

    result = await search_contributions(mock_client, "alice", ALL)

    assert result.commits is None
    assert result.pull_requests == 5
    assert result.partial is True
    assert mock_client.search_commits.await_args.args[0] == "author:alice"


def test_merge_prefers_search_when_scan_missed_repositories():
    scan = ScanResult(counts=ContributionCounts(10, 4, 2), attempted=3, scanned=3)
    search = SearchResult(commits=20, pull_requests=5, issues=9, reviews=8)

    merged = merge_sources(scan, search, threshold=1.5)

    assert merged.counts == ContributionCounts(commits=20, pull_requests=4, issues=9, reviews=8)
    assert merged.is_estimated is False
    assert merged.estimation_reason is None


def test_merge_total_failure_falls_back_to_zero():
    scan = ScanResult(attempted=3, scanned=0)

    merged = merge_sources(scan, SearchResult())

    assert merged.counts == ContributionCounts()
    assert merged.is_estimated is True
    assert "unavailable" in merged.estimation_reason


def test_merge_search_failure_uses_scan_and_flags_estimate():
    scan = ScanResult(counts=ContributionCounts(10, 4, 2), attempted=3, scanned=3)

    merged = merge_sources(scan, SearchResult())

    assert merged.counts == ContributionCounts(commits=10, pull_requests=4, issues=2, reviews=0)
    assert merged.is_estimated is True
    assert "search unavailable" in merged.estimation_reason


def test_merge_interrupted_scan_flags_estimate():
    scan = ScanResult(counts=ContributionCounts(3, 0, 0), attempted=2, scanned=1, interrupted=True)
    search = SearchResult(commits=3, pull_requests=0, issues=0, reviews=0)

    merged = merge_sources(scan, search)

    assert merged.counts.commits == 3
    assert merged.is_estimated is True
    assert "cut short" in merged.estimation_reason


def test_merge_with_no_repositories_is_not_a_failure():
    merged = merge_sources(ScanResult(), SearchResult(commits=0, pull_requests=0, issues=0, reviews=0))

    assert merged.counts == ContributionCounts()
    assert merged.is_estimated is False


@pytest.mark.asyncio
async def test_reconcile_contributions_end_to_end(mock_client):
    mock_client.search_commits.return_value = 20
    mock_client.search_issues.side_effect = [5, 1, 4]

    result = await reconcile_contributions(mock_client, "alice", _repos(2), MONTH)

    # scan: 6 commits, 4 PRs, 2 issues
    assert result.counts == ContributionCounts(commits=20, pull_requests=4, issues=2, reviews=4)
    assert result.is_estimated is False


@pytest.mark.asyncio
async def test_reconcile_contributions_total_failure(mock_client):
    mock_client.list_commits.side_effect = RepositoryAccessDenied("alice/repo", 403)
    mock_client.list_pull_requests.side_effect = RepositoryAccessDenied("alice/repo", 403)
    mock_client.list_issues.side_effect = RepositoryAccessDenied("alice/repo", 403)
    mock_client.search_commits.side_effect = RateLimited("search limit", 403)
    mock_client.search_issues.side_effect = RateLimited("search limit", 403)

    result = await reconcile_contributions(mock_client, "alice", _repos(2), MONTH)

    assert result.counts == ContributionCounts()
    assert result.is_estimated is True


@pytest.mark.asyncio
async def test_reconcile_fills_caller_owned_results(mock_client):
    mock_client.search_commits.return_value = 9
    mock_client.search_issues.side_effect = [1, 2, 3]
    scan, search = ScanResult(), SearchResult()

    await reconcile_contributions(
        mock_client, "alice", _repos(2), MONTH, scan=scan, search=search
    )

    assert scan.counts == ContributionCounts(commits=6, pull_requests=4, issues=2)
    assert scan.scanned == 2
    assert search.commits == 9
    assert search.reviews is not None
