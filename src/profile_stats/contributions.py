"""Contribution counting: per-repository scans cross-checked against search."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .config import DEFAULT_CONFIG, EngineConfig
from .deadline import Deadline, is_expired
from .errors import GitHubAPIError, RateLimited
from .github.client import GitHubClient
from .models import ContributionCounts, RepositorySummary
from .period import PeriodWindow

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Counts accumulated by walking repositories directly."""

    counts: ContributionCounts = field(default_factory=ContributionCounts)
    attempted: int = 0
    scanned: int = 0
    interrupted: bool = False

    @property
    def failed(self) -> bool:
        return self.attempted > 0 and self.scanned == 0


@dataclass
class SearchResult:
    """Search API totals; None marks a query that failed."""

    commits: int | None = None
    pull_requests: int | None = None
    issues: int | None = None
    reviews: int | None = None

    @property
    def failed(self) -> bool:
        return all(
            v is None
            for v in (self.commits, self.pull_requests, self.issues, self.reviews)
        )

    @property
    def partial(self) -> bool:
        return not self.failed and any(
            v is None
            for v in (self.commits, self.pull_requests, self.issues, self.reviews)
        )


@dataclass
class ReconciledCounts:
    counts: ContributionCounts
    is_estimated: bool = False
    estimation_reason: str | None = None


def reconcile_count(scan: int, search: int | None, threshold: float = 1.5) -> int:
    """Pick between a scanned and a searched count.

    Search wins only when it exceeds the scan by more than ``threshold``
    times, which means the bounded scan missed repositories.
    """
    if search is None:
        return scan
    if search > scan * threshold:
        return search
    return scan


async def _scan_repository(
    client: GitHubClient,
    username: str,
    repo: RepositorySummary,
    window: PeriodWindow,
    config: EngineConfig,
) -> ContributionCounts:
    owner, name = repo.owner_login, repo.name
    results = await asyncio.gather(
        client.list_commits(
            owner,
            name,
            author=username,
            since=window.api_since,
            until=window.api_until,
            max_pages=config.max_scan_pages,
        ),
        client.list_pull_requests(
            owner,
            name,
            creator=username,
            since=window.api_since,
            until=window.api_until,
            max_pages=config.max_scan_pages,
        ),
        client.list_issues(
            owner,
            name,
            creator=username,
            since=window.api_since,
            until=window.api_until,
            max_pages=config.max_scan_pages,
        ),
        return_exceptions=True,
    )

    errors = [r for r in results if isinstance(r, BaseException)]
    for error in errors:
        if isinstance(error, RateLimited) or not isinstance(error, GitHubAPIError):
            raise error
    if len(errors) == len(results):
        raise errors[0]

    commits, prs, issues = (r if isinstance(r, list) else [] for r in results)
    for label, error in zip(("commits", "pull requests", "issues"), results):
        if isinstance(error, GitHubAPIError):
            logger.debug("%s: %s unavailable: %s", repo.full_name, label, error)

    return ContributionCounts(
        commits=len(commits), pull_requests=len(prs), issues=len(issues)
    )


async def scan_contributions(
    client: GitHubClient,
    username: str,
    repositories: list[RepositorySummary],
    window: PeriodWindow,
    config: EngineConfig = DEFAULT_CONFIG,
    deadline: Deadline | None = None,
    result: ScanResult | None = None,
) -> ScanResult:
    """Count commits, PRs and issues by ``username`` across a bounded subset.

    Counts are added to ``result`` one repository at a time, so a caller
    that owns it keeps the finished repositories if the scan is cancelled.
    """
    result = result if result is not None else ScanResult()
    for repo in repositories[: config.max_scan_repos]:
        if is_expired(deadline):
            logger.warning("Contribution scan: deadline reached")
            result.interrupted = True
            break
        result.attempted += 1
        try:
            counts = await _scan_repository(client, username, repo, window, config)
        except RateLimited:
            logger.warning(
                "Contribution scan: rate limited at %s, keeping partial counts",
                repo.full_name,
            )
            result.interrupted = True
            break
        except GitHubAPIError as exc:
            logger.warning("Skipping %s: %s", repo.full_name, exc)
            continue
        result.counts = result.counts + counts
        result.scanned += 1
    return result


async def search_contributions(
    client: GitHubClient,
    username: str,
    window: PeriodWindow,
    found: SearchResult | None = None,
) -> SearchResult:
    """Run the full-text search queries for the same window.

    Each total is stored on ``found`` as soon as its query returns.
    """
    found = found if found is not None else SearchResult()
    queries = [
        ("commits", client.search_commits, f"author:{username}{window.search_qualifier('author-date')}"),
        ("pull_requests", client.search_issues, f"author:{username} type:pr{window.search_qualifier('created')}"),
        ("issues", client.search_issues, f"author:{username} type:issue{window.search_qualifier('created')}"),
        ("reviews", client.search_issues, f"reviewed-by:{username} type:pr{window.search_qualifier('created')}"),
    ]

    async def run_query(name: str, search, query: str) -> None:
        try:
            setattr(found, name, await search(query))
        except GitHubAPIError as exc:
            logger.warning("Search %r failed: %s", query, exc)

    await asyncio.gather(*(run_query(*q) for q in queries))
    return found


def merge_sources(
    scan: ScanResult, search: SearchResult, threshold: float = 1.5
) -> ReconciledCounts:
    """Combine scan and search results into one trusted set of counts."""
    if scan.failed and search.failed:
        return ReconciledCounts(
            counts=ContributionCounts(),
            is_estimated=True,
            estimation_reason="Contribution data unavailable: repository scan and search both failed",
        )

    counts = ContributionCounts(
        commits=reconcile_count(scan.counts.commits, search.commits, threshold),
        pull_requests=reconcile_count(
            scan.counts.pull_requests, search.pull_requests, threshold
        ),
        issues=reconcile_count(scan.counts.issues, search.issues, threshold),
        reviews=search.reviews or 0,
    )

    reasons: list[str] = []
    if scan.failed:
        reasons.append("repository scan failed")
    elif scan.interrupted:
        reasons.append("repository scan was cut short")
    if search.failed:
        reasons.append("search unavailable")
    elif search.partial:
        reasons.append("some search queries failed")

    if reasons:
        return ReconciledCounts(
            counts=counts,
            is_estimated=True,
            estimation_reason="Contribution counts are estimated: " + ", ".join(reasons),
        )
    return ReconciledCounts(counts=counts)


async def reconcile_contributions(
    client: GitHubClient,
    username: str,
    repositories: list[RepositorySummary],
    window: PeriodWindow,
    config: EngineConfig = DEFAULT_CONFIG,
    deadline: Deadline | None = None,
    scan: ScanResult | None = None,
    search: SearchResult | None = None,
) -> ReconciledCounts:
    """Count contributions in ``window`` from both sources and reconcile them.

    Pass ``scan`` and ``search`` to keep whatever both sources gathered
    if the call is cancelled; ``merge_sources`` can reconcile them later.
    """
    scan, search = await asyncio.gather(
        scan_contributions(client, username, repositories, window, config, deadline, result=scan),
        search_contributions(client, username, window, found=search),
    )
    logger.info(
        "Scanned %d/%d repos for %s: %s; search: %s",
        scan.scanned,
        scan.attempted,
        username,
        scan.counts,
        search,
    )
    return merge_sources(scan, search, config.reconcile_threshold)
