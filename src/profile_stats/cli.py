"""CLI entrypoint for profile-stats."""

from __future__ import annotations

import asyncio
import logging
import sys
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import click
from rich.logging import RichHandler

from . import __version__
from .config import DEFAULT_CONFIG
from .errors import (
    GitHubAPIError,
    InvalidPeriod,
    RateLimited,
    UpstreamUnavailable,
    UserNotFound,
)
from .period import Period


def _validate_period(ctx: click.Context, param: click.Parameter, value: str) -> str:
    try:
        return Period.parse(value).value
    except InvalidPeriod:
        raise click.BadParameter(
            f"{value!r} is not one of {', '.join(Period.choices())}"
        ) from None


def _validate_timezone(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    if value is None:
        return None
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise click.BadParameter(f"unknown time zone {value!r}") from None
    return value


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


@click.command()
@click.argument("username")
@click.option(
    "--token",
    envvar="GITHUB_TOKEN",
    default=None,
    show_envvar=True,
    help="GitHub personal access token (enables private repositories)",
)
@click.option(
    "--period",
    default="all",
    show_default=True,
    callback=_validate_period,
    help=f"Time window: {', '.join(Period.choices())}",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "csv"], case_sensitive=False),
    default="table",
    show_default=True,
    help="Output format (csv exports repository data only)",
)
@click.option(
    "--output",
    "output_file",
    default=None,
    type=click.Path(),
    help="Save output to file instead of stdout",
)
@click.option(
    "--no-private",
    is_flag=True,
    default=False,
    help="Skip the authenticated repository listing",
)
@click.option(
    "--timezone",
    default=None,
    callback=_validate_timezone,
    help="Time zone for hour/weekday bucketing [default: UTC]",
)
@click.option(
    "--deadline",
    type=float,
    default=None,
    help="Overall time budget in seconds; partial data is used after it expires",
)
@click.option("--scan-repos", type=int, default=None, help="Repositories scanned for contribution counts")
@click.option("--sample-repos", type=int, default=None, help="Repositories sampled for commit times")
@click.option("--language-repos", type=int, default=None, help="Repositories included in language stats")
@click.option("--sample-delay", type=float, default=None, help="Seconds to pause between sampled repositories")
@click.option(
    "--api-url",
    default=None,
    help="GitHub Enterprise API base URL",
)
@click.option(
    "--no-ssl-verify",
    is_flag=True,
    default=False,
    help="Disable SSL verification (self-signed certs)",
)
@click.option("-v", "--verbose", count=True, help="Log progress (-vv for debug output)")
@click.version_option(version=__version__)
def main(
    username: str,
    token: str | None,
    period: str,
    output_format: str,
    output_file: str | None,
    no_private: bool,
    timezone: str | None,
    deadline: float | None,
    scan_repos: int | None,
    sample_repos: int | None,
    language_repos: int | None,
    sample_delay: float | None,
    api_url: str | None,
    no_ssl_verify: bool,
    verbose: int,
) -> None:
    """Build a reconciled activity snapshot for a GitHub user.

    \b
    Examples:
      profile-stats octocat
      profile-stats octocat --period last-year --format json --output stats.json
      GITHUB_TOKEN=... profile-stats myself --period month --timezone Europe/Berlin
    """
    _configure_logging(verbose)

    config = DEFAULT_CONFIG.replace(
        max_scan_repos=scan_repos,
        max_sample_repos=sample_repos,
        max_language_repos=language_repos,
        sample_delay=sample_delay,
        timezone=timezone,
        include_private=False if no_private else None,
    )

    from .orchestrator import run

    try:
        asyncio.run(
            run(
                username=username,
                token=token,
                period=period,
                output_format=output_format,
                output_file=output_file,
                config=config,
                deadline=deadline,
                api_url=api_url,
                verify_ssl=not no_ssl_verify,
            )
        )
    except UserNotFound:
        click.echo(f"Error: user '{username}' not found.", err=True)
        sys.exit(1)
    except RateLimited:
        click.echo("Error: GitHub API rate limit exceeded. Try again later or pass --token.", err=True)
        sys.exit(1)
    except UpstreamUnavailable as exc:
        if isinstance(exc.__cause__, RateLimited):
            click.echo("Error: GitHub API rate limit exceeded. Try again later or pass --token.", err=True)
        else:
            click.echo(f"Error: Could not reach GitHub API. {exc}", err=True)
        sys.exit(1)
    except GitHubAPIError as exc:
        if exc.status_code in (401, 403):
            click.echo("Error: Authentication failed. Check your --token or $GITHUB_TOKEN.", err=True)
        else:
            click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
