"""Orchestrator: wires together client, aggregator, and renderer."""

from __future__ import annotations

from rich.console import Console

from .aggregator import build_user_snapshot
from .config import DEFAULT_CONFIG, EngineConfig
from .deadline import Deadline
from .github.client import GitHubClient
from .renderer import render_csv, render_json, render_snapshot


async def run(
    username: str,
    token: str | None = None,
    period: str = "all",
    output_format: str = "table",
    output_file: str | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
    deadline: float | None = None,
    api_url: str | None = None,
    verify_ssl: bool = True,
) -> None:
    """Main pipeline: fetch data, build the snapshot, render."""
    async with GitHubClient(
        token=token, base_url=api_url, verify_ssl=verify_ssl
    ) as client:
        with Console(stderr=True).status(f"Collecting stats for {username}..."):
            snapshot = await build_user_snapshot(
                client,
                username,
                period=period,
                config=config,
                deadline=Deadline(deadline) if deadline is not None else None,
            )

    if output_format == "json":
        render_json(snapshot, output_file=output_file)
    elif output_format == "csv":
        render_csv(snapshot, output_file=output_file)
    else:
        render_snapshot(snapshot, output_file=output_file)
