"""Rich-based terminal renderer for snapshots, with JSON/CSV export."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .languages import language_percentages
from .models import UserStatsSnapshot

_WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def _format_number(n: int) -> str:
    return f"{n:,}"


def _make_bar(percentage: float, width: int = 20) -> str:
    filled = round(percentage / 100 * width)
    return "█" * filled + "░" * (width - filled)


def _make_inline_bar(count: int, max_count: int, width: int = 15) -> str:
    if max_count == 0:
        return ""
    filled = round(count / max_count * width)
    return "█" * filled


def _write_to_file(content: str, output_file: str) -> None:
    """Write content to a file and print confirmation."""
    with open(output_file, "w", encoding="utf-8") as f:
        f.write(content)
    Console(stderr=True).print(f"Saved to {output_file}")


def snapshot_to_dict(snapshot: UserStatsSnapshot) -> dict[str, Any]:
    """Plain-JSON view of a snapshot for handoff to a card renderer."""
    window = snapshot.period
    histogram = snapshot.histogram
    return {
        "user": asdict(snapshot.user),
        "period": {
            "name": window.period.value,
            "start": window.start.isoformat(),
            "end": window.end.isoformat() if window.end else None,
            "days": window.days_in_period,
            "months": window.months_in_period,
        },
        "totals": {
            "repositories": snapshot.total_repos,
            "public_repositories": snapshot.public_repos,
            "private_repositories": snapshot.private_repos,
            "stars": snapshot.total_stars,
            "forks": snapshot.total_forks,
            "organizations": snapshot.organizations,
        },
        "counts": asdict(snapshot.counts),
        "histogram": {
            "by_hour": list(histogram.by_hour),
            "by_day": list(histogram.by_day),
            "by_date": {d.isoformat(): n for d, n in sorted(histogram.by_date.items())},
        },
        "metrics": asdict(snapshot.metrics),
        "languages": [asdict(lang) for lang in snapshot.languages],
        "language_percentages": language_percentages(snapshot.languages),
        "repositories": [asdict(r) for r in snapshot.repositories],
        "is_estimated": snapshot.is_estimated,
        "estimation_reason": snapshot.estimation_reason,
    }


def render_snapshot(snapshot: UserStatsSnapshot, output_file: str | None = None) -> None:
    """Render a snapshot to the terminal using rich."""
    if output_file:
        string_io = io.StringIO()
        console = Console(file=string_io, force_terminal=False, width=120)
    else:
        console = Console()

    window = snapshot.period
    end = window.end.date().isoformat() if window.end else "now"
    console.print(Panel(
        Text(
            f"{snapshot.user.display_name} (@{snapshot.user.login})\n"
            f"Period: {window.period.value} ({window.start.date().isoformat()} ~ {end})",
            justify="center",
        ),
        style="bold cyan",
    ))
    console.print()

    if snapshot.is_estimated:
        console.print(
            f"[bold yellow]Estimated:[/bold yellow] {snapshot.estimation_reason or 'partial data'}"
        )
        console.print()

    console.print("[bold]Summary[/bold]")
    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column("label", style="dim")
    summary.add_column("value", style="bold")
    summary.add_row("Repositories", _format_number(snapshot.total_repos))
    summary.add_row("Private Repos", _format_number(snapshot.private_repos))
    summary.add_row("Organizations", _format_number(snapshot.organizations))
    summary.add_row("Total Stars", _format_number(snapshot.total_stars))
    summary.add_row("Total Forks", _format_number(snapshot.total_forks))
    summary.add_row("Commits", _format_number(snapshot.counts.commits))
    summary.add_row("Pull Requests", _format_number(snapshot.counts.pull_requests))
    summary.add_row("Issues", _format_number(snapshot.counts.issues))
    summary.add_row("Reviews", _format_number(snapshot.counts.reviews))
    console.print(summary)
    console.print()

    m = snapshot.metrics
    console.print("[bold]Activity Metrics[/bold]")
    metrics_table = Table(show_header=False, box=None, padding=(0, 2))
    metrics_table.add_column("label", style="dim")
    metrics_table.add_column("value", style="bold")
    metrics_table.add_row("Consistency", f"{m.consistency_score}%")
    metrics_table.add_row("Current Streak", f"{m.streak.current} days")
    metrics_table.add_row("Longest Streak", f"{m.streak.max} days")
    metrics_table.add_row("Streak Power", str(m.streak_power))
    metrics_table.add_row("Owl Index", f"{m.owl_index:.2f}")
    metrics_table.add_row("Weekend Warrior", f"{m.weekend_warrior_score}%")
    metrics_table.add_row("Dark Coder", f"{m.dark_coder_percentage}%")
    metrics_table.add_row("Commit Velocity", f"{m.commit_velocity}/month")
    metrics_table.add_row("Language Diversity", f"{m.repo_diversity_index:.2f} bits")
    metrics_table.add_row("Collaboration", f"{m.collaboration_index:.2f}")
    metrics_table.add_row("Bug Slayer", f"{m.bug_slayer_score:.2f}")
    metrics_table.add_row(
        "Own / External Commits",
        f"{_format_number(m.own_repo_contributions)} / {_format_number(m.external_repo_contributions)}",
    )
    console.print(metrics_table)
    console.print()

    if snapshot.languages:
        console.print("[bold]Language Distribution[/bold]")
        lang_table = Table(show_header=True, header_style="bold")
        lang_table.add_column("Language")
        lang_table.add_column("Bar")
        lang_table.add_column("Percentage", justify="right")
        lang_table.add_column("Bytes", justify="right")

        for lang in snapshot.languages[:15]:
            lang_table.add_row(
                lang.language,
                _make_bar(lang.percentage),
                f"{lang.percentage}%",
                _format_number(lang.bytes),
            )
        console.print(lang_table)
        console.print()

    histogram = snapshot.histogram
    if histogram.total > 0:
        console.print(f"[bold]Commits by Day of Week[/bold] [dim](sample of {histogram.total})[/dim]")
        wd_table = Table(show_header=True, header_style="bold")
        wd_table.add_column("Day")
        wd_table.add_column("Commits", justify="right")
        wd_table.add_column("Bar")
        max_wd = max(histogram.by_day)
        for i, cnt in enumerate(histogram.by_day):
            wd_table.add_row(_WEEKDAY_NAMES[i], _format_number(cnt), _make_inline_bar(cnt, max_wd))
        console.print(wd_table)

        # Peak hours (top 3 most active hours)
        sorted_hours = sorted(
            ((h, c) for h, c in enumerate(histogram.by_hour) if c > 0),
            key=lambda x: x[1],
            reverse=True,
        )[:3]
        peak_str = ", ".join(f"{h:02d}:00 ({c})" for h, c in sorted_hours)
        console.print(f"  [dim]Peak hours:[/dim] {peak_str}")
        console.print()

    if output_file:
        _write_to_file(string_io.getvalue(), output_file)


def render_json(snapshot: UserStatsSnapshot, output_file: str | None = None) -> None:
    """Render a snapshot as JSON."""
    content = json.dumps(snapshot_to_dict(snapshot), indent=2, ensure_ascii=False)
    if output_file:
        _write_to_file(content, output_file)
    else:
        print(content)


def render_csv(snapshot: UserStatsSnapshot, output_file: str | None = None) -> None:
    """Render repository data as CSV."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["full_name", "language", "private", "stars", "forks"])
    for r in snapshot.repositories:
        writer.writerow([r.full_name, r.language or "", r.is_private, r.star_count, r.fork_count])
    content = output.getvalue()
    if output_file:
        _write_to_file(content, output_file)
    else:
        print(content, end="")
