"""
Command-line interface for Contributor Quality.
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import httpx
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from contributor_quality.config import (
    SCORING_MODES,
    ScoringConfig,
    load_config,
    set_verify_ssl,
)
from contributor_quality.github import GitHubClient
from contributor_quality.http_client import close_async_http_client
from contributor_quality.scoring import ScoringResult, calculate_score
from contributor_quality.scoring.normalizer import (
    MAX_SCORE,
    format_score,
    get_score_category,
)
from contributor_quality.snapshot import analysis_window_start

# --- Typer App ---
app = typer.Typer(help="Score GitHub contributors from their public activity.")
console = Console()

# --- Helper Functions ---


def is_trusted_user(username: str, trusted_users: tuple[str, ...]) -> bool:
    """Check the username against the trusted list (logins are case-insensitive)."""
    login = username.lower()
    return any(login == trusted.lower() for trusted in trusted_users)


def whitelisted_result(
    username: str, config: ScoringConfig, now: datetime, trusted_user: bool
) -> ScoringResult:
    """Maximal result for trusted users and trusted-org members."""
    return ScoringResult(
        score=MAX_SCORE,
        raw_score=MAX_SCORE,
        score_after_penalty=MAX_SCORE,
        decay_factor=1.0,
        passed=True,
        threshold=config.minimum_score,
        metrics=(),
        spam_penalties=(),
        spam_penalty_total=0,
        recommendations=(),
        username=username,
        analyzed_at=now,
        data_window_start=analysis_window_start(now, config.analysis_window_months),
        data_window_end=now,
        total_data_points=0,
        is_new_account=False,
        has_limited_data=False,
        mode=config.scoring_mode,
        is_trusted_user=trusted_user,
        was_whitelisted=True,
    )


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, tuple) and hasattr(value, "_asdict"):
        return {key: _jsonable(item) for key, item in value._asdict().items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def result_to_dict(result: ScoringResult) -> dict[str, Any]:
    """Convert a ScoringResult into JSON-serializable data."""
    data = _jsonable(result)
    data["category"] = get_score_category(result.score)
    return data


async def evaluate_contributor(
    username: str, config: ScoringConfig, now: datetime | None = None
) -> ScoringResult:
    """
    Score a contributor, short-circuiting for trusted users and org members.

    Raises:
        ValueError: If GITHUB_TOKEN is missing or the user does not exist
        httpx.HTTPError: If the GitHub API keeps failing
    """
    now = now or datetime.now(timezone.utc)
    if is_trusted_user(username, config.trusted_users):
        return whitelisted_result(username, config, now, trusted_user=True)

    client = GitHubClient()
    try:
        if config.trusted_orgs and await client.check_org_membership(
            username, config.trusted_orgs
        ):
            return whitelisted_result(username, config, now, trusted_user=False)

        since = analysis_window_start(now, config.analysis_window_months)
        snapshot = await client.fetch_contributor_snapshot(username, since, now)
    finally:
        await close_async_http_client()

    return calculate_score(snapshot, config)


def display_result(result: ScoringResult) -> None:
    """Display a scoring result with rich formatting."""
    if result.passed:
        status = "[green]Passed ✓[/green]"
    else:
        status = "[red]Below threshold[/red]"

    score_color = "green"
    if result.score < 400:
        score_color = "red"
    elif result.score < 600:
        score_color = "yellow"

    console.print(f"\n👤 [bold cyan]{escape(result.username)}[/bold cyan]")
    console.print(
        f"   Score: [{score_color}]{format_score(result.score)}[/{score_color}] "
        f"({get_score_category(result.score)}) - {status}"
    )

    if result.was_whitelisted:
        reason = "trusted user" if result.is_trusted_user else "trusted organization member"
        console.print(f"   [dim]Scoring skipped: {reason}[/dim]")
        return

    console.print(
        f"   [dim]Mode: {result.mode} • threshold {result.threshold} • "
        f"raw {result.raw_score} • after penalties {result.score_after_penalty} • "
        f"decay ×{result.decay_factor:.2f}[/dim]"
    )

    metrics_table = Table(show_header=True, header_style="bold magenta")
    metrics_table.add_column("Metric", style="cyan", no_wrap=True)
    metrics_table.add_column("Score", justify="center", style="magenta")
    metrics_table.add_column("Weight", justify="center")
    metrics_table.add_column("Data", justify="center")
    metrics_table.add_column("Observation", justify="left")

    for metric in result.metrics:
        metric_color = "green"
        if metric.normalized_score < 50:
            metric_color = "red"
        elif metric.normalized_score == 50:
            metric_color = "yellow"
        metrics_table.add_row(
            metric.name,
            f"[{metric_color}]{metric.normalized_score:.0f}[/{metric_color}]",
            f"{metric.weight:g}",
            str(metric.data_point_count),
            metric.details,
        )
    console.print(metrics_table)

    if result.metric_checks:
        failed = [check.name for check in result.metric_checks if not check.passed]
        if failed:
            console.print(f"   [red]Thresholds not met:[/red] {', '.join(failed)}")

    for penalty in result.spam_penalties:
        console.print(f"   [red]⚠️  -{penalty.points:.0f}[/red] {penalty.reason}")

    notes = []
    if result.is_new_account:
        notes.append("new account")
    if result.has_limited_data:
        notes.append("limited data")
    if notes:
        console.print(f"   [yellow]Note: {', '.join(notes)}[/yellow]")

    if result.recommendations:
        console.print("\n💡 [bold]Recommendations[/bold]")
        for recommendation in result.recommendations:
            console.print(f"   • {recommendation}")


# --- CLI Commands ---


@app.command()
def score(
    username: str = typer.Argument(..., help="GitHub username to evaluate."),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a TOML config file (default: .contributor-quality.toml or pyproject.toml).",
    ),
    mode: str | None = typer.Option(
        None,
        "--mode",
        "-m",
        help=f"Scoring mode: {' or '.join(SCORING_MODES)}.",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        help="Print the result as JSON.",
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
):
    """Score a contributor. Exits with 0 when the contributor passes, 1 otherwise."""
    if insecure:
        set_verify_ssl(False)

    try:
        config = load_config(config_path, scoring_mode=mode)
    except (OSError, ValueError) as e:
        console.print(f"[red]❌ Invalid configuration: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    try:
        result = asyncio.run(evaluate_contributor(username, config))
    except (ValueError, httpx.HTTPError) as e:
        console.print(f"[red]❌ Could not score {escape(username)}: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from None

    if output_json:
        typer.echo(json.dumps(result_to_dict(result), indent=2))
    else:
        display_result(result)

    raise typer.Exit(code=0 if result.passed else 1)


@app.callback()
def main():
    """Contributor Quality: reputation scoring for GitHub contributors."""


if __name__ == "__main__":
    app()
