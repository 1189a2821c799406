"""GitHub API verification commands."""

import json

import typer
from rich.table import Table

from activity_sync.cli.common import OutputFormatOption, console, run_async_command
from activity_sync.config import get_settings
from activity_sync.github import (
    GitHubAuthenticationError,
    GitHubClient,
    QuotaMonitor,
    RateLimitPool,
    RateLimitStatus,
)
from activity_sync.github.sync import OutputFormat

app = typer.Typer(help="GitHub API commands")


def _get_status_style(status: RateLimitStatus) -> str:
    """Get rich style for status."""
    match status:
        case RateLimitStatus.HEALTHY:
            return "[green]HEALTHY[/green]"
        case RateLimitStatus.WARNING:
            return "[yellow]WARNING[/yellow]"
        case RateLimitStatus.CRITICAL:
            return "[red]CRITICAL[/red]"
        case RateLimitStatus.EXHAUSTED:
            return "[bold red]EXHAUSTED[/bold red]"
        case _:
            return str(status)


def _format_time_remaining(seconds: int) -> str:
    """Format seconds as human-readable time."""
    if seconds <= 0:
        return "Now"
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours}h {minutes}m"


@app.command("rate-limit")
def show_rate_limit(
    all_pools: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Show all rate limit pools (not just core)",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show current GitHub API quota (does not consume quota).

    Examples:
        activity-sync github rate-limit
        activity-sync github rate-limit --all
        activity-sync github rate-limit --format json
    """
    settings = get_settings()
    if not settings.github_token:
        console.print("[red]Error:[/red] GITHUB_TOKEN not set in environment")
        raise typer.Exit(1)

    async def _check() -> QuotaMonitor:
        monitor = QuotaMonitor(settings.rate_limit)
        try:
            async with GitHubClient(quota_monitor=monitor) as client:
                await client.refresh_quota()
        except GitHubAuthenticationError:
            console.print("[red]Error:[/red] Invalid GitHub token")
            raise typer.Exit(1) from None
        return monitor

    monitor = run_async_command(_check(), error_prefix="Rate limit check failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(monitor.to_dict()))
        return

    pools_to_show = list(RateLimitPool) if all_pools else [RateLimitPool.CORE]

    table = Table(title="GitHub API Rate Limits")
    table.add_column("Pool", style="bold")
    table.add_column("Status")
    table.add_column("Remaining", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Remaining %", justify="right")
    table.add_column("Resets In", justify="right")

    for pool in pools_to_show:
        quota = monitor.get_quota(pool)
        if quota is None:
            continue
        table.add_row(
            pool.value,
            _get_status_style(monitor.get_status(pool)),
            str(quota.remaining),
            str(quota.limit),
            f"{quota.remaining_percent:.1f}%",
            _format_time_remaining(int(monitor.time_until_reset(pool))),
        )

    console.print()
    console.print(table)

    core_status = monitor.get_status(RateLimitPool.CORE)
    if core_status == RateLimitStatus.CRITICAL:
        console.print(
            "\n[yellow]Recommendation:[/yellow] Quota is low. "
            "Large syncs will be skipped until it resets."
        )
    elif core_status == RateLimitStatus.EXHAUSTED:
        time_left = int(monitor.time_until_reset(RateLimitPool.CORE))
        console.print(
            f"\n[red]Quota exhausted![/red] "
            f"Wait {_format_time_remaining(time_left)} before syncing."
        )
