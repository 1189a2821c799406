"""Sync commands for Activity Sync."""

import json

import typer
from rich.table import Table

from activity_sync.cli.common import (
    ExcludeOption,
    OutputFormatOption,
    RepoArgument,
    ReposListOption,
    ResourceOption,
    SinceOption,
    UntilOption,
    build_units,
    console,
    parse_name_list,
    run_async_command,
    validate_range,
    validate_repo,
    validate_repo_list,
    validate_resources,
)
from activity_sync.config import get_settings
from activity_sync.db import SyncCoverageRepository, create_tables, get_session
from activity_sync.db.repositories import CoverageSummaryRow
from activity_sync.github import GitHubClient, QuotaMonitor
from activity_sync.github.sync import (
    CommitManager,
    CoverageReport,
    CoverageService,
    OutputFormat,
    QuotaEstimator,
    SyncAbortedError,
    SyncOrchestrator,
    SyncSummary,
    UnitState,
    build_fetchers,
    discover_repositories,
)

app = typer.Typer(help="Sync GitHub activity into the local database")

_STATE_STYLES = {
    UnitState.COMPLETED: "green",
    UnitState.PARTIALLY_FAILED: "yellow",
    UnitState.SKIPPED_CACHED: "dim",
    UnitState.SKIPPED_QUOTA: "yellow",
    UnitState.FAILED: "red",
    UnitState.ABORTED: "bold red",
}


@app.command("run")
def sync_run(
    repos: ReposListOption = None,
    exclude: ExcludeOption = None,
    resource: ResourceOption = None,
    since: SinceOption = None,
    until: UntilOption = None,
    force: bool = typer.Option(
        False,
        "--force",
        help="Refetch every day in range, even days already synced",
    ),
    skip_quota_check: bool = typer.Option(
        False,
        "--skip-quota-check",
        help="Fetch without estimating the request cost first",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync missing days of activity for tracked repositories.

    Days already recorded are skipped, so re-running the same command
    resumes where an interrupted run stopped. Without --repos or
    TRACKED_REPOS, every active repository of ORGANIZATION is synced.

    Examples:
        activity-sync sync run --since 7
        activity-sync sync run --repos prebid/prebid-server --since 2025-01-01
        activity-sync sync run --resource commits --since 2025-01-01 --until 2025-01-31
        activity-sync sync run --since 3 --force
        activity-sync sync run --since 7 --exclude prebid.github.io,docs
    """
    settings = get_settings()
    repo_list = validate_repo_list(repos) or settings.tracked_repos
    if not repo_list and not settings.organization:
        console.print(
            "[red]Error:[/red] No repositories given. "
            "Use --repos, or set TRACKED_REPOS or ORGANIZATION."
        )
        raise typer.Exit(1)
    exclude_list = parse_name_list(exclude)
    if exclude_list is None:
        exclude_list = settings.exclude_repos
    resources = validate_resources(resource)
    date_range = validate_range(since, until, settings.sync.default_lookback_days)
    text_output = output_format == OutputFormat.TEXT

    def on_progress(message: str) -> None:
        console.print(f"[dim]{message}[/dim]")

    async def _sync() -> SyncSummary:
        await create_tables()
        monitor = QuotaMonitor(settings.rate_limit)
        async with GitHubClient(quota_monitor=monitor) as client:
            targets = repo_list
            if not targets:
                discovery = await discover_repositories(
                    client, settings.organization, date_range, exclude_list
                )
                targets = discovery.active
                if text_output:
                    console.print(
                        f"[dim]Found {discovery.total} repositories in {settings.organization}: "
                        f"{len(discovery.active)} active, {len(discovery.excluded)} excluded, "
                        f"{len(discovery.inactive)} inactive since {date_range.start}[/dim]"
                    )
            units = build_units(targets, resources)
            if text_output:
                console.print(
                    f"[dim]Syncing {len(units)} units for {date_range}"
                    f"{' (forced)' if force else ''}...[/dim]"
                )
                console.print()

            try:
                async with get_session() as session:
                    fetchers = build_fetchers(client, session, settings)
                    orchestrator = SyncOrchestrator(
                        client=client,
                        coverage=SyncCoverageRepository(session),
                        estimator=QuotaEstimator(
                            fetchers, settings.quota, settings.sync.page_size
                        ),
                        fetchers=fetchers,
                        commit_manager=CommitManager(session, settings.sync.commit_batch_days),
                    )
                    return await orchestrator.sync(
                        units,
                        date_range,
                        force=force,
                        on_progress=on_progress if text_output else None,
                        skip_quota_check=skip_quota_check,
                    )
            except SyncAbortedError as e:
                return e.summary

    summary = run_async_command(_sync(), error_prefix="Sync failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(summary.to_dict()))
    else:
        _print_summary(summary)

    if summary.aborted:
        raise typer.Exit(1)


def _print_summary(summary: SyncSummary) -> None:
    table = Table(title="Sync Results")
    table.add_column("Unit", style="bold")
    table.add_column("State")
    table.add_column("Strategy")
    table.add_column("Days", justify="right")
    table.add_column("Cached", justify="right")
    table.add_column("Items", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Est. cost", justify="right")

    for result in summary.unit_results:
        style = _STATE_STYLES.get(result.state, "")
        state = f"[{style}]{result.state.value}[/{style}]" if style else result.state.value
        table.add_row(
            result.unit.label,
            state,
            result.strategy.value if result.strategy else "-",
            str(result.days_synced),
            str(result.days_cached),
            str(result.items_fetched),
            str(result.items_failed),
            str(result.estimated_cost) if result.estimated_cost is not None else "-",
        )

    console.print(table)
    console.print()
    console.print(f"  Items fetched:        {summary.items_fetched}")
    console.print(f"  Items already cached: {summary.items_skipped_cached}")
    console.print(f"  Days synced:          {summary.days_synced}")
    if summary.items_failed:
        console.print(f"  [red]Items failed:[/red]         {summary.items_failed}")
    if summary.units_skipped_quota:
        console.print(
            f"  [yellow]Skipped (quota):[/yellow]      {summary.units_skipped_quota} units"
        )
    console.print(f"  Duration: {summary.elapsed_seconds:.1f}s")

    if summary.errors:
        console.print()
        console.print("[bold]Errors:[/bold]")
        for unit, message in summary.errors:
            console.print(f"  {unit}: {message}")

    if summary.aborted:
        console.print()
        console.print(f"[bold red]Sync aborted:[/bold red] {summary.abort_reason}")
        if summary.resume_hint:
            console.print(f"[yellow]{summary.resume_hint}[/yellow]")


@app.command("coverage")
def sync_coverage(
    repo: RepoArgument,
    resource: ResourceOption = None,
    since: SinceOption = None,
    until: UntilOption = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show which days of a repository are synced and which are missing.

    Examples:
        activity-sync sync coverage prebid/prebid-server --since 30
        activity-sync sync coverage prebid/prebid-server --resource commits -f json
    """
    settings = get_settings()
    repo = validate_repo(repo)
    resources = validate_resources(resource)
    date_range = validate_range(since, until, settings.sync.default_lookback_days)
    units = build_units([repo], resources)

    async def _report() -> list[CoverageReport]:
        await create_tables()
        async with get_session() as session:
            service = CoverageService(SyncCoverageRepository(session))
            return [await service.coverage_report(unit, date_range) for unit in units]

    reports = run_async_command(_report(), error_prefix="Coverage check failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([r.to_dict() for r in reports]))
        return

    table = Table(title=f"Coverage of {repo} for {date_range}")
    table.add_column("Resource", style="bold")
    table.add_column("Synced", justify="right")
    table.add_column("Coverage", justify="right")
    table.add_column("Items", justify="right")
    table.add_column("Synced days")
    table.add_column("Missing days")
    for report in reports:
        data = report.to_dict()
        color = "green" if report.is_complete else "yellow"
        table.add_row(
            report.unit.resource_type,
            f"{len(report.synced_days)}/{date_range.day_count}",
            f"[{color}]{report.coverage_percent:.0f}%[/{color}]",
            str(report.items_synced),
            data["synced_ranges"],
            data["gap_ranges"],
        )
    console.print(table)


@app.command("reset")
def sync_reset(
    repo: RepoArgument,
    since: SinceOption = None,
    until: UntilOption = None,
    all_days: bool = typer.Option(
        False,
        "--all",
        help="Forget every recorded day instead of a range",
    ),
    resource: ResourceOption = None,
) -> None:
    """Forget synced days so the next run fetches them again.

    Stored activity is kept; only the coverage records are removed.

    Examples:
        activity-sync sync reset prebid/prebid-server --since 2025-01-01 --until 2025-01-07
        activity-sync sync reset prebid/prebid-server --resource commits --all
    """
    repo = validate_repo(repo)
    resources = validate_resources(resource)
    if all_days == (since is not None):
        console.print("[red]Error:[/red] Give either --since (with optional --until) or --all")
        raise typer.Exit(1)
    date_range = (
        None
        if all_days
        else validate_range(since, until, get_settings().sync.default_lookback_days)
    )
    units = build_units([repo], resources)

    async def _reset() -> dict[str, int]:
        await create_tables()
        async with get_session() as session:
            service = CoverageService(SyncCoverageRepository(session))
            if date_range is None:
                return {unit.label: await service.reset_unit(unit) for unit in units}
            return {unit.label: await service.reset_range(unit, date_range) for unit in units}

    removed = run_async_command(_reset(), error_prefix="Reset failed")
    for label, count in removed.items():
        console.print(f"  {label}: removed {count} day records")
    scope = "all days" if date_range is None else str(date_range)
    console.print(f"[green]Reset {sum(removed.values())} day records for {scope}[/green]")


@app.command("status")
def sync_status(
    org: str | None = typer.Option(
        None,
        "--org",
        help="Only show repositories of this organization",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show recorded days and items per repository and resource type.

    Examples:
        activity-sync sync status
        activity-sync sync status --org prebid --format json
    """

    async def _summary() -> list[CoverageSummaryRow]:
        await create_tables()
        async with get_session() as session:
            return await CoverageService(SyncCoverageRepository(session)).summary(org)

    rows = run_async_command(_summary(), error_prefix="Status check failed")

    if output_format == OutputFormat.JSON:
        console.print_json(
            json.dumps(
                [
                    {
                        "repository": f"{row.organization}/{row.repository}",
                        "resource_type": row.resource_type,
                        "days": row.day_count,
                        "items": row.total_items,
                        "first_day": row.first_day.isoformat(),
                        "last_day": row.last_day.isoformat(),
                        "last_synced_at": row.last_synced_at.isoformat(),
                    }
                    for row in rows
                ]
            )
        )
        return

    if not rows:
        console.print("[yellow]Nothing synced yet.[/yellow]")
        return

    table = Table(title="Sync Status")
    table.add_column("Repository", style="bold")
    table.add_column("Resource")
    table.add_column("Days", justify="right")
    table.add_column("Items", justify="right")
    table.add_column("First day")
    table.add_column("Last day")
    for row in rows:
        table.add_row(
            f"{row.organization}/{row.repository}",
            row.resource_type,
            str(row.day_count),
            str(row.total_items),
            row.first_day.isoformat(),
            row.last_day.isoformat(),
        )
    console.print(table)
