"""CLI commands for the company trend pipeline."""

import json
import sys
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import click
import httpx
import structlog
import yaml

from corptrends import __version__
from corptrends.collectors.metrics import CollectorMetrics
from corptrends.collectors.platform import build_collector
from corptrends.collectors.runner import CollectorRunner, RunnerResult
from corptrends.config.error_hints import format_validation_error
from corptrends.config.loader import CompanyCatalogLoader, ConfigValidationError
from corptrends.fetch.metrics import FetchMetrics
from corptrends.ingest.normalizer import ArticleNormalizer
from corptrends.matcher.company_matcher import CompanyMatcher
from corptrends.observability.logging import (
    bind_run_context,
    configure_logging,
    resolve_log_level,
)
from corptrends.ranker import (
    InfluenceScoreCalculator,
    RankingGenerator,
    RankingHistoryTracker,
    RankingPeriod,
    ScoreWeights,
)
from corptrends.ranker.metrics import RankerMetrics
from corptrends.settings.app import AppSettings, get_settings
from corptrends.store.metrics import StoreMetrics
from corptrends.store.models import PlatformTag
from corptrends.store.store import StateStore


logger = structlog.get_logger()

COMPONENT_CLI = "cli"

# Pseudo-period of the rank command that generates every period
ALL_PERIODS = "all-periods"


def _logging_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the shared logging options to a command."""
    func = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        help="Enable verbose logging.",
    )(func)
    return click.option(
        "--json-logs/--no-json-logs",
        default=True,
        help="Use JSON format for logs (default: true).",
    )(func)


def _db_option(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the shared ``--db`` option to a command."""
    return click.option(
        "--db",
        "db_path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Path to SQLite database (default: CORPTRENDS_DB_PATH).",
    )(func)


def _start_command(
    command: str, json_logs: bool, verbose: bool
) -> tuple[str, structlog.typing.FilteringBoundLogger]:
    """Configure logging and bind the run context of a command.

    Returns:
        Tuple of (run_id, bound logger).
    """
    run_id = str(uuid.uuid4())
    configure_logging(level=resolve_log_level(verbose), json_format=json_logs)
    bind_run_context(run_id, command=command)
    log = logger.bind(run_id=run_id, component=COMPONENT_CLI, command=command)
    return run_id, log  # type: ignore[return-value]


def _resolve_db_path(db_path: Path | None, settings: AppSettings) -> Path:
    return db_path if db_path is not None else settings.db_path


def _echo_runner_summary(summary: RunnerResult) -> None:
    """Print the per-platform result of a scrape run."""
    click.echo("Scrape Summary")
    click.echo("=" * 40)
    click.echo(f"  Run ID: {summary.run_id}")
    click.echo(f"  Dry run: {summary.dry_run}")
    click.echo(f"  Fetched: {summary.total_fetched}")
    click.echo(f"  Saved: {summary.total_saved}")
    click.echo(f"  Duration: {summary.duration_ms:.0f} ms")
    click.echo("")
    for platform, result in sorted(summary.platform_results.items()):
        status = "ok" if result.success else "FAILED"
        line = f"  {platform}: {status} fetched={result.fetched}"
        if result.normalize is not None:
            n = result.normalize
            line += (
                f" new={n.new} updated={n.updated} unchanged={n.unchanged}"
                f" matched={n.matched} failed={n.failed}"
            )
        click.echo(line)
        if result.error is not None:
            click.echo(f"    {result.error.describe()}", err=True)
        for entry in result.error_log:
            status_code = entry.status_code if entry.status_code is not None else "-"
            click.echo(
                f"    attempt {entry.attempt} {entry.url}"
                f" status={status_code}: {entry.error}",
                err=True,
            )


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """Company tech-article trend ranking CLI."""


@cli.command()
@click.option(
    "--platform",
    "platforms",
    multiple=True,
    type=click.Choice([p.value for p in PlatformTag]),
    help="Platform to scrape (repeatable; default: all).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Match records without writing to the database.",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=1,
    help="Platforms scraped in parallel (default: 1).",
)
@click.option(
    "--popular",
    "include_popular",
    is_flag=True,
    help="Also scrape Hatena Bookmark's all-category hot entries.",
)
@click.option(
    "--create-companies",
    is_flag=True,
    help="Create inactive companies for unmatched organization articles.",
)
@_db_option
@_logging_options
@click.pass_context
def scrape(  # noqa: PLR0913
    ctx: click.Context,
    platforms: tuple[str, ...],
    dry_run: bool,
    workers: int,
    include_popular: bool,
    create_companies: bool,
    db_path: Path | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Scrape trending listings and ingest them.

    Exits with status 1 when any platform failed.
    """
    run_id, log = _start_command("scrape", json_logs, verbose)
    settings = get_settings()
    transport: httpx.BaseTransport | None = (ctx.obj or {}).get("transport")
    selected = [PlatformTag(p) for p in platforms] or list(PlatformTag)

    log.info(
        "scrape_started",
        platforms=[p.value for p in selected],
        dry_run=dry_run,
        workers=workers,
        create_companies=create_companies,
    )

    collectors = [
        build_collector(p, settings, run_id=run_id, transport=transport)
        for p in selected
    ]
    with StateStore(_resolve_db_path(db_path, settings), run_id=run_id) as store:
        matcher = CompanyMatcher.from_store(store, run_id=run_id)
        normalizer = ArticleNormalizer(
            store, matcher, run_id=run_id, create_companies=create_companies
        )
        runner = CollectorRunner(normalizer, run_id=run_id, max_workers=workers)
        summary = runner.run(
            collectors, dry_run=dry_run, include_popular=include_popular
        )

    log.info(
        "scrape_complete",
        total_fetched=summary.total_fetched,
        total_saved=summary.total_saved,
        fetch_metrics=FetchMetrics.get_instance().to_dict(),
        collector_metrics=CollectorMetrics.get_instance().to_dict(),
        store_metrics=StoreMetrics.get_instance().to_dict(),
    )
    _echo_runner_summary(summary)
    if not summary.success:
        log.warning("scrape_failed", platforms_failed=sorted(summary.errors))
        sys.exit(1)


@cli.command()
@click.option(
    "--period",
    type=click.Choice([p.value for p in RankingPeriod] + [ALL_PERIODS]),
    default=ALL_PERIODS,
    show_default=True,
    help="Ranking period to generate.",
)
@click.option(
    "--date",
    "reference_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Last day of the ranking window (default: today, UTC).",
)
@click.option(
    "--record-history/--no-record-history",
    default=True,
    help="Record rank changes against the previous ranking (default: true).",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=1,
    help="Periods generated in parallel (default: 1).",
)
@_db_option
@_logging_options
def rank(  # noqa: PLR0913
    period: str,
    reference_date: datetime | None,
    record_history: bool,
    workers: int,
    db_path: Path | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Generate company rankings and print their statistics."""
    run_id, log = _start_command("rank", json_logs, verbose)
    settings = get_settings()
    reference = reference_date.replace(tzinfo=UTC) if reference_date else None

    with StateStore(_resolve_db_path(db_path, settings), run_id=run_id) as store:
        calculator = InfluenceScoreCalculator(
            store, weights=ScoreWeights.from_settings(settings), run_id=run_id
        )
        generator = RankingGenerator(store, calculator, settings, run_id=run_id)
        tracker = RankingHistoryTracker(
            store, retention_days=settings.history_retention_days, run_id=run_id
        )

        if period == ALL_PERIODS:
            generated = generator.generate_all_rankings(reference, max_workers=workers)
        else:
            selected = RankingPeriod(period)
            generated = {
                selected: generator.generate_ranking_for_period(selected, reference)
            }

        history_counts: dict[str, int] = {}
        change_statistics: dict[str, dict[str, int | float | str]] = {}
        if record_history:
            for generated_period, snapshot in generated.items():
                changes = tracker.record_ranking_history(
                    generated_period, snapshot.calculated_at
                )
                history_counts[generated_period.value] = len(changes)
                period_stats = tracker.get_ranking_change_statistics(generated_period)
                if period_stats is not None:
                    change_statistics[generated_period.value] = period_stats.to_dict()

        statistics = generator.get_ranking_statistics()

    log.info(
        "rank_complete",
        periods=[p.value for p in generated],
        history_rows=sum(history_counts.values()),
        change_statistics=change_statistics,
        ranker_metrics=RankerMetrics.get_instance().to_dict(),
        store_metrics=StoreMetrics.get_instance().to_dict(),
    )

    click.echo("Ranking Statistics")
    click.echo("=" * 72)
    click.echo(
        f"  {'period':<6} {'companies':>9} {'avg':>9} {'max':>9}"
        f" {'articles':>9} {'bookmarks':>10} {'changes':>8}"
    )
    for generated_period in generated:
        stats = statistics[generated_period.value]
        changes_label = (
            str(history_counts[generated_period.value])
            if generated_period.value in history_counts
            else "-"
        )
        click.echo(
            f"  {generated_period.value:<6} {stats['total_companies']:>9}"
            f" {stats['average_score']:>9.2f} {stats['max_score']:>9.2f}"
            f" {stats['total_articles']:>9} {stats['total_bookmarks']:>10}"
            f" {changes_label:>8}"
        )


@cli.command("history-cleanup")
@_db_option
@_logging_options
def history_cleanup(db_path: Path | None, json_logs: bool, verbose: bool) -> None:
    """Delete ranking history older than the retention window."""
    run_id, _ = _start_command("history-cleanup", json_logs, verbose)
    settings = get_settings()

    with StateStore(_resolve_db_path(db_path, settings), run_id=run_id) as store:
        tracker = RankingHistoryTracker(
            store, retention_days=settings.history_retention_days, run_id=run_id
        )
        deleted = tracker.cleanup_old_history()

    click.echo(f"Deleted {deleted} history rows.")


@cli.command("seed-companies")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to companies.yaml.",
)
@_db_option
@_logging_options
def seed_companies(
    config_path: Path, db_path: Path | None, json_logs: bool, verbose: bool
) -> None:
    """Upsert the companies of a catalog file (keyed by domain)."""
    run_id, log = _start_command("seed-companies", json_logs, verbose)
    settings = get_settings()
    loader = CompanyCatalogLoader(run_id=run_id)

    try:
        catalog = loader.load(config_path)
    except ConfigValidationError as e:
        click.echo("Company catalog validation failed:", err=True)
        for error in e.errors:
            formatted = format_validation_error(
                location=error["loc"],
                message=error["msg"],
                error_type=error.get("type", "unknown"),
            )
            click.echo(f"  - {formatted}", err=True)
        sys.exit(1)
    except yaml.YAMLError as e:
        log.warning("config_load_failed", error=str(e))
        click.echo(f"Invalid YAML in {config_path}: {e}", err=True)
        sys.exit(1)

    with StateStore(_resolve_db_path(db_path, settings), run_id=run_id) as store:
        for company_config in catalog.companies:
            store.upsert_company(company_config.to_company())

    log.info("companies_seeded", company_count=len(catalog.companies))
    click.echo(f"Seeded {len(catalog.companies)} companies.")


@cli.command()
@click.option(
    "--all",
    "all_articles",
    is_flag=True,
    help="Re-match every article, not only unassigned ones.",
)
@_db_option
@_logging_options
def rematch(
    all_articles: bool, db_path: Path | None, json_logs: bool, verbose: bool
) -> None:
    """Re-run company matching over stored articles."""
    run_id, _ = _start_command("rematch", json_logs, verbose)
    settings = get_settings()

    with StateStore(_resolve_db_path(db_path, settings), run_id=run_id) as store:
        matcher = CompanyMatcher.from_store(store, run_id=run_id)
        normalizer = ArticleNormalizer(store, matcher, run_id=run_id)
        changed = normalizer.rematch_articles(only_unassigned=not all_articles)

    click.echo(f"Reassigned {changed} articles.")


@cli.command("db-stats")
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output as JSON.",
)
@_db_option
@_logging_options
def db_stats(
    json_output: bool, db_path: Path | None, json_logs: bool, verbose: bool
) -> None:
    """Display database statistics.

    Shows row counts for all tables and the schema version.
    """
    run_id, _ = _start_command("db-stats", json_logs, verbose)
    settings = get_settings()

    with StateStore(_resolve_db_path(db_path, settings), run_id=run_id) as store:
        stats = store.get_stats()
        schema_version = store.get_schema_version()

    if json_output:
        output = {"schema_version": schema_version, "tables": stats}
        click.echo(json.dumps(output, indent=2))
    else:
        click.echo("Database Statistics")
        click.echo("=" * 40)
        click.echo(f"  Schema Version: {schema_version}")
        click.echo("")
        click.echo("Table Row Counts:")
        for table, count in sorted(stats.items()):
            click.echo(f"  {table}: {count}")


if __name__ == "__main__":
    cli()
