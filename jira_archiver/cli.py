"""Command line entry point: resolve issues, then mirror their attachments."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import click

from jira_archiver.core.config import load_settings
from jira_archiver.core.errors import ArchiverError
from jira_archiver.core.jira_client import JiraAPI
from jira_archiver.core.models import DateFilters
from jira_archiver.core.progress import ProgressReporter
from jira_archiver.core.query import compose_query
from jira_archiver.core.report import summarize, write_report
from jira_archiver.core.resolver import IssueResolver
from jira_archiver.core.sync import ArchiveSynchronizer

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])
DATE = click.DateTime(formats=["%Y-%m-%d"])

logger = logging.getLogger(__name__)


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@contextmanager
def _cancel_on_interrupt(cancel: threading.Event) -> Iterator[None]:
    """First Ctrl-C stops new requests; in-flight ones finish."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):
        if cancel.is_set():
            raise KeyboardInterrupt
        click.echo("Cancelling after in-flight requests (Ctrl-C again to abort)", err=True)
        cancel.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option("--issue", "-i", "issues", multiple=True, help="Issue key to archive (repeatable).")
@click.option("--start", help="First key of an inclusive range, e.g. ABC-10.")
@click.option("--end", help="Last key of an inclusive range, e.g. ABC-20.")
@click.option("--jql", help="Free-form JQL fragment selecting issues.")
@click.option("--last-days", type=click.IntRange(min=0), help="Only issues updated in the last N days.")
@click.option("--today", is_flag=True, help="Only issues updated since the start of today.")
@click.option("--after", type=DATE, help="Only issues updated on or after YYYY-MM-DD.")
@click.option("--before", type=DATE, help="Only issues updated on or before YYYY-MM-DD.")
@click.option("--pattern", help="Filename wildcard, e.g. '*.pdf'.")
@click.option(
    "--dest",
    type=click.Path(file_okay=False, path_type=Path),
    help="Archive root directory (default: current directory).",
)
@click.option("--server", help="Jira base URL (overrides JIRA_SERVER).")
@click.option("--email", help="Jira account email / username (overrides JIRA_EMAIL).")
@click.option("--token", help="Jira API token (overrides JIRA_API_TOKEN).")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML settings file (default: ./jira-archiver.yaml if present).",
)
@click.option("--page-size", type=click.IntRange(min=1), help="Page size hint for fallback search.")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Per-request timeout in seconds.")
@click.option("--workers", type=click.IntRange(min=1), help="Issues processed concurrently.")
@click.option("--dry-run/--no-dry-run", default=None, help="Report what would be downloaded without writing.")
@click.option(
    "--report",
    "report_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write a CSV of per-attachment outcomes.",
)
@click.option("--verbose", "-v", count=True, help="-v for info, -vv for debug logging.")
def main(
    issues: tuple[str, ...],
    start: str | None,
    end: str | None,
    jql: str | None,
    last_days: int | None,
    today: bool,
    after: datetime | None,
    before: datetime | None,
    pattern: str | None,
    dest: Path | None,
    server: str | None,
    email: str | None,
    token: str | None,
    config_path: Path | None,
    page_size: int | None,
    timeout: float | None,
    workers: int | None,
    dry_run: bool | None,
    report_path: Path | None,
    verbose: int,
) -> None:
    """Mirror Jira issue attachments into DEST/<ISSUE-KEY>/<filename>."""
    _configure_logging(verbose)
    filters = DateFilters(
        last_days=last_days,
        today=today,
        after=after.date() if after else None,
        before=before.date() if before else None,
    )
    query = compose_query(jql, filters)

    try:
        settings = load_settings(
            config_path,
            server=server,
            email=email,
            token=token,
            archive_root=dest,
            page_size=page_size,
            timeout=timeout,
            max_workers=workers,
            dry_run=dry_run,
        )
        api = JiraAPI(settings)
        keys = IssueResolver(api).resolve(issues, start, end, query)
    except ArchiverError as exc:
        raise click.ClickException(str(exc)) from exc

    if not keys:
        click.echo("No issues to process")
        return

    cancel = threading.Event()
    reporter = ProgressReporter(f"Archiving {len(keys)} issue(s) into {settings.archive_root}", quiet=verbose == 0)
    try:
        api.connect()
        with _cancel_on_interrupt(cancel):
            result = ArchiveSynchronizer(api, settings).run(
                keys, pattern=pattern, progress=reporter.callback, cancel=cancel
            )
    except ArchiverError as exc:
        reporter.error(str(exc))
        raise click.ClickException(str(exc)) from exc

    for key, message in result.issue_failures.items():
        click.echo(f"{key}: {message}", err=True)
    for outcome in result.outcomes:
        if outcome.error:
            click.echo(f"{outcome.issue_key}/{outcome.filename}: {outcome.error}", err=True)

    summary = summarize(result)
    reporter.complete("Done")
    click.echo(summary)
    if report_path is not None:
        logger.info("Report written to %s", write_report(result, report_path))
