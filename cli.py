#!/usr/bin/env python3
"""Indexing CLI — bulk Google indexing requests for your Search Console sites."""

import logging
import sys
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from engines.config import (
    CONFIG_PATH, IndexOptions, credential_path_from_config, load_config, resolve_options, settings_from_config,
)
from engines.errors import IndexerError
from engines.status import IndexingStatus
from engines.submission import SubmissionOutcome

console = Console()

STATUS_EMOJI = {
    IndexingStatus.SUBMITTED_AND_INDEXED: "✅",
    IndexingStatus.DUPLICATE_WITHOUT_USER_SELECTED_CANONICAL: "😵",
    IndexingStatus.CRAWLED_CURRENTLY_NOT_INDEXED: "👀",
    IndexingStatus.DISCOVERED_CURRENTLY_NOT_INDEXED: "👀",
    IndexingStatus.PAGE_WITH_REDIRECT: "🔀",
    IndexingStatus.URL_IS_UNKNOWN_TO_GOOGLE: "❓",
    IndexingStatus.RATE_LIMITED: "🚦",
}

OUTCOME_LABELS = {
    SubmissionOutcome.NEWLY_SUBMITTED: "[green]+[/] Indexing requested. It may take a few days for Google to process it.",
    SubmissionOutcome.ALREADY_REQUESTED: "[yellow]=[/] Indexing already requested previously.",
    SubmissionOutcome.PERMANENT_FAILURE: "[red]x[/] Could not request indexing this run.",
}


def _trunc(text: str, width: int = 45) -> str:
    """Truncate text with ellipsis if too long."""
    if len(text) <= width:
        return text
    return text[:width - 1] + "…"


def get_emoji_for_status(status: IndexingStatus) -> str:
    return STATUS_EMOJI.get(status, "❌")


def _fail(message: str):
    console.print(f"[red]ERROR:[/] {message}")
    sys.exit(1)


def _load_config(path: Path = CONFIG_PATH) -> dict:
    try:
        return load_config(path)
    except IndexerError as e:
        _fail(str(e))


def _credentials(cfg: dict, client_email, private_key, key_path):
    from engines.auth import get_credentials

    options = resolve_options(args={"client-email": client_email, "private-key": private_key, "path": key_path})
    path = options.path or credential_path_from_config(cfg)
    return get_credentials(options.client_email, options.private_key, path)


def _print_checked(report):
    console.print()
    console.print(f"[bold]Done, here's the indexing status of all {len(report.pages)} pages:[/]")
    for status, count in report.counts().items():
        console.print(f"   • {get_emoji_for_status(status)} {status.value}: {count} pages")
    console.print()

    if not report.queue:
        console.print("[dim]There are no pages that can be indexed for now.[/]")
    else:
        console.print(f"[bold]Found {len(report.queue)} pages that can be indexed.[/]")
        for url in report.queue:
            console.print(f"   • {url}")
    console.print()


def _print_submitted(url: str, outcome: SubmissionOutcome):
    console.print(f"  {_trunc(url, 70)}")
    console.print(f"    {OUTCOME_LABELS[outcome]}")


# ─── CLI ─────────────────────────────────────────────────────────────────


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose):
    """Indexing CLI — bulk Google indexing requests for your Search Console sites."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    # discovery client chatter
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)


@cli.command()
@click.argument("site")
@click.option("--client-email", default=None, help="Service account email (env GIS_CLIENT_EMAIL)")
@click.option("--private-key", default=None, help="Service account private key (env GIS_PRIVATE_KEY)")
@click.option("--path", "key_path", default=None, help="Service account JSON key file (env GIS_PATH)")
@click.option("--urls", default=None, help="Comma-separated URLs to check instead of the sitemaps (env GIS_URLS)")
@click.option("--rpm-retry/--no-rpm-retry", default=None,
              help="Wait and retry when the per-minute quota is hit (env GIS_QUOTA_RPM_RETRY)")
def index(site, client_email, private_key, key_path, urls, rpm_retry):
    """Check every URL of SITE and request indexing for the ones Google hasn't indexed."""
    from engines.pipeline import run_index

    cfg = _load_config()
    try:
        settings = settings_from_config(cfg)
        options = resolve_options(
            IndexOptions(),
            args={"client-email": client_email, "private-key": private_key, "path": key_path,
                  "urls": urls, "rpm-retry": rpm_retry},
        )
        if options.path is None:
            options.path = credential_path_from_config(cfg)

        report = run_index(
            site, options, settings,
            on_batch_complete=lambda i, n: console.print(f"  [dim]Batch {i + 1} of {n} complete[/]"),
            on_checked=_print_checked,
            on_submitted=_print_submitted,
        )
    except IndexerError as e:
        _fail(str(e))

    failed = sum(1 for o in report.outcomes.values() if o is SubmissionOutcome.PERMANENT_FAILURE)
    submitted = sum(1 for o in report.outcomes.values() if o is SubmissionOutcome.NEWLY_SUBMITTED)
    console.print()
    console.print(f"[bold]All done![/] {submitted} submitted, {failed} failed, cache: {report.cache_file}")


@cli.command()
@click.argument("url")
@click.option("--site", "site", default=None, help="Search Console property (default: derived from URL)")
@click.option("--path", "key_path", default=None, help="Service account JSON key file (env GIS_PATH)")
def inspect(url, site, key_path):
    """Check indexing status of a single URL."""
    from urllib.parse import urlparse
    from engines.google_sc import check_site_url, convert_to_site_url, inspect_url

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        _fail(f"{url} is not a full URL, include the scheme (https://...).")

    cfg = _load_config()
    try:
        creds = _credentials(cfg, None, None, key_path)
        site_url = check_site_url(creds, convert_to_site_url(site or parsed.netloc))
    except IndexerError as e:
        _fail(str(e))

    try:
        result = inspect_url(creds, site_url, url)
    except Exception as e:
        _fail(str(e))

    idx = result.get("indexStatusResult", {})
    coverage = idx.get("coverageState", "?")
    color = "green" if coverage == IndexingStatus.SUBMITTED_AND_INDEXED.value else "red"

    table = Table(title=f"URL Inspection — {url}", box=box.ROUNDED)
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("Coverage", f"[{color}]{coverage}[/]")
    table.add_row("Robots", idx.get("robotsTxtState", "?"))
    table.add_row("Indexing", idx.get("indexingState", "?"))
    table.add_row("Last crawl", idx.get("lastCrawlTime", "?"))
    table.add_row("Page fetch", idx.get("pageFetchState", "?"))
    console.print(table)


@cli.command()
@click.option("--path", "key_path", default=None, help="Service account JSON key file (env GIS_PATH)")
def sites(key_path):
    """List Search Console properties the service account can access."""
    from engines.google_sc import list_sites

    cfg = _load_config()
    try:
        creds = _credentials(cfg, None, None, key_path)
    except IndexerError as e:
        _fail(str(e))

    entries = list_sites(creds)
    table = Table(title=f"Search Console — {len(entries)} properties", box=box.ROUNDED)
    table.add_column("Property", style="bold")
    table.add_column("Permission")
    for s in entries:
        table.add_row(s.get("siteUrl", "?"), s.get("permissionLevel", "?"))
    console.print(table)


def main():
    cli()


if __name__ == "__main__":
    main()
