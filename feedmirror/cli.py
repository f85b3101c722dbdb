"""
FeedMirror command line interface.

Usage:
    feedmirror sync                       # Sync all sources
    feedmirror sync --backend s3          # Publish to object storage
    feedmirror sync --source 1a2b3c4d5e6f # Sync selected sources only
    feedmirror check-config               # Validate configuration
    feedmirror list-sources               # Show configured sources
    feedmirror add-source URL             # Register a feed URL
    feedmirror hash IDENTIFIER            # Print an item key
"""

import asyncio
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config.settings import StorageBackend, load_settings
from .processing.addressing import content_hash
from .processing.pipeline import SyncStatus, build_pipeline
from .storage import SourceRepository
from .utils.exceptions import ConfigurationError, FeedMirrorError, get_user_friendly_message
from .utils.logging import configure_application_logging

console = Console()

_STATUS_STYLES = {
    SyncStatus.SYNCED: "[green]synced[/green]",
    SyncStatus.UNMODIFIED: "[dim]unmodified[/dim]",
    SyncStatus.PARTIAL: "[yellow]partial[/yellow]",
    SyncStatus.FAILED: "[red]failed[/red]",
}


def _load(ctx):
    settings = load_settings()
    if ctx.obj.get("debug"):
        settings.debug = True
    return settings


def _configure_logging(settings) -> None:
    configure_application_logging(
        log_level=settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


@click.group(invoke_without_command=True)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, debug):
    """FeedMirror - anonymous RSS/Atom feed mirror."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option(
    "--backend",
    type=click.Choice([b.value for b in StorageBackend]),
    default=None,
    help="Override the configured storage backend",
)
@click.option("--source", "source_ids", multiple=True, help="Only sync these source ids")
@click.pass_context
def sync(ctx, backend, source_ids):
    """Fetch every source and publish new items and manifests."""
    try:
        settings = _load(ctx)
        if backend:
            settings.storage.backend = StorageBackend(backend)
        _configure_logging(settings)
        pipeline = build_pipeline(settings)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error: {escape(str(e))}[/bold red]")
        sys.exit(1)

    run_result = asyncio.run(pipeline.run(source_ids or None))

    table = Table(title="Sync Results")
    table.add_column("Source", style="cyan")
    table.add_column("Status")
    table.add_column("Items", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Details")

    for result in run_result.results:
        table.add_row(
            result.source_id,
            _STATUS_STYLES[result.status],
            str(result.items_total),
            str(result.items_written),
            escape(result.error or ""),
        )

    console.print(table)
    console.print(
        f"Processed {len(run_result.results)} sources, "
        f"{run_result.items_written} new items in "
        f"{run_result.processing_time_seconds:.2f}s"
    )


@cli.command("check-config")
@click.pass_context
def check_config(ctx):
    """Validate configuration and environment variables."""
    try:
        settings = _load(ctx)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error: {escape(str(e))}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    checks = [
        ("Paths", _check_paths),
        ("Fetching", _check_fetch),
        ("Storage", _check_storage),
        ("Formatting", _check_formatting),
    ]

    all_passed = True
    for name, check_func in checks:
        status, details = check_func(settings)
        table.add_row(name, "[green]valid[/green]" if status else "[red]invalid[/red]", details)
        all_passed = all_passed and status

    console.print(table)

    if not all_passed:
        console.print("[bold red]Configuration validation failed[/bold red]")
        sys.exit(1)
    console.print("[bold green]All configuration checks passed[/bold green]")


@cli.command("list-sources")
@click.pass_context
def list_sources(ctx):
    """List configured sources (ids only, never URLs)."""
    settings = _load(ctx)
    repository = SourceRepository(settings.paths.sources_dir)

    table = Table(title=f"Sources in {settings.paths.sources_dir}")
    table.add_column("Source", style="cyan")
    table.add_column("Cached")
    table.add_column("Last-Modified")

    sources = repository.list_sources()
    for source in sources:
        table.add_row(
            source.id,
            "yes" if source.has_validators else "-",
            source.last_modified or "-",
        )

    console.print(table)
    console.print(f"{len(sources)} sources")


@cli.command("add-source")
@click.argument("url")
@click.pass_context
def add_source(ctx, url):
    """Register a feed URL as a new source."""
    settings = _load(ctx)
    repository = SourceRepository(settings.paths.sources_dir)

    try:
        source = repository.create(url)
    except FeedMirrorError as e:
        console.print(f"[bold red]{escape(get_user_friendly_message(e))}[/bold red]")
        sys.exit(1)

    console.print(f"Added source [cyan]{source.id}[/cyan]")


@cli.command("hash")
@click.argument("identifier")
def hash_identifier(identifier):
    """Print the item key for IDENTIFIER (a guid or link)."""
    click.echo(content_hash(identifier))


def _check_paths(settings) -> tuple[bool, str]:
    sources_dir = settings.paths.sources_dir
    repository = SourceRepository(sources_dir)
    if not repository.sources_dir.is_dir():
        return False, f"Missing sources directory: {sources_dir}"
    return True, (
        f"sources={sources_dir}, feeds={settings.paths.feeds_dir}, "
        f"items={settings.paths.items_dir}"
    )


def _check_fetch(settings) -> tuple[bool, str]:
    return True, f"Timeout: {settings.fetch.timeout_seconds}s"


def _check_storage(settings) -> tuple[bool, str]:
    storage = settings.storage
    if storage.backend == StorageBackend.S3:
        missing = storage.missing_credentials()
        if missing:
            return False, f"Missing: {', '.join(missing)}"
        return True, f"s3://{storage.bucket}/{storage.key_prefix} ({storage.cache_control})"
    return True, "filesystem"


def _check_formatting(settings) -> tuple[bool, str]:
    delimiters = ", ".join(repr(d) for d in settings.formatting.title_delimiters)
    return True, f"Title delimiters: {delimiters}"


def main() -> None:
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]FeedMirror interrupted by user[/yellow]")
        sys.exit(130)
