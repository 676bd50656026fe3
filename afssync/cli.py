"""CLI interface for afssync."""

import logging
from typing import Any, Optional

import click

from .api import ShareClient
from .config import (
    DESTINATION_CONNECTION_STRING,
    DESTINATION_SHARE,
    SOURCE_CONNECTION_STRING,
    SOURCE_SHARE,
    config,
)
from .exceptions import AfsConfigError, AfsSyncError, SyncFailedError
from .output import OutputFormatter

logger = logging.getLogger(__name__)

# Number of individual failures listed before summarizing the rest
MAX_LISTED_FAILURES = 10


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="afssync")
@click.pass_context
def main(ctx: Any, quiet: bool, verbose: bool) -> None:
    """afssync - Mirror one cloud file share onto another."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format=(
                "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"
            ),
            datefmt="%H:%M:%S",
        )
        logging.getLogger("afssync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--source",
    prompt="Source connection string",
    hide_input=True,
    help="Connection string of the source storage account",
)
@click.option("--source-share", prompt="Source share name", help="Source share")
@click.option(
    "--destination",
    prompt="Destination connection string",
    hide_input=True,
    help="Connection string of the destination storage account",
)
@click.option(
    "--destination-share", prompt="Destination share name", help="Destination share"
)
@click.pass_context
def init(
    ctx: Any,
    source: str,
    source_share: str,
    destination: str,
    destination_share: str,
) -> None:
    """Store source and destination settings.

    Settings are written to ~/.config/afssync/config for future runs.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        pairs = ((source, source_share), (destination, destination_share))
        for conn_str, share in pairs:
            ShareClient.from_connection_string(conn_str, share)
    except AfsConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    config.save(
        {
            SOURCE_CONNECTION_STRING: source,
            SOURCE_SHARE: source_share,
            DESTINATION_CONNECTION_STRING: destination,
            DESTINATION_SHARE: destination_share,
        }
    )
    out.success("Configuration saved successfully")
    out.info(f"Config file: {config.get_config_path()}")


@main.command()
@click.option(
    "--source", "-s", help="Source connection string (default: from config)"
)
@click.option("--source-share", help="Source share name (default: from config)")
@click.option(
    "--destination", "-d", help="Destination connection string (default: from config)"
)
@click.option(
    "--destination-share", help="Destination share name (default: from config)"
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=1),
    default=None,
    help="Number of parallel workers (default: 32)",
)
@click.option(
    "--max-concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Cap on operations running at once (default: same as --workers)",
)
@click.option(
    "--sas-expiry",
    type=click.IntRange(min=1),
    default=None,
    help="Lifetime in minutes of copy-source tokens (default: 30)",
)
@click.option("--dry-run", is_flag=True, help="Show what would be done")
@click.option("--pause", is_flag=True, help="Wait for a key press before exiting")
@click.pass_context
def sync(
    ctx: Any,
    source: Optional[str],
    source_share: Optional[str],
    destination: Optional[str],
    destination_share: Optional[str],
    workers: Optional[int],
    max_concurrency: Optional[int],
    sas_expiry: Optional[int],
    dry_run: bool,
    pause: bool,
) -> None:
    """Mirror the source share onto the destination share.

    Files missing on the destination or with a different size are copied
    server-side; destination files and folders that do not exist in the
    source are deleted. Files of equal size are assumed identical.

    Examples:
        afssync sync                                 # Use stored settings
        afssync sync --dry-run                       # Preview changes
        afssync sync -w 8                            # Use 8 workers
        afssync sync -s "$SRC" --source-share data -d "$DST" --destination-share data
    """
    from .sync import SyncEngine

    out: OutputFormatter = ctx.obj["out"]

    source = source or config.source_connection_string
    source_share = source_share or config.source_share
    destination = destination or config.destination_connection_string
    destination_share = destination_share or config.destination_share

    missing = [
        name
        for name, value in (
            ("--source", source),
            ("--source-share", source_share),
            ("--destination", destination),
            ("--destination-share", destination_share),
        )
        if not value
    ]
    if missing:
        out.error(
            f"Missing settings: {', '.join(missing)}. "
            "Pass them as options, set AFSSYNC_* variables or run 'afssync init'."
        )
        ctx.exit(1)

    try:
        max_workers = workers or config.max_concurrency
        expiry = sas_expiry or config.sas_expiry_minutes
        source_client = ShareClient.from_connection_string(
            source or "", source_share or ""
        )
        destination_client = ShareClient.from_connection_string(
            destination or "", destination_share or ""
        )
    except AfsConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    out.info(f"Syncing: {source_client.share_url} -> {destination_client.share_url}")
    out.print("")

    try:
        with source_client, destination_client:
            engine = SyncEngine(
                source_client,
                destination_client,
                output=out,
                max_workers=max_workers,
                max_concurrency=max_concurrency,
                sas_expiry_minutes=expiry,
            )
            engine.sync(dry_run=dry_run)
    except SyncFailedError as e:
        out.error(str(e))
        for operation, error in e.failures[:MAX_LISTED_FAILURES]:
            out.error(f"  {operation.relative_path}: {error}")
        if len(e.failures) > MAX_LISTED_FAILURES:
            out.error(f"  ... and {len(e.failures) - MAX_LISTED_FAILURES} more")
        ctx.exit(1)
    except AfsSyncError as e:
        out.error(str(e))
        ctx.exit(1)

    out.success("Finished.")
    if pause:
        click.pause()


if __name__ == "__main__":
    main()
