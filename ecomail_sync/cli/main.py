"""
Command-line interface for ecomail_sync.

Provides CLI commands for reconciling a Notion contact database with an
Ecomail subscriber list.

Usage:
    # Show help
    ecomail-sync --help

    # Push Notion decisions to Ecomail
    ecomail-sync sync
    ecomail-sync sync --dry-run --verbose

    # Mirror Ecomail state back into Notion
    ecomail-sync pull --dry-run

    # Write a documented default config file
    ecomail-sync init-config

Exit codes:
    0  every contact reconciled
    1  at least one contact failed
    2  configuration error (nothing was contacted)
    3  the run was aborted because a full listing failed
"""

import sys
from pathlib import Path

import click

from ecomail_sync import __version__
from ecomail_sync.api.ecomail_api import EcomailAPI
from ecomail_sync.api.http_client import EnumerationError, RequestClient
from ecomail_sync.api.notion_api import NotionAPI
from ecomail_sync.config.generator import save_config_file
from ecomail_sync.config.loader import DEFAULT_CONFIG_FILE, ConfigLoader, ConfigurationError
from ecomail_sync.config.settings import Settings
from ecomail_sync.sync.engine import SyncEngine
from ecomail_sync.sync.reverse import ReverseSyncEngine
from ecomail_sync.utils import resolve_config_dir
from ecomail_sync.utils.logging import cleanup_old_logs, get_logger, setup_logging

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG_ERROR = 2
EXIT_FATAL = 3


def get_config_dir(config_dir: str | None) -> Path:
    """Get the configuration directory path."""
    return resolve_config_dir(config_dir)


def get_config_file(config_file: str | None, config_dir: Path) -> Path:
    """Get the configuration file path."""
    if config_file:
        return Path(config_file).expanduser()
    return config_dir / DEFAULT_CONFIG_FILE


def load_settings(ctx: click.Context) -> Settings:
    """
    Validate settings for a command, exiting with EXIT_CONFIG_ERROR on failure.

    Runs before any client is built, so a bad configuration never reaches
    the network.
    """
    logger = get_logger(__name__)

    error = ctx.obj.get("config_error")
    if error is None:
        try:
            return Settings.from_sources(ctx.obj.get("config", {}))
        except ConfigurationError as e:
            error = e

    logger.error(f"Configuration error: {error}")
    click.echo(click.style(f"Configuration error: {error}", fg="red"), err=True)
    sys.exit(EXIT_CONFIG_ERROR)


def build_request_client(settings: Settings) -> RequestClient:
    return RequestClient(
        timeout=settings.request_timeout,
        max_attempts=settings.max_attempts,
        retry_delay=settings.retry_delay,
        rate_limit_delay=settings.rate_limit_delay,
        max_retry_delay=settings.max_retry_delay,
    )


def build_services(settings: Settings) -> tuple[EcomailAPI, NotionAPI]:
    """Construct both service wrappers around one shared RequestClient."""
    client = build_request_client(settings)
    ecomail = EcomailAPI(
        client,
        api_key=settings.ecomail_api_key,
        list_id=settings.ecomail_list_id,
        base_url=settings.ecomail_base_url,
        trigger_autoresponders=settings.trigger_autoresponders,
        resubscribe=settings.resubscribe,
    )
    notion = NotionAPI(
        client,
        token=settings.notion_token,
        database_id=settings.notion_database_id,
        property_map=settings.property_map,
        base_url=settings.notion_base_url,
        notion_version=settings.notion_version,
        page_size=settings.page_size,
    )
    return ecomail, notion


@click.group()
@click.version_option(version=__version__, prog_name="ecomail-sync")
@click.option(
    "--verbose", "-v", is_flag=True, help="Enable verbose output with detailed logging."
)
@click.option(
    "--config-dir",
    "-c",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    envvar="ECOMAIL_SYNC_CONFIG_DIR",
    help="Configuration directory path (default: ~/.ecomail-sync).",
)
@click.option(
    "--config-file",
    "-f",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    envvar="ECOMAIL_SYNC_CONFIG_FILE",
    help="Configuration file path (default: ~/.ecomail-sync/config.yaml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_dir: str | None,
    config_file: str | None,
) -> None:
    """
    Notion -> Ecomail contact sync.

    Notion is the source of truth for who should receive marketing email.
    Each run brings the Ecomail list in line with the Notion database.
    """
    ctx.ensure_object(dict)

    resolved_config_dir = get_config_dir(config_dir)
    resolved_config_file = get_config_file(config_file, resolved_config_dir)

    ctx.obj["config_dir"] = resolved_config_dir
    ctx.obj["config_file"] = resolved_config_file

    # A broken config file only fails commands that need settings
    config = {}
    ctx.obj["config_error"] = None
    try:
        loader = ConfigLoader(config_dir=resolved_config_dir)
        config = loader.load_from_file(resolved_config_file)
        if config:
            loader.validate(config)
    except ConfigurationError as e:
        ctx.obj["config_error"] = e
        config = {}

    ctx.obj["config"] = config

    effective_verbose = verbose or config.get("verbose", False)
    ctx.obj["verbose"] = effective_verbose

    log_dir = None
    if config.get("log_dir"):
        log_dir = Path(config["log_dir"]).expanduser()

    setup_logging(verbose=effective_verbose, log_dir=log_dir, enable_file_logging=True)

    log_retention = config.get("log_retention_count", 10)
    if log_retention > 0:
        cleanup_old_logs(log_dir=log_dir, keep_count=log_retention)


# =============================================================================
# Init Config Command
# =============================================================================


@cli.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Overwrite existing configuration file if it exists.",
)
@click.pass_context
def init_config_command(ctx: click.Context, force: bool) -> None:
    """
    Generate a default configuration file.

    Creates a configuration file with all available options documented
    and commented out.

    Examples:

        # Create config file (fails if already exists)
        ecomail-sync init-config

        # Overwrite existing config file
        ecomail-sync init-config --force
    """
    logger = get_logger(__name__)
    config_file = ctx.obj["config_file"]

    click.echo(f"Creating configuration file: {config_file}")

    success, error = save_config_file(config_file, overwrite=force)

    if success:
        click.echo(click.style("Configuration file created successfully!", fg="green"))
        click.echo(f"\nLocation: {config_file}")
        click.echo("\nNext steps:")
        click.echo("1. Set NOTION_TOKEN, NOTION_DATABASE_ID, ECOMAIL_API_KEY and")
        click.echo("   ECOMAIL_LIST_ID in the environment")
        click.echo("2. Run 'ecomail-sync sync --dry-run' to preview a sync")
    else:
        click.echo(click.style(f"Error: {error}", fg="red"), err=True)
        logger.error(f"Failed to create configuration file: {error}")
        sys.exit(EXIT_FAILURES)


# =============================================================================
# Sync Command
# =============================================================================


@cli.command("sync")
@click.option(
    "--dry-run", "-n", is_flag=True, help="Preview changes without applying them."
)
@click.option(
    "--limit",
    "-l",
    type=click.IntRange(min=1),
    default=None,
    help="Only process the first N contacts.",
)
@click.pass_context
def sync_command(ctx: click.Context, dry_run: bool, limit: int | None) -> None:
    """
    Push Notion subscription decisions to Ecomail.

    Contacts marked as opted in are subscribed (or have their tags and
    profile updated), contacts marked as opted out are unsubscribed, and
    contacts without a decision are left alone.

    Examples:

        # Preview changes without applying
        ecomail-sync sync --dry-run

        # Try the first 10 contacts only
        ecomail-sync sync --limit 10
    """
    logger = get_logger(__name__)
    settings = load_settings(ctx)
    effective_dry_run = dry_run or settings.dry_run

    ecomail, notion = build_services(settings)
    engine = SyncEngine(
        ecomail,
        source=notion,
        pacing_delay=settings.pacing_delay,
        dry_run=effective_dry_run,
    )

    if effective_dry_run:
        click.echo(click.style("DRY RUN - no changes will be made\n", fg="yellow"))

    try:
        summary = engine.sync(limit=limit)
    except EnumerationError as e:
        logger.error(f"Sync aborted: {e}")
        click.echo(click.style(f"\nSync aborted: {e}", fg="red"), err=True)
        if e.summary is not None:
            click.echo(e.summary.summary(), err=True)
        sys.exit(EXIT_FATAL)

    click.echo(summary.summary())

    if summary.has_failures:
        click.echo(
            click.style(
                f"\nWarning: {summary.failed} contacts failed.", fg="yellow"
            ),
            err=True,
        )
    sys.exit(summary.exit_code)


# =============================================================================
# Pull Command
# =============================================================================


@cli.command("pull")
@click.option(
    "--dry-run", "-n", is_flag=True, help="Preview changes without applying them."
)
@click.pass_context
def pull_command(ctx: click.Context, dry_run: bool) -> None:
    """
    Mirror Ecomail subscriber state back into Notion.

    Updates the intent column, tags, name, surname and company of every
    Notion row whose email is on the Ecomail list.

    Example:

        ecomail-sync pull --dry-run
    """
    logger = get_logger(__name__)
    settings = load_settings(ctx)
    effective_dry_run = dry_run or settings.dry_run

    ecomail, notion = build_services(settings)
    engine = ReverseSyncEngine(
        ecomail,
        notion,
        property_map=settings.property_map,
        dry_run=effective_dry_run,
        pacing_delay=settings.pacing_delay,
    )

    if effective_dry_run:
        click.echo(click.style("DRY RUN - no changes will be made\n", fg="yellow"))

    try:
        summary = engine.pull()
    except EnumerationError as e:
        logger.error(f"Pull aborted: {e}")
        click.echo(click.style(f"\nPull aborted: {e}", fg="red"), err=True)
        sys.exit(EXIT_FATAL)

    click.echo(summary.summary())
    sys.exit(summary.exit_code)


# =============================================================================
# Health Command
# =============================================================================


@cli.command("health")
def health_command() -> None:
    """
    Check application health status.

    Example:

        ecomail-sync health
    """
    click.echo("healthy")
