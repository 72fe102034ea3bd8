"""
Command-line interface for phonedir.

Provides CLI commands for administering directory sources, running
synchronization, browsing the directory and managing the background daemon.

Usage:
    # Show help
    phonedir --help

    # Register a source and mirror it
    phonedir source add "Head office" ldap.example.com --base-dn dc=example,dc=com
    phonedir sync

    # Browse
    phonedir list --page 2
    phonedir search smith
    phonedir list --division Engineering
"""

import sys
from pathlib import Path
from typing import NoReturn, Optional

import click

from phonedir import __version__
from phonedir.admin import DirectoryAdmin
from phonedir.cli.formatters import (
    show_batch_result,
    show_contact_detail,
    show_contact_page,
    show_dimensions,
    show_source,
    show_sync_result,
)
from phonedir.config import (
    DEFAULT_CONFIG_FILE,
    ConfigError,
    ConfigLoader,
    Settings,
    save_config_file,
)
from phonedir.directory import LdapFetcher
from phonedir.listing import ContactQueryService
from phonedir.storage.db import DirectoryDatabase, RecordNotFoundError
from phonedir.sync.contact import DimensionKind
from phonedir.sync.reconciler import ContactReconciler, SyncError
from phonedir.utils import resolve_config_dir
from phonedir.utils.logging import (
    cleanup_old_logs,
    get_log_file_path,
    get_logger,
    get_sync_audit_log_path,
    setup_logging,
    setup_sync_audit_logger,
)

# Lookup kinds accepted on the command line
KIND_CHOICES = [kind.value for kind in DimensionKind]

# Kinds usable as listing filters
FILTER_KINDS = (DimensionKind.DIVISION, DimensionKind.DEPARTMENT, DimensionKind.TITLE)


def get_config_file(config_dir: Path, config_file: Optional[str]) -> Path:
    """Get the configuration file path."""
    if config_file:
        return Path(config_file).expanduser()
    return config_dir / DEFAULT_CONFIG_FILE


def fail(message: str) -> NoReturn:
    """Print an error in red and exit with status 1."""
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


def open_database(ctx: click.Context) -> DirectoryDatabase:
    """Open (and create if needed) the configured database."""
    settings: Settings = ctx.obj["settings"]
    settings.database_path.parent.mkdir(parents=True, exist_ok=True)
    database = DirectoryDatabase(str(settings.database_path))
    database.initialize()
    return database


def build_reconciler(ctx: click.Context, database: DirectoryDatabase) -> ContactReconciler:
    """Create a reconciler wired to the LDAP fetcher and audit log."""
    settings: Settings = ctx.obj["settings"]
    if get_log_file_path(settings.log_dir) is not None:
        setup_sync_audit_logger(get_sync_audit_log_path(settings.log_dir))
    return ContactReconciler(
        database,
        LdapFetcher(page_size=settings.fetch_page_size),
        fetch_timeout=settings.fetch_timeout,
        lease_timeout=settings.lease_timeout,
        collect_orphan_dimensions=settings.collect_orphan_dimensions,
    )


@click.group()
@click.version_option(version=__version__, prog_name="phonedir")
@click.option(
    "--verbose", "-v", is_flag=True, help="Enable verbose output with detailed logging."
)
@click.option(
    "--config-dir",
    "-c",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    envvar="PHONEDIR_CONFIG_DIR",
    help="Configuration directory path (default: ~/.phonedir).",
)
@click.option(
    "--config-file",
    "-f",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    envvar="PHONEDIR_CONFIG_FILE",
    help="Configuration file path (default: <config dir>/config.yaml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_dir: Optional[str],
    config_file: Optional[str],
) -> None:
    """
    Corporate phone directory.

    Mirrors LDAP / Active Directory sources into a local database, merges
    them with manually entered contacts and lists everyone grouped by
    division and department.
    """
    ctx.ensure_object(dict)

    resolved_config_dir = resolve_config_dir(config_dir)
    resolved_config_file = get_config_file(resolved_config_dir, config_file)
    ctx.obj["config_dir"] = resolved_config_dir
    ctx.obj["config_file"] = resolved_config_file

    loader = ConfigLoader(config_dir=resolved_config_dir)
    try:
        config = loader.load_and_validate(resolved_config_file)
        settings = loader.settings(config)
    except ConfigError as e:
        # Keep working on defaults
        click.echo(
            click.style(f"Warning: Configuration error: {e}", fg="yellow"), err=True
        )
        config = {}
        settings = loader.settings(config)

    ctx.obj["config"] = config
    ctx.obj["settings"] = settings

    # CLI flag wins over the config file
    effective_verbose = verbose or settings.verbose
    ctx.obj["verbose"] = effective_verbose

    setup_logging(verbose=effective_verbose, log_dir=settings.log_dir)
    if settings.log_retention_count > 0 and get_log_file_path(settings.log_dir):
        cleanup_old_logs(log_dir=settings.log_dir, keep_count=settings.log_retention_count)


# =============================================================================
# Init-Config Command
# =============================================================================


@cli.command("init-config")
@click.option(
    "--force",
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

        phonedir init-config

        phonedir init-config --force
    """
    logger = get_logger(__name__)
    config_file = ctx.obj["config_file"]

    click.echo(f"Creating configuration file: {config_file}")
    success, error = save_config_file(config_file, overwrite=force)

    if not success:
        logger.error(f"Failed to create configuration file: {error}")
        fail(str(error))

    click.echo(click.style("Configuration file created successfully!", fg="green"))
    click.echo("\nNext steps:")
    click.echo("1. Edit the file to uncomment and configure desired options")
    click.echo("2. Run 'phonedir source add --help' to register a directory")


# =============================================================================
# Status Command
# =============================================================================


@cli.command("status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """
    Show sources, contact counts and last sync times.

    Example:

        phonedir status
    """
    logger = get_logger(__name__)
    settings: Settings = ctx.obj["settings"]

    try:
        database = open_database(ctx)
        sources = database.list_sources()
        per_source = database.count_source_contacts()

        click.echo("=== Phone Directory Status ===\n")
        click.echo(f"Configuration directory: {ctx.obj['config_dir']}")
        click.echo(f"Database: {settings.database_path}")
        click.echo(
            f"Contacts: {database.count_contacts()} stored, "
            f"{len(database.load_contacts())} visible"
        )
        click.echo()

        if not sources:
            click.echo("No directory sources configured.")
            click.echo("Run 'phonedir source add' to register one.")
            return

        click.echo("=== Sources ===\n")
        for source in sources:
            show_source(source, per_source.get(source.id, 0))  # type: ignore[arg-type]

    except Exception as e:
        logger.exception(f"Error getting status: {e}")
        fail(str(e))


# =============================================================================
# Source Commands
# =============================================================================


@cli.group("source")
def source_group() -> None:
    """
    Manage directory sources.

    Examples:

        phonedir source add HQ ldap.example.com --base-dn dc=example,dc=com

        phonedir source list

        phonedir source disable 2
    """


def _source_options(for_update: bool):  # type: ignore[no-untyped-def]
    """Shared options of `source add` and `source update`."""

    def decorate(func):  # type: ignore[no-untyped-def]
        default_port = None if for_update else 389
        options = [
            click.option("--base-dn", default=None, help="Search base DN."),
            click.option(
                "--port", type=int, default=default_port, show_default=not for_update,
                help="Server port.",
            ),
            click.option("--bind-dn", default=None, help="Bind account DN."),
            click.option(
                "--password",
                default=None,
                help="Bind password (omit on update to keep the stored one).",
            ),
            click.option("--filter", "search_filter", default=None, help="LDAP search filter."),
            click.option("--ssl/--no-ssl", "use_ssl", default=None, help="Use LDAPS."),
        ]
        for option in reversed(options):
            func = option(func)
        return func

    return decorate


@source_group.command("add")
@click.argument("name")
@click.argument("server")
@_source_options(for_update=False)
@click.option("--inactive", is_flag=True, help="Create the source deactivated.")
@click.pass_context
def source_add_command(
    ctx: click.Context,
    name: str,
    server: str,
    base_dn: Optional[str],
    port: int,
    bind_dn: Optional[str],
    password: Optional[str],
    search_filter: Optional[str],
    use_ssl: Optional[bool],
    inactive: bool,
) -> None:
    """Register a directory source NAME on SERVER."""
    logger = get_logger(__name__)
    try:
        admin = DirectoryAdmin(open_database(ctx), ctx.obj["settings"].collect_orphan_dimensions)
        source = admin.add_source(
            name,
            server,
            base_dn=base_dn or "",
            port=port,
            bind_dn=bind_dn or "",
            bind_password=password or "",
            search_filter=search_filter,
            use_ssl=bool(use_ssl),
            is_active=not inactive,
        )
    except ValueError as e:
        fail(str(e))
    except Exception as e:
        logger.exception(f"Failed to add source: {e}")
        fail(str(e))

    click.echo(click.style(f"Added source {source.name} (id {source.id}).", fg="green"))


@source_group.command("list")
@click.pass_context
def source_list_command(ctx: click.Context) -> None:
    """List all directory sources."""
    database = open_database(ctx)
    sources = database.list_sources()
    if not sources:
        click.echo("No directory sources configured.")
        return
    per_source = database.count_source_contacts()
    for source in sources:
        show_source(source, per_source.get(source.id, 0))  # type: ignore[arg-type]


@source_group.command("show")
@click.argument("source_id", type=int)
@click.pass_context
def source_show_command(ctx: click.Context, source_id: int) -> None:
    """Show one directory source."""
    database = open_database(ctx)
    try:
        source = database.get_source(source_id)
    except RecordNotFoundError as e:
        fail(str(e))
    show_source(source, database.count_source_contacts().get(source_id, 0))


@source_group.command("update")
@click.argument("source_id", type=int)
@click.option("--name", default=None, help="New display name.")
@click.option("--server", default=None, help="New server host.")
@_source_options(for_update=True)
@click.pass_context
def source_update_command(
    ctx: click.Context,
    source_id: int,
    name: Optional[str],
    server: Optional[str],
    base_dn: Optional[str],
    port: Optional[int],
    bind_dn: Optional[str],
    password: Optional[str],
    search_filter: Optional[str],
    use_ssl: Optional[bool],
) -> None:
    """Change settings of a directory source; unspecified settings are kept."""
    admin = DirectoryAdmin(open_database(ctx), ctx.obj["settings"].collect_orphan_dimensions)
    try:
        source = admin.update_source(
            source_id,
            name=name,
            server=server,
            base_dn=base_dn,
            port=port,
            bind_dn=bind_dn,
            bind_password=password,
            search_filter=search_filter,
            use_ssl=use_ssl,
        )
    except (RecordNotFoundError, ValueError) as e:
        fail(str(e))
    click.echo(click.style(f"Updated source {source.name}.", fg="green"))


@source_group.command("enable")
@click.argument("source_id", type=int)
@click.pass_context
def source_enable_command(ctx: click.Context, source_id: int) -> None:
    """Activate a source; its contacts become visible again."""
    admin = DirectoryAdmin(open_database(ctx))
    try:
        source = admin.set_source_active(source_id, True)
    except RecordNotFoundError as e:
        fail(str(e))
    click.echo(click.style(f"Source {source.name} is active.", fg="green"))


@source_group.command("disable")
@click.argument("source_id", type=int)
@click.pass_context
def source_disable_command(ctx: click.Context, source_id: int) -> None:
    """Deactivate a source; its contacts are hidden but kept."""
    admin = DirectoryAdmin(open_database(ctx))
    try:
        source = admin.set_source_active(source_id, False)
    except RecordNotFoundError as e:
        fail(str(e))
    click.echo(click.style(f"Source {source.name} is inactive.", fg="yellow"))


@source_group.command("remove")
@click.argument("source_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def source_remove_command(ctx: click.Context, source_id: int, yes: bool) -> None:
    """Delete a source together with all of its contacts."""
    admin = DirectoryAdmin(open_database(ctx), ctx.obj["settings"].collect_orphan_dimensions)
    try:
        source = admin.get_source(source_id)
    except RecordNotFoundError as e:
        fail(str(e))

    if not yes:
        click.confirm(
            f"Delete source {source.name} and all of its contacts?", abort=True
        )

    removed = admin.delete_source(source_id)
    click.echo(
        click.style(f"Deleted source {source.name} and {removed} contact(s).", fg="green")
    )


# =============================================================================
# Sync Command
# =============================================================================


@cli.command("sync")
@click.option(
    "--source",
    "-s",
    "source_id",
    type=int,
    default=None,
    help="Sync only this source (also works for inactive sources).",
)
@click.pass_context
def sync_command(ctx: click.Context, source_id: Optional[int]) -> None:
    """
    Mirror directory sources into the local database.

    Without --source every active source is synced; a failing source does
    not stop the others. Exits with status 1 if any source failed.

    Examples:

        phonedir sync

        phonedir sync --source 2
    """
    logger = get_logger(__name__)
    database = open_database(ctx)
    reconciler = build_reconciler(ctx, database)

    if source_id is not None:
        try:
            result = reconciler.sync_source(source_id)
        except RecordNotFoundError as e:
            fail(str(e))
        except SyncError as e:
            logger.debug(f"Sync of source {source_id} failed", exc_info=True)
            fail(f"Sync of source {source_id} failed: {e}")
        show_sync_result(result)
        return

    batch = reconciler.sync_all()
    show_batch_result(batch)
    if not batch.success:
        sys.exit(1)


# =============================================================================
# Listing Commands
# =============================================================================


def _page_options(func):  # type: ignore[no-untyped-def]
    func = click.option(
        "--page-size", type=click.IntRange(min=1), default=None,
        help="Contacts per page (default from config, 50).",
    )(func)
    func = click.option(
        "--page", "-p", type=click.IntRange(min=1), default=1, show_default=True,
        help="Page number.",
    )(func)
    return func


@cli.command("list")
@click.option("--division", default=None, help="Only contacts in this division.")
@click.option("--department", default=None, help="Only contacts in this department.")
@click.option("--title", default=None, help="Only contacts with this job title.")
@_page_options
@click.pass_context
def list_command(
    ctx: click.Context,
    division: Optional[str],
    department: Optional[str],
    title: Optional[str],
    page: int,
    page_size: Optional[int],
) -> None:
    """
    List the directory grouped by division and department.

    Examples:

        phonedir list

        phonedir list --department Finance --page 2
    """
    filters = {
        DimensionKind.DIVISION: division,
        DimensionKind.DEPARTMENT: department,
        DimensionKind.TITLE: title,
    }
    chosen = [(kind, name) for kind, name in filters.items() if name is not None]
    if len(chosen) > 1:
        raise click.UsageError("Use at most one of --division, --department, --title.")

    queries = ContactQueryService(open_database(ctx), ctx.obj["settings"].page_size)
    if chosen:
        kind, name = chosen[0]
        result = queries.get_by_dimension(kind, name, page, page_size)
    else:
        result = queries.get_all(page, page_size)
    show_contact_page(result)


@cli.command("search")
@click.argument("query", required=False, default="")
@_page_options
@click.pass_context
def search_command(
    ctx: click.Context, query: str, page: int, page_size: Optional[int]
) -> None:
    """
    Search names, emails, phones and organisation names.

    An empty query lists everyone.

    Example:

        phonedir search smith
    """
    queries = ContactQueryService(open_database(ctx), ctx.obj["settings"].page_size)
    show_contact_page(queries.search(query, page, page_size))


@cli.command("show")
@click.argument("contact_id", type=int)
@click.pass_context
def show_command(ctx: click.Context, contact_id: int) -> None:
    """Show one contact."""
    queries = ContactQueryService(open_database(ctx))
    try:
        contact = queries.get_by_id(contact_id)
    except RecordNotFoundError as e:
        fail(str(e))
    show_contact_detail(contact)


@cli.command("dimensions")
@click.argument("kind", type=click.Choice(KIND_CHOICES, case_sensitive=False))
@click.pass_context
def dimensions_command(ctx: click.Context, kind: str) -> None:
    """
    List the values of a lookup (id, weight, name), heaviest first.

    Example:

        phonedir dimensions department
    """
    dimension_kind = DimensionKind(kind.lower())
    queries = ContactQueryService(open_database(ctx))
    show_dimensions(dimension_kind, queries.list_dimension_values(dimension_kind))


# =============================================================================
# Manual Contact Commands
# =============================================================================


@cli.group("contact")
def contact_group() -> None:
    """
    Manage manually entered contacts.

    Directory contacts are maintained by sync and cannot be edited here.
    """


def _contact_options(func):  # type: ignore[no-untyped-def]
    for name in reversed(("email", "phone", "division", "department", "title", "company")):
        func = click.option(f"--{name}", default=None, help=f"Contact {name}.")(func)
    return func


@contact_group.command("add")
@click.argument("display_name")
@_contact_options
@click.pass_context
def contact_add_command(
    ctx: click.Context,
    display_name: str,
    email: Optional[str],
    phone: Optional[str],
    division: Optional[str],
    department: Optional[str],
    title: Optional[str],
    company: Optional[str],
) -> None:
    """Add a manual contact named DISPLAY_NAME."""
    admin = DirectoryAdmin(open_database(ctx))
    try:
        contact = admin.add_manual_contact(
            display_name,
            email=email or "",
            phone=phone or "",
            division=division,
            department=department,
            title=title,
            company=company,
        )
    except ValueError as e:
        fail(str(e))
    click.echo(click.style(f"Added contact {contact.display_name} (id {contact.id}).", fg="green"))


@contact_group.command("update")
@click.argument("contact_id", type=int)
@click.option("--name", "display_name", default=None, help="New display name.")
@_contact_options
@click.pass_context
def contact_update_command(
    ctx: click.Context,
    contact_id: int,
    display_name: Optional[str],
    email: Optional[str],
    phone: Optional[str],
    division: Optional[str],
    department: Optional[str],
    title: Optional[str],
    company: Optional[str],
) -> None:
    """Change a manual contact; pass an empty string to clear a field."""
    admin = DirectoryAdmin(open_database(ctx), ctx.obj["settings"].collect_orphan_dimensions)
    try:
        contact = admin.update_manual_contact(
            contact_id,
            display_name=display_name,
            email=email,
            phone=phone,
            division=division,
            department=department,
            title=title,
            company=company,
        )
    except (RecordNotFoundError, ValueError) as e:
        fail(str(e))
    click.echo(click.style(f"Updated contact {contact.display_name}.", fg="green"))


@contact_group.command("remove")
@click.argument("contact_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def contact_remove_command(ctx: click.Context, contact_id: int, yes: bool) -> None:
    """Delete a manual contact."""
    admin = DirectoryAdmin(open_database(ctx))
    if not yes:
        click.confirm(f"Delete contact {contact_id}?", abort=True)
    try:
        collected = admin.delete_manual_contact(contact_id)
    except RecordNotFoundError as e:
        fail(str(e))
    message = f"Deleted contact {contact_id}."
    if collected:
        message += f" Removed {collected} unused lookup value(s)."
    click.echo(click.style(message, fg="green"))


# =============================================================================
# Weight Commands
# =============================================================================


@cli.group("weight")
def weight_group() -> None:
    """
    Tune display priority of divisions, departments and titles.

    Weights range from 0 to 100; heavier values are listed first.
    """


@weight_group.command("adjust")
@click.argument("kind", type=click.Choice(KIND_CHOICES, case_sensitive=False))
@click.argument("dimension_id", type=int)
@click.argument("delta", type=int)
@click.pass_context
def weight_adjust_command(
    ctx: click.Context, kind: str, dimension_id: int, delta: int
) -> None:
    """
    Move a weight up or down by DELTA (clamped to 0..100).

    Example:

        phonedir weight adjust division 3 -- -10
    """
    admin = DirectoryAdmin(open_database(ctx))
    try:
        value = admin.adjust_weight(DimensionKind(kind.lower()), dimension_id, delta)
    except RecordNotFoundError as e:
        fail(str(e))
    click.echo(f"{value.name}: weight {value.weight}")


@weight_group.command("set")
@click.argument("kind", type=click.Choice(KIND_CHOICES, case_sensitive=False))
@click.argument("dimension_id", type=int)
@click.argument("weight", type=int)
@click.pass_context
def weight_set_command(
    ctx: click.Context, kind: str, dimension_id: int, weight: int
) -> None:
    """Set a weight to WEIGHT (clamped to 0..100)."""
    admin = DirectoryAdmin(open_database(ctx))
    try:
        value = admin.set_weight(DimensionKind(kind.lower()), dimension_id, weight)
    except RecordNotFoundError as e:
        fail(str(e))
    click.echo(f"{value.name}: weight {value.weight}")


# =============================================================================
# Daemon Commands
# =============================================================================


@cli.group("daemon")
def daemon_group() -> None:
    """
    Manage the background synchronization daemon.

    The daemon syncs all active sources at the configured interval.

    Examples:

        phonedir daemon start --interval 30m

        phonedir daemon status

        phonedir daemon stop
    """


@daemon_group.command("start")
@click.option(
    "--interval",
    "-i",
    default=None,
    help="Sync interval (e.g. '30s', '5m', '1h'). Defaults to config value or '1h'.",
)
@click.option(
    "--no-initial-sync",
    is_flag=True,
    help="Skip the initial sync on daemon startup.",
)
@click.pass_context
def daemon_start_command(
    ctx: click.Context, interval: Optional[str], no_initial_sync: bool
) -> None:
    """
    Run periodic sync in the foreground until SIGTERM/SIGINT.

    A running sync is always allowed to finish before the daemon exits.
    """
    logger = get_logger(__name__)
    settings: Settings = ctx.obj["settings"]

    from phonedir.daemon import (
        DaemonAlreadyRunningError,
        DaemonError,
        DaemonScheduler,
        parse_interval,
    )

    try:
        interval_seconds = parse_interval(interval) if interval else settings.sync_interval
    except ValueError as e:
        fail(str(e))

    if not settings.sync_enabled:
        click.echo(
            click.style("Background sync is disabled (sync_enabled: false).", fg="yellow")
        )
        return

    scheduler = DaemonScheduler(
        interval=interval_seconds,
        retry_delay=settings.sync_retry_delay,
        enabled=settings.sync_enabled,
        pid_file=settings.daemon_pid_file,
        run_immediately=not no_initial_sync,
    )

    database = open_database(ctx)
    reconciler = build_reconciler(ctx, database)

    def sync_callback() -> bool:
        batch = reconciler.sync_all()
        for result in batch.results:
            logger.info(result.summary())
        return batch.success

    scheduler.set_sync_callback(sync_callback)

    click.echo(f"Starting daemon with {interval_seconds}s sync interval (Ctrl+C to stop)")
    try:
        scheduler.run()
    except DaemonAlreadyRunningError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        click.echo("Use 'phonedir daemon stop' to stop the running daemon.")
        sys.exit(1)
    except DaemonError as e:
        logger.error(f"Daemon error: {e}")
        fail(f"Daemon error: {e}")

    click.echo(click.style("Daemon stopped gracefully.", fg="green"))


@daemon_group.command("stop")
@click.pass_context
def daemon_stop_command(ctx: click.Context) -> None:
    """Ask the running daemon to stop after its current sync."""
    from phonedir.daemon import DaemonScheduler

    pid_file = ctx.obj["settings"].daemon_pid_file
    pid = DaemonScheduler.get_running_pid(pid_file)
    if pid is None:
        click.echo("No daemon is currently running.")
        return

    click.echo(f"Stopping daemon (PID: {pid})...")
    if not DaemonScheduler.stop_running_daemon(pid_file):
        fail("Failed to send stop signal to daemon.")
    click.echo(click.style("Stop signal sent successfully.", fg="green"))


@daemon_group.command("status")
@click.pass_context
def daemon_status_command(ctx: click.Context) -> None:
    """Show whether the daemon is running."""
    from phonedir.daemon import DEFAULT_PID_FILE, DaemonScheduler, PIDFileError, PIDFileManager

    pid_file = ctx.obj["settings"].daemon_pid_file or DEFAULT_PID_FILE
    click.echo("=== Daemon Status ===\n")

    pid = DaemonScheduler.get_running_pid(pid_file)
    if pid is not None:
        click.echo(f"Status: {click.style('Running', fg='green')}")
        click.echo(f"Process ID: {pid}")
    else:
        click.echo(f"Status: {click.style('Stopped', fg='yellow')}")
        try:
            stale_pid = PIDFileManager(pid_file).read()
        except PIDFileError as e:
            stale_pid = None
            click.echo(f"Unreadable PID file: {e}")
        if stale_pid is not None:
            click.echo(f"Stale PID file exists (PID: {stale_pid})")

    if ctx.obj.get("verbose"):
        click.echo(f"\nPID file: {pid_file}")
