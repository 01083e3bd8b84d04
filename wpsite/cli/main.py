"""
wpsite CLI - create and remove local WordPress sites.

Commands:
    wpsite create <site> <admin-user> <admin-password> <admin-email> <db-name> <db-user> <db-password>
    wpsite remove <site> <db-name> <db-user>
    wpsite info <site>
    wpsite list
    wpsite status
    wpsite version

The short flag forms (-rm, -info, -list, -status) are accepted too.
"""

import os
import sys
from typing import List, Optional, Sequence

import click

from wpsite.config import Settings
from wpsite.core.errors import (
    DecommissionError,
    SiteError,
    UnavailableError,
    ValidationError,
)
from wpsite.core.models import SiteRequest, StepOutcome
from wpsite.core.validation import validate_removal
from wpsite.factory import build_toolkit
from wpsite.logging import get_site_logger, setup_logging
from wpsite.report import format_bytes

logger = get_site_logger(__name__)

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

LEGACY_COMMANDS = {
    "-rm": "remove",
    "--remove": "remove",
    "-info": "info",
    "--info": "info",
    "-list": "list",
    "--list": "list",
    "-status": "status",
    "--status": "status",
}

CREATE_ARG_COUNT = 7

_DEFAULTS = Settings()


def normalize_args(argv: Sequence[str]) -> List[str]:
    """
    Map flag-style invocations onto subcommands.

    Example:
        normalize_args(["-rm", "demo", "demo_db", "demo_user"])
        # ['remove', 'demo', 'demo_db', 'demo_user']
        normalize_args(["demo", "admin1", "pw", "a@b.co", "db", "user", "pw2"])
        # ['create', 'demo', ...]
    """
    args = list(argv)
    if not args:
        return args

    first = args[0]
    if first in LEGACY_COMMANDS:
        return [LEGACY_COMMANDS[first]] + args[1:]

    # Bare positional form: wpsite <site> <admin-user> ... <db-password>
    if (len(args) == CREATE_ARG_COUNT and not first.startswith("-")
            and first not in cli.commands):
        return ["create"] + args

    return args


@click.group(invoke_without_command=True, context_settings=CONTEXT_SETTINGS)
@click.option("--web-root", envvar="WPSITE_WEB_ROOT",
              help=f"Web root (default: {_DEFAULTS.web_root})")
@click.option("--sites-available", envvar="WPSITE_SITES_AVAILABLE",
              help=f"Apache sites-available dir (default: {_DEFAULTS.sites_available_dir})")
@click.option("--sites-enabled", envvar="WPSITE_SITES_ENABLED",
              help=f"Apache sites-enabled dir (default: {_DEFAULTS.sites_enabled_dir})")
@click.option("--log-dir", envvar="WPSITE_APACHE_LOG_DIR",
              help=f"Apache log dir (default: {_DEFAULTS.apache_log_dir})")
@click.option("--hosts-file", envvar="WPSITE_HOSTS_FILE",
              help=f"Hosts file (default: {_DEFAULTS.hosts_file})")
@click.option("--db-host", envvar="WPSITE_DB_HOST", help="MySQL host")
@click.option("--db-port", envvar="WPSITE_DB_PORT", type=int, help="MySQL port")
@click.option("--db-admin-user", envvar="WPSITE_DB_ADMIN_USER",
              help="MySQL account used for provisioning (default: root)")
@click.option("--db-admin-password", envvar="WPSITE_DB_ADMIN_PASSWORD",
              help="Password of the provisioning account")
@click.option("--db-socket", envvar="WPSITE_DB_SOCKET", help="MySQL unix socket")
@click.option("--owner", envvar="WPSITE_OWNER",
              help=f"Owner of site files (default: {_DEFAULTS.owner})")
@click.option("--timeout", envvar="WPSITE_COMMAND_TIMEOUT", type=float,
              help="Timeout in seconds for external commands")
@click.option("--log-level", envvar="WPSITE_LOG_LEVEL", default="INFO",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Log level (default: INFO)")
@click.option("--skip-root-check", is_flag=True, envvar="WPSITE_SKIP_ROOT_CHECK",
              help="Do not require root for create/remove")
@click.pass_context
def cli(ctx, web_root, sites_available, sites_enabled, log_dir, hosts_file,
        db_host, db_port, db_admin_user, db_admin_password, db_socket, owner,
        timeout, log_level, skip_root_check):
    """wpsite - local WordPress sites on Apache and MySQL."""
    setup_logging(log_level)

    settings = _DEFAULTS.with_overrides(
        web_root=web_root,
        sites_available_dir=sites_available,
        sites_enabled_dir=sites_enabled,
        apache_log_dir=log_dir,
        hosts_file=hosts_file,
        db_host=db_host,
        db_port=db_port,
        db_user=db_admin_user,
        db_password=db_admin_password,
        db_unix_socket=db_socket,
        owner=owner,
        command_timeout=timeout,
    )
    if skip_root_check:
        settings = settings.with_overrides(require_root=False)
    ctx.obj = settings

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("site")
@click.argument("admin_user")
@click.argument("admin_password")
@click.argument("admin_email")
@click.argument("db_name")
@click.argument("db_user")
@click.argument("db_password")
@click.pass_obj
def create(settings: Settings, site: str, admin_user: str, admin_password: str,
           admin_email: str, db_name: str, db_user: str, db_password: str):
    """
    Create a WordPress site.

    Example:
        sudo wpsite create demo demo_admin 's3cret!' me@example.com demo_db demo_user dbpass
    """
    _require_root(settings)

    try:
        request = SiteRequest.from_args(
            site, admin_user, admin_password, admin_email, db_name, db_user, db_password
        )
        info = build_toolkit(settings).provisioner.provision(request)
    except SiteError as e:
        _fail(e)

    click.echo()
    click.secho("Site created:", fg="green")
    click.echo(f"  Site URL:        {info.url}")
    click.echo(f"  Admin URL:       {info.url}/wp-admin")
    click.echo(f"  Admin user:      {info.admin_user}")
    click.echo(f"  Directory:       {info.directory}")
    click.echo(f"  Database:        {info.database}")
    click.echo(f"  Database user:   {info.database_user}")
    click.echo(f"  Apache config:   {info.vhost_config}")


@cli.command()
@click.argument("site")
@click.argument("db_name")
@click.argument("db_user")
@click.pass_obj
def remove(settings: Settings, site: str, db_name: str, db_user: str):
    """
    Permanently remove a site, its database and its database user.

    Example:
        sudo wpsite remove demo demo_db demo_user
    """
    _require_root(settings)

    try:
        validate_removal(site, db_name, db_user)
    except SiteError as e:
        _fail(e)

    logger.warning_banner("WARNING: This operation is destructive!", [
        f"You are about to permanently delete the WordPress site: {site}",
        "",
        "This will remove:",
        f"  - Site directory: {settings.site_dir(site)}",
        f"  - Apache configuration: {settings.vhost_path(site)}",
        f"  - Database: {db_name}",
        f"  - Database user: {db_user}",
        f"  - Hosts file entry: {settings.hosts_line(site)}",
        "",
        "This action cannot be undone!",
    ])

    confirmed = (
        click.confirm("Are you sure you want to continue?", default=False)
        and click.prompt("Type the site name to confirm", default="",
                         show_default=False) == site
    )
    if not confirmed:
        click.echo("Operation cancelled.")
        return

    try:
        report = build_toolkit(settings).decommissioner.decommission(
            site, db_name, db_user, confirmed=True
        )
    except DecommissionError as e:
        if e.report is not None:
            _print_removal(e.report)
        _fail(e)
    except SiteError as e:
        _fail(e)

    _print_removal(report)
    click.secho(f"\nSite removed: {site}", fg="green")


@cli.command()
@click.argument("site")
@click.pass_obj
def info(settings: Settings, site: str):
    """Show details of one site."""
    status = build_toolkit(settings).inspector.inspect(site)

    if not status.directory_exists:
        click.secho(f"Site directory does not exist: {status.directory}", fg="red")
        sys.exit(1)

    click.echo(f"Site Information: {site}\n")
    click.echo("Site Details:")
    click.echo(f"  Directory:   {status.directory}")
    click.echo(f"  URL:         {status.url}")
    click.echo(f"  Size:        {format_bytes(status.size_bytes)}")
    click.echo(f"  Files:       {status.files}")
    click.echo(f"  Directories: {status.directories}")

    click.echo("\nApache Status:")
    click.echo(f"  Status:        {'Enabled' if status.enabled else 'Disabled'}")
    click.echo(f"  Configuration: {'Present' if status.vhost_config_exists else 'Missing'}")
    click.echo(f"  Hosts entry:   {'Present' if status.hosts_entry else 'Missing'}")

    click.echo()
    if status.wordpress_installed:
        click.echo("WordPress:")
        click.echo(f"  Version:     {status.wordpress_version or 'Unknown'}")
        click.echo(f"  Site URL:    {status.home_url or 'Unknown'}")
        click.echo(f"  Admin Email: {status.admin_email or 'Unknown'}")
        click.echo(f"  Site Title:  {status.title or 'Unknown'}")
    else:
        click.echo("WordPress: Not installed or corrupted")

    if status.database:
        click.echo("\nDatabase:")
        click.echo(f"  Name:   {status.database}")
        if status.database_exists is None:
            click.echo("  Status: Unknown")
        elif not status.database_exists:
            click.echo("  Status: Missing")
        else:
            click.echo(f"  Size:   {format_bytes(status.database_size or 0)}")
            click.echo(f"  Tables: {status.table_count}")


@cli.command("list")
@click.pass_obj
def list_sites(settings: Settings):
    """List sites under the web root."""
    toolkit = build_toolkit(settings)
    sites = toolkit.inspector.list_sites()

    if not sites:
        click.echo(f"No sites found in {settings.web_root}")
    else:
        click.echo(f"{'SITE':<30} {'TYPE':<16} {'APACHE'}")
        click.echo("-" * 60)
        for site in sites:
            kind = "WordPress" if site.wordpress else "Directory only"
            state = "enabled" if site.enabled else "-"
            click.echo(f"{site.name:<30} {kind:<16} {state}")

    enabled = toolkit.webserver.enabled_sites()
    click.echo("\nEnabled Apache sites:")
    for name in enabled:
        click.echo(f"  {name}")
    if not enabled:
        click.echo("  (none)")


@cli.command()
@click.pass_obj
def status(settings: Settings):
    """Show host environment and dependency status."""
    env = build_toolkit(settings).inspector.environment()

    click.echo("System Information:")
    click.echo(f"  OS:             {env.distro} {env.distro_version}".rstrip())
    click.echo(f"  Kernel:         {env.kernel}")
    click.echo(f"  Architecture:   {env.arch}")
    click.echo(f"  Apache Version: {env.apache_version}")
    click.echo(f"  MySQL Version:  {env.mysql_version}")
    click.echo(f"  WP-CLI Version: {env.wp_cli_version}")

    click.echo("\nDependencies:")
    for probe in env.probes:
        if probe.available:
            click.echo(f"  {probe.component:<10} ", nl=False)
            click.secho("OK", fg="green")
        else:
            click.echo(f"  {probe.component:<10} ", nl=False)
            click.secho(f"UNAVAILABLE ({', '.join(probe.reasons)})", fg="red")

    click.echo("\nDisk Space:")
    if env.disk is None:
        click.echo("  Unable to check disk space")
    else:
        click.echo(f"  {settings.web_root}: {format_bytes(env.disk.free)} free "
                   f"of {format_bytes(env.disk.total)}")

    click.echo("\nApache Modules:")
    click.echo(f"  {', '.join(env.modules) if env.modules else '(unavailable)'}")

    click.echo("\nAvailable Sites:")
    for vhost in env.vhosts:
        click.echo(f"  {vhost.name} ({'enabled' if vhost.enabled else 'disabled'})")
    if not env.vhosts:
        click.echo("  (none)")


@cli.command()
def version():
    """Show wpsite version."""
    from wpsite import __version__
    click.echo(f"wpsite version {__version__}")


def _require_root(settings: Settings) -> None:
    if settings.require_root and os.geteuid() != 0:
        click.secho("This command must be run as root (or pass --skip-root-check)", fg="red")
        sys.exit(1)


def _fail(error: SiteError) -> None:
    """Print an error with its resource/step context and exit 1."""
    click.secho(f"Error: {error.message}", fg="red")

    if isinstance(error, ValidationError):
        for problem in error.problems:
            click.secho(f"  ! {problem}", fg="red")
    elif isinstance(error, UnavailableError):
        for probe in error.statuses:
            click.secho(f"  ! {probe.component}: {', '.join(probe.reasons)}", fg="red")

    resource = getattr(error, "resource", None)
    step = getattr(error, "step", None)
    if resource and step:
        click.echo(f"  resource: {resource}")
        click.echo(f"  step:     {step}")

    if error.compensation is not None:
        click.echo("\nCleanup was attempted:")
        if not error.compensation.records:
            click.echo("  (nothing to undo)")
        for record in error.compensation.records:
            if record.outcome == StepOutcome.FAILED:
                click.secho(f"  ! {record.step} ({record.resource}): {record.error}", fg="red")
            else:
                click.echo(f"  - {record.step} ({record.resource}): {record.outcome.value}")
        if not error.compensation.clean:
            click.secho("Some resources may need manual cleanup.", fg="yellow")

    sys.exit(1)


def _print_removal(report) -> None:
    labels = {
        StepOutcome.REMOVED: ("removed", "green"),
        StepOutcome.ABSENT: ("already absent", "yellow"),
        StepOutcome.FAILED: ("failed", "red"),
    }
    click.echo()
    for record in report.records:
        label, color = labels.get(record.outcome, (record.outcome.value, None))
        if record.outcome == StepOutcome.ABSENT and record.detail:
            label = record.detail
        click.echo(f"  {record.step:<24} ", nl=False)
        click.secho(label, fg=color)
        if record.outcome == StepOutcome.FAILED and record.detail:
            click.secho(f"      {record.detail}", fg="red")


def main(argv: Optional[Sequence[str]] = None):
    """Entry point for CLI."""
    args = normalize_args(sys.argv[1:] if argv is None else argv)
    cli.main(args=args, prog_name="wpsite")


if __name__ == "__main__":
    main()
