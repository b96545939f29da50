from __future__ import annotations

import dataclasses
import json
import sys

import click
from rich.console import Console

from .admin.registry import BACKEND_REGISTRY, make_admin_api
from .config import Config, save_to_env
from .directory import ensure_organizational_unit, remove_organizational_unit
from .errors import AmbiguousTargetError, SpAdminError
from .links import link_service_applications
from .logutil import init_logging
from .models import ReportOptions, SearchApplicationHandle
from .run_logger import RunLogger, NullRunLogger
from .search.reports import get_index_reports
from .settings import settings

console = Console()


def _api(ctx: click.Context):
    try:
        return make_admin_api(ctx.obj["config"])
    except SpAdminError as exc:
        raise click.ClickException(str(exc)) from exc


def _raw_json(result) -> str:
    if isinstance(result, SearchApplicationHandle):
        data = dataclasses.asdict(result)
    else:
        data = {name: dataclasses.asdict(handle) for name, handle in (result or {}).items()}
    return json.dumps(data, indent=2, default=str)


@click.group()
@click.version_option(package_name="spadmin")
@click.option("--backend", type=click.Choice(list(BACKEND_REGISTRY.keys())), help="Administration backend")
@click.option("--gateway-url", type=str, help="Base URL of the administration gateway (http backend)")
@click.option("--fixture", type=click.Path(exists=True, dir_okay=False), help="JSON fixture for the dummy backend")
@click.pass_context
def cli_main(ctx: click.Context, backend: str | None, gateway_url: str | None, fixture: str | None) -> None:
    """spadmin — SharePoint search index reports and AD helpers."""
    ctx.ensure_object(dict)
    cfg = Config.from_env()
    if backend:
        cfg.backend = backend
    if gateway_url:
        cfg.gateway_url = gateway_url
    if fixture:
        cfg.fixture = fixture
    ctx.obj["config"] = cfg
    init_logging(cfg)


@cli_main.command("index-report")
@click.argument("targets", nargs=-1)
@click.option("--detailed", is_flag=True, help="Expand every optional section")
@click.option("--include-disk-reports", is_flag=True, help="Measure index folders on each indexer host")
@click.option("--include-extra-log-reports", is_flag=True, help="Allow a fresh log merge when no export is current")
@click.option("--skip-report-generation", is_flag=True, help="Only refresh cached data")
@click.option("--raw", "raw", is_flag=True, help="Print the collected data as JSON instead of tables")
@click.option("--trace/--no-trace", default=False, help="Show pipeline stages")
@click.pass_context
def index_report_cmd(
    ctx: click.Context,
    targets: tuple[str, ...],
    detailed: bool,
    include_disk_reports: bool,
    include_extra_log_reports: bool,
    skip_report_generation: bool,
    raw: bool,
    trace: bool,
) -> None:
    """Report index health for one or more search service applications."""
    api = _api(ctx)
    options = ReportOptions(
        detailed=detailed,
        include_disk_reports=include_disk_reports,
        include_extra_log_reports=include_extra_log_reports,
        skip_report_generation=skip_report_generation,
        return_raw_data_only=raw,
    )
    logger = RunLogger(console) if trace else NullRunLogger()
    try:
        result = get_index_reports(api, list(targets) or None, options, console=console, run_logger=logger)
    except AmbiguousTargetError as exc:
        raise click.ClickException(f"{exc}. Pass the search application name as an argument.") from exc
    except SpAdminError as exc:
        raise click.ClickException(str(exc)) from exc

    if raw and not skip_report_generation:
        sys.stdout.write(_raw_json(result) + "\n")


@cli_main.group("ou")
def ou_cmd() -> None:
    """Active Directory organizational units."""


@ou_cmd.command("create")
@click.argument("dn")
@click.option("--unprotected", is_flag=True, help="Do not protect new OUs from accidental deletion")
@click.pass_context
def ou_create_cmd(ctx: click.Context, dn: str, unprotected: bool) -> None:
    api = _api(ctx)
    try:
        created = ensure_organizational_unit(api, dn, protect=not unprotected)
    except SpAdminError as exc:
        raise click.ClickException(str(exc)) from exc
    if not created:
        console.print(f"[yellow]Already present:[/] {dn}")
        return
    for item in created:
        console.print(f"[green]Created →[/green] {item}")


@ou_cmd.command("remove")
@click.argument("dn")
@click.option("--recursive/--no-recursive", default=True, help="Also delete child objects")
@click.pass_context
def ou_remove_cmd(ctx: click.Context, dn: str, recursive: bool) -> None:
    api = _api(ctx)
    try:
        removed = remove_organizational_unit(api, dn, recursive=recursive)
    except SpAdminError as exc:
        raise click.ClickException(str(exc)) from exc
    if removed:
        console.print(f"[green]Removed →[/green] {dn}")
    else:
        console.print(f"[yellow]Not found:[/] {dn}")


@cli_main.command("link-service-apps")
@click.option("--list-title", default=lambda: settings.links_list_title, show_default=True,
              help="Central Administration list holding the links")
@click.pass_context
def link_service_apps_cmd(ctx: click.Context, list_title: str) -> None:
    """Link every service application into the Central Administration list."""
    api = _api(ctx)
    try:
        added = link_service_applications(api, list_title)
    except SpAdminError as exc:
        raise click.ClickException(str(exc)) from exc
    if not added:
        console.print(f"[yellow]Nothing to link in {list_title}.[/]")
        return
    for name in added:
        console.print(f"- {name}")
    console.print(f"[green]Linked {len(added)} service application(s).[/green]")


@cli_main.group("config")
def config_cmd() -> None:
    """Runtime configuration."""


@config_cmd.command("save")
@click.option("--path", type=str, help="Target .env file (defaults to ./.env)")
@click.pass_context
def config_save_cmd(ctx: click.Context, path: str | None) -> None:
    save_to_env(ctx.obj["config"], path)
    console.print(f"[green]Saved →[/green] {path or '.env'}")


if __name__ == "__main__":
    cli_main()
