"""
Grafana Transfer CLI - Export and import Grafana datasources and dashboards
"""

import json
import logging
import os
import sys
from functools import wraps
from pathlib import Path

import click
import questionary
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.markup import escape as rich_escape

from . import __version__
from .client import GrafanaClient
from .config import load_target
from .credentials import add_datasource_password
from .errors import GrafanaTransferError, MissingSettingError
from .exporter import export_dashboards, export_datasources
from .reconcile import (
    ImportKind,
    ImportOptions,
    ImportOutcome,
    ItemResult,
    RunSummary,
    collect_items,
    reconcile,
)

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

PASSWORD_ENV = "GRAFANA_DS_PASSWORD"


class HelpOnEmptyCommand(click.Command):
    """Print help and exit 0 when the command is called without arguments."""

    def parse_args(self, ctx, args):
        if not args:
            click.echo(ctx.get_help())
            ctx.exit(0)
        return super().parse_args(ctx, args)


def setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    # Keep urllib3 connection chatter out of verbose output
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def handle_errors(func):
    """Turn library errors into usage errors (exit 2) or fatal errors (exit 1)."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except MissingSettingError as e:
            raise click.UsageError(str(e), ctx=click.get_current_context()) from e
        except GrafanaTransferError as e:
            err_console.print(f"[red]ERROR:[/red] {rich_escape(str(e))}")
            sys.exit(1)
    return wrapper


def grafana_options(func):
    """Options shared by every command that talks to Grafana."""
    func = click.option("--verbose", "-v", is_flag=True, help="Log HTTP requests (token redacted) and details")(func)
    func = click.option("--config", "-c", "config_file", type=click.Path(dir_okay=False, path_type=Path),
                        help="YAML config file with a 'grafana' section")(func)
    func = click.option("--token", "-t", help="Grafana API token (or GRAFANA_TOKEN)")(func)
    func = click.option("--url", "-u", help="Grafana base URL, e.g. https://grafana.example.com (or GRAFANA_URL)")(func)
    return func


def input_options(func):
    func = click.option("--file", "-f", "input_file", type=click.Path(path_type=Path),
                        help="Single JSON file to import (use -o OR -f)")(func)
    func = click.option("--dir", "-o", "directory", type=click.Path(path_type=Path),
                        help="Directory of JSON files to import (use -o OR -f)")(func)
    return func


def _check_input_selection(directory, input_file):
    if directory and input_file:
        raise click.UsageError("Cannot specify both -o (directory) and -f (file). Use only one.")
    if not directory and not input_file:
        raise click.UsageError("Either input directory (-o) or input file (-f) is required.")


def _header(title: str):
    console.print(Panel.fit(f"[bold cyan]{title}[/bold cyan]", border_style="cyan"))


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="grafana-transfer")
@click.pass_context
def main(ctx):
    """
    Grafana Transfer - move datasources and dashboards between Grafana instances

    \b
    QUICK START:

        grafana-transfer export-datasources -u https://old -t TOKEN -o ./datasources
        grafana-transfer add-password -f ./datasources/datasource_2_db.json --ask
        grafana-transfer import-datasources -u https://new -t TOKEN -o ./datasources
        grafana-transfer export-dashboards  -u https://old -t TOKEN -o ./dashboards
        grafana-transfer import-dashboards  -u https://new -t TOKEN -o ./dashboards -p
    """
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ============ Import ============

def _print_result(result: ItemResult, overwrite_hint: bool = False):
    name = rich_escape(result.name if result.name != "unknown" else result.item.source)
    status = f" (HTTP {result.status_code})" if result.status_code is not None else ""

    console.print(f"Processing: {rich_escape(result.item.source)}")
    if result.outcome is ImportOutcome.CREATED:
        console.print(f"  [green]✓[/green] Imported: {name}{status}")
        if result.url:
            logger.debug(f"Dashboard URL: {result.url}")
    elif result.outcome is ImportOutcome.ALREADY_EXISTS:
        hint = " - use -w to overwrite" if overwrite_hint else ""
        detail = f" [dim]{rich_escape(result.message)}[/dim]" if result.message else ""
        console.print(f"  [yellow]⚠[/yellow] Already exists: {name}{status}{hint}{detail}")
    else:
        console.print(f"  [yellow]⚠[/yellow] Failed: {name}{status}")
        if result.message:
            console.print(f"    Error: {rich_escape(result.message)}")


def _print_summary(summary: RunSummary, show_folders: bool = False):
    table = Table(title="Import Summary", show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")

    table.add_row("Total files", str(summary.total))
    table.add_row("Successfully imported", f"[green]{summary.succeeded}[/green]")
    if summary.duplicate:
        table.add_row("Skipped/Exists", f"[yellow]{summary.duplicate}[/yellow]")
    if summary.failed:
        table.add_row("Failed", f"[red]{summary.failed}[/red]")
    if show_folders and summary.folders_created:
        table.add_row("Folders created", str(summary.folders_created))

    console.print()
    console.print(table)

    what = summary.kind.value.capitalize()
    if summary.ok:
        console.print(f"[green]✓[/green] {what} import completed successfully!")
    else:
        err_console.print("[red]ERROR:[/red] Import completed with errors")


@click.command("import-datasources", cls=HelpOnEmptyCommand)
@grafana_options
@input_options
@handle_errors
def import_datasources(url, token, config_file, verbose, directory, input_file):
    """
    Import datasources from exported JSON files.

    The id and uid fields are stripped before each POST. HTTP 409 (same name
    already exists) is reported as skipped and does not fail the run.

    \b
    EXAMPLES:
        grafana-transfer import-datasources -u http://localhost:3000 -t TOKEN -o ./datasources
        grafana-transfer import-datasources -u http://localhost:3000 -t TOKEN -f ./datasource_1_Prometheus.json
    """
    setup_logging(verbose)
    _check_input_selection(directory, input_file)
    target = load_target(url, token, config_file)
    items = collect_items(directory=directory, file=input_file)

    _header("Grafana Datasource Import")
    console.print(f"Found {len(items)} datasource file(s) to import")

    with GrafanaClient(target) as client:
        client.check_connection("/api/datasources")
        console.print("[green]✓[/green] Connected to Grafana API")
        summary = reconcile(items, client, ImportOptions(ImportKind.DATASOURCE), on_result=_print_result)

    _print_summary(summary)
    sys.exit(summary.exit_code)


@click.command("import-dashboards", cls=HelpOnEmptyCommand)
@grafana_options
@input_options
@click.option("--overwrite", "-w", is_flag=True, help="Overwrite existing dashboards")
@click.option("--preserve-folders", "-p", is_flag=True, help="Recreate source folders when missing")
@handle_errors
def import_dashboards(url, token, config_file, verbose, directory, input_file, overwrite, preserve_folders):
    """
    Import dashboards from exported (or raw) dashboard JSON files.

    HTTP 412 (dashboard already exists) is reported as skipped; use -w to
    replace existing dashboards.

    \b
    EXAMPLES:
        grafana-transfer import-dashboards -u http://localhost:3000 -t TOKEN -o ./dashboards
        grafana-transfer import-dashboards -u http://localhost:3000 -t TOKEN -o ./dashboards -w -p
    """
    setup_logging(verbose)
    _check_input_selection(directory, input_file)
    target = load_target(url, token, config_file)
    items = collect_items(directory=directory, file=input_file)

    _header("Grafana Dashboard Import")
    console.print(f"Found {len(items)} dashboard file(s) to import")

    options = ImportOptions(ImportKind.DASHBOARD, overwrite=overwrite, preserve_folders=preserve_folders)

    def on_result(result: ItemResult):
        _print_result(result, overwrite_hint=not overwrite)

    with GrafanaClient(target) as client:
        client.check_connection("/api/search")
        console.print("[green]✓[/green] Connected to Grafana API")
        summary = reconcile(items, client, options, on_result=on_result)

    _print_summary(summary, show_folders=preserve_folders)
    sys.exit(summary.exit_code)


# ============ Export ============

def _print_exported(path: Path):
    console.print(f"  Exported: {rich_escape(path.name)}")


@click.command("export-datasources", cls=HelpOnEmptyCommand)
@grafana_options
@click.option("--dir", "-o", "directory", required=True, type=click.Path(file_okay=False, path_type=Path),
              help="Output directory (created if missing)")
@handle_errors
def export_datasources_cmd(url, token, config_file, verbose, directory):
    """
    Export every datasource to its own JSON file.

    Files are named datasource_<id>_<name>.json; previous datasource_*.json
    files in the directory are removed first.
    """
    setup_logging(verbose)
    target = load_target(url, token, config_file)

    _header("Grafana Datasource Export")

    with GrafanaClient(target) as client:
        client.check_connection("/api/datasources")
        summary = export_datasources(client, directory, on_exported=_print_exported)

    if summary.total == 0:
        console.print("[yellow]⚠[/yellow] No datasources found in Grafana")
        return

    console.print(f"\n[green]✓[/green] Exported {summary.exported} datasource(s) to: {rich_escape(str(directory))}")
    if not summary.ok:
        err_console.print(f"[red]ERROR:[/red] {summary.failed} datasource(s) could not be written")
        sys.exit(1)


@click.command("export-dashboards", cls=HelpOnEmptyCommand)
@grafana_options
@click.option("--dir", "-o", "directory", required=True, type=click.Path(file_okay=False, path_type=Path),
              help="Output directory (created if missing)")
@click.option("--uid", "-d", default=None, help="Export only the dashboard with this UID")
@handle_errors
def export_dashboards_cmd(url, token, config_file, verbose, directory, uid):
    """
    Export dashboards (all, or one by UID) to JSON files.

    Files are named dashboard_<uid>_<slug>.json and keep the API's
    {"dashboard", "meta"} layout so folders can be restored on import.
    """
    setup_logging(verbose)
    target = load_target(url, token, config_file)

    _header("Grafana Dashboard Export")
    mode = f"Single dashboard (UID: {rich_escape(uid)})" if uid else "All dashboards"
    console.print(f"Export mode: {mode}")

    with GrafanaClient(target) as client:
        client.check_connection("/api/search")
        summary = export_dashboards(client, directory, uid=uid, on_exported=_print_exported)

    if summary.total == 0:
        console.print("[yellow]⚠[/yellow] No dashboards found in Grafana")
        return

    console.print(f"\n[green]✓[/green] Exported {summary.exported} dashboard(s) to: {rich_escape(str(directory))}")
    if not summary.ok:
        for failure in summary.failures:
            console.print(f"  [yellow]⚠[/yellow] {rich_escape(failure)}")
        err_console.print(f"[red]ERROR:[/red] {summary.failed} dashboard(s) could not be exported")
        sys.exit(1)


# ============ Credentials ============

@click.command("add-password", cls=HelpOnEmptyCommand)
@click.option("--file", "-f", "input_file", required=True, type=click.Path(path_type=Path),
              help="Datasource JSON file to modify")
@click.option("--password", "-p", default=None, help=f"Password to add (or {PASSWORD_ENV})")
@click.option("--ask", is_flag=True, help="Prompt for the password instead of passing it on the command line")
@click.option("--output", "-o", "output_file", type=click.Path(dir_okay=False, path_type=Path),
              help="Write to this file instead of overwriting the input")
@click.option("--verbose", "-v", is_flag=True, help="Show processing details")
@handle_errors
def add_password(input_file, password, ask, output_file, verbose):
    """
    Add secureJsonData.password to an exported datasource file.

    \b
    EXAMPLES:
        grafana-transfer add-password -f ./datasources/datasource_2_db.json -p 'MySecret'
        grafana-transfer add-password -f ./datasources/datasource_2_db.json --ask -o ./patched.json
    """
    setup_logging(verbose)

    if ask:
        password = questionary.password("Datasource password:").ask()
        if password is None:
            raise click.Abort()
    elif not password:
        password = os.environ.get(PASSWORD_ENV)

    if not password:
        raise click.UsageError("Password is required. Use -p option.")

    patched = add_datasource_password(input_file, password, output_file)
    destination = output_file or input_file

    console.print("[green]✓[/green] Password added successfully")

    redacted = dict(patched)
    redacted["secureJsonData"] = {**patched["secureJsonData"], "password": "[REDACTED]"}
    console.print("\nFinal JSON content:")
    console.print_json(json.dumps(redacted))

    console.print(f"\n[green]✓[/green] Output file: {rich_escape(str(destination))}")
    console.print("[yellow]⚠[/yellow] SECURITY NOTE: The password is now stored in the JSON file.")
    console.print("[yellow]⚠[/yellow] Ensure this file is stored securely and not committed to version control.")


# Register commands
main.add_command(export_datasources_cmd)
main.add_command(import_datasources)
main.add_command(export_dashboards_cmd)
main.add_command(import_dashboards)
main.add_command(add_password)


if __name__ == "__main__":
    main()
