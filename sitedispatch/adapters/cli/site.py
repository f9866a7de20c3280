"""
Site alias CLI commands
"""
from typing import Any, Dict, List

import typer
from rich.table import Table

from ...core.exceptions import SiteDispatchError
from ...core.logging import get_logger, get_stdout_console, get_stderr_console
from ...domain.alias import SiteRecord
from .state import get_state

logger = get_logger(__name__)
stdout_console = get_stdout_console()
stderr_console = get_stderr_console()

FORMATS = ("table", "json")


def register_site_commands(app: typer.Typer) -> None:
    """Register site:* commands on the main app"""
    app.command(name="site:alias")(site_alias)
    app.command(name="site:list")(site_list)


def site_alias(
    ctx: typer.Context,
    token: str = typer.Argument(..., help="Site alias, e.g. @prod or @mygroup.dev"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table or json"),
):
    """
    Show the resolved record of a site alias
    
    List aliases print one record per member site.
    
    Examples:
        sited site:alias @prod
        sited site:alias @mygroup --format json
    """
    if output_format not in FORMATS:
        stderr_console.print(f"[red]Error:[/red] Unknown format {output_format!r}, expected table or json")
        raise typer.Exit(1)
    
    state = get_state(ctx)
    try:
        records = state.resolver.resolve_list(token, state.settings.root)
    except SiteDispatchError as e:
        logger.debug("Resolving %s failed", token, exc_info=True)
        stderr_console.print(f"[red]Alias Error:[/red] {e}")
        raise typer.Exit(1)
    
    if output_format == "json":
        stdout_console.print_json(data={r.name: r.export() for r in records})
        return
    
    for record in records:
        stdout_console.print(_record_table(record))


def site_list(ctx: typer.Context):
    """List every alias defined on the alias search path"""
    state = get_state(ctx)
    try:
        names = state.resolver.list_aliases()
    except SiteDispatchError as e:
        stderr_console.print(f"[red]Alias Error:[/red] {e}")
        raise typer.Exit(1)
    
    if not names:
        stdout_console.print("[yellow]No site aliases found[/yellow]")
        return
    
    table = Table(title="Site aliases", show_lines=False)
    table.add_column("Alias", style="cyan", no_wrap=True)
    table.add_column("File", overflow="fold")
    for name, source in names:
        table.add_row(name, str(source))
    stdout_console.print(table)


def _record_table(record: SiteRecord) -> Table:
    table = Table(title=record.name, show_header=False)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", overflow="fold")
    for key, value in _flatten(record.export()):
        table.add_row(key, value)
    return table


def _flatten(data: Dict[str, Any], prefix: str = "") -> List[tuple]:
    rows = []
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict) and value:
            rows.extend(_flatten(value, name + "."))
        elif isinstance(value, list):
            rows.append((name, ", ".join(str(v) for v in value)))
        else:
            rows.append((name, str(value)))
    return rows
