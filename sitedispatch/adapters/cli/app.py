"""
Main CLI application
"""
import typer
from pathlib import Path
from typing import Optional

from ...core.exceptions import ConfigError
from ...core.logging import setup_logging, get_logger, get_stderr_console
from ..config.loader import ConfigLoader, Settings
from .dispatch import register_dispatch_commands
from .site import register_site_commands
from .state import build_state

logger = get_logger(__name__)
stderr_console = get_stderr_console()

# Create main app
app = typer.Typer(
    name="sited",
    add_completion=False,
    help="Site alias resolution and remote command dispatch",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

register_site_commands(app)
register_dispatch_commands(app)


@app.callback()
def main(
    ctx: typer.Context,
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log file path",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (default: ~/.sitedispatch/config.toml)",
    ),
    alias_path: Optional[str] = typer.Option(
        None,
        "--alias-path",
        help="Alias directories, ';' or path separator delimited",
    ),
    root: Optional[str] = typer.Option(
        None,
        "--root",
        "-r",
        help="Root of the local Drupal site (@self)",
    ),
    uri: Optional[str] = typer.Option(
        None,
        "--uri",
        help="URI of the local site (@self)",
    ),
):
    """
    sited - site alias resolution and remote command dispatch
    
    Use subcommands to perform different operations:
    - site:alias / site:list: Inspect site aliases
    - invoke: Run a command against a site or a list of sites
    - ssh: Open a shell on a site
    - rsync: Copy files between sites
    """
    # Setup logging
    setup_logging(level=log_level, log_file=log_file, rich_tracebacks=log_level.upper() == "DEBUG")
    
    try:
        cfg = ConfigLoader().load(
            toml_path=config,
            cli_overrides={"alias-path": alias_path, "root": root, "uri": uri},
        )
        settings = Settings.from_config(cfg)
        ctx.obj = build_state(settings)
    except ConfigError as e:
        stderr_console.print(f"[red]Config Error:[/red] {e}")
        raise typer.Exit(1)
    
    logger.debug("Alias path: %s", settings.alias_path)


def run():
    """CLI entry point"""
    app()


if __name__ == "__main__":
    run()
