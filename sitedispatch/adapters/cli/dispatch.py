"""
Dispatch CLI commands: invoke, ssh, rsync
"""
import os
import subprocess
from typing import Any, Dict, List, Optional

import typer

from ...core.exceptions import SiteDispatchError
from ...core.logging import get_logger, get_stdout_console, get_stderr_console
from ...domain.alias import HostPath
from ...domain.dispatch import DispatchResult, build_rsync, is_remote, validate_rsync
from ...domain.dispatch.rsync import RSYNC_ALIASES, RSYNC_COMMAND
from ...domain.options import Role, merge_options
from .prompts import RichPromptProvider
from .state import CliState, get_state

logger = get_logger(__name__)
stdout_console = get_stdout_console()
stderr_console = get_stderr_console()
prompt_provider = RichPromptProvider()


def register_dispatch_commands(app: typer.Typer) -> None:
    """Register invoke / ssh / rsync on the main app"""
    app.command(name="invoke")(invoke)
    app.command(name="ssh")(ssh)
    app.command(name="rsync")(rsync)


def parse_option_pairs(pairs: Optional[List[str]]) -> Dict[str, Any]:
    """
    Parse -o key=value pairs.
    
    A bare key is a flag (True). Leading dashes on the key are dropped.
    """
    options: Dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        key = key.strip().lstrip("-")
        if not key:
            raise typer.BadParameter(f"Invalid option {pair!r}, expected key=value")
        options[key] = value if sep else True
    return options


def _write(text: str, prefix: str = "") -> None:
    for line in text.splitlines():
        stdout_console.print(prefix + line, markup=False, highlight=False, soft_wrap=True)


def _report(results: Dict[str, DispatchResult]) -> int:
    """Print outputs and failures; return the exit status"""
    many = len(results) > 1
    status = 0
    for key, result in results.items():
        if result.output:
            _write(result.output, prefix=f"{result.target} >> " if many else "")
        if not result.success:
            reason = f" ({result.error})" if result.error else ""
            stderr_console.print(
                f"[red]Error:[/red] {result.target} exited with status {result.error_status}{reason}"
            )
            status = status or result.error_status
    return status


# ============================================================
# invoke
# ============================================================

def invoke(
    ctx: typer.Context,
    token: str = typer.Argument(..., help="Site alias to run against (list aliases fan out)"),
    command: str = typer.Argument(..., help="Command name, e.g. core:status"),
    args: Optional[List[str]] = typer.Argument(None, help="Command arguments"),
    option: Optional[List[str]] = typer.Option(None, "--option", "-o", help="Command option as key=value (repeatable)"),
    role: Role = typer.Option(Role.NONE, "--role", help="Site role for source/target-command-specific options"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Seconds before a remote command is terminated"),
    simulate: bool = typer.Option(False, "--simulate", "-s", help="Print what would run without running it"),
):
    """
    Run a command against one or more sites
    
    Local sites run the command in-process; remote sites run it over
    ssh and report back a structured result.
    
    Examples:
        sited invoke @prod core:status
        sited invoke @mygroup echo hello -o verbose
    """
    state = get_state(ctx)
    cli_options = parse_option_pairs(option)
    
    try:
        records = state.resolver.resolve_list(token, state.settings.root)
        local_record = state.local_record()
        aliases = state.registry.names_for(command)[1:]
        invocations = []
        for record in records:
            effective = merge_options(
                record,
                command,
                command_aliases=aliases,
                role=role,
                cli_options=cli_options,
                global_options=state.settings.options,
                local_record=local_record,
            )
            invocations.append(state.engine.build_invocation(record, command, args or [], effective))
    except SiteDispatchError as e:
        logger.debug("Preparing %s on %s failed", command, token, exc_info=True)
        stderr_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    
    if simulate:
        for invocation in invocations:
            label = "Calling" if invocation.argv else "Calling in-process:"
            stdout_console.print(f"{label} {invocation}", markup=False, highlight=False, soft_wrap=True)
        return
    
    results = state.invoker.invoke_many(invocations, timeout=timeout)
    status = _report(results)
    if status:
        raise typer.Exit(status)


# ============================================================
# ssh
# ============================================================

def ssh(
    ctx: typer.Context,
    token: str = typer.Argument(..., help="Site alias"),
    command: Optional[str] = typer.Argument(None, help="Shell command (default: interactive login shell)"),
    tty: Optional[bool] = typer.Option(None, "--tty/--no-tty", help="Allocate a terminal (default: only without a command)"),
    simulate: bool = typer.Option(False, "--simulate", "-s", help="Print the command without running it"),
):
    """
    Open a shell on a site, or run one shell command there
    
    Remote sites are reached over ssh and start in the site root; local
    sites run the command in their root directory.
    
    Examples:
        sited ssh @prod
        sited ssh @prod "ls -la"
    """
    state = get_state(ctx)
    use_tty = tty if tty is not None else command is None
    try:
        record = state.resolver.resolve(token)
        if is_remote(record):
            argv = state.engine.build_shell(record, command, tty=use_tty)
            cwd = None
        else:
            argv = [os.environ.get("SHELL", "/bin/sh")]
            if command:
                argv += ["-c", command]
            cwd = record.root or None
    except SiteDispatchError as e:
        stderr_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    
    if simulate:
        stdout_console.print("Calling " + " ".join(argv), markup=False, highlight=False, soft_wrap=True)
        return
    
    logger.debug("Running %s", argv)
    try:
        completed = subprocess.run(argv, cwd=cwd)
    except OSError as e:
        stderr_console.print(f"[red]Error:[/red] Could not start {argv[0]}: {e}")
        raise typer.Exit(127)
    if completed.returncode:
        raise typer.Exit(completed.returncode)


# ============================================================
# rsync
# ============================================================

def rsync(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Source: @alias[:path], [user@]host:path or a local path"),
    target: str = typer.Argument(..., help="Target, same forms as the source"),
    extra: Optional[List[str]] = typer.Argument(None, help="Additional rsync arguments (after --)"),
    mode: Optional[str] = typer.Option(None, "--mode", help="rsync single-letter flags (default: akz)"),
    exclude_paths: Optional[str] = typer.Option(None, "--exclude-paths", help="Paths to exclude, ';' or path separator delimited"),
    include_paths: Optional[str] = typer.Option(None, "--include-paths", help="Paths to include, ';' or path separator delimited"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Ask rsync for progress and statistics"),
    simulate: bool = typer.Option(False, "--simulate", "-s", help="Print the rsync command without running it"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """
    Copy files between sites with rsync
    
    Examples:
        sited rsync @dev:%files/ @self:%files
        sited rsync @prod:%files/ ./files -- --dry-run
    """
    state = get_state(ctx)
    try:
        invocation = _prepare_rsync(state, source, target, extra or [], {
            "mode": mode,
            "exclude-paths": exclude_paths,
            "include-paths": include_paths,
        }, verbose)
    except SiteDispatchError as e:
        stderr_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    
    if simulate:
        stdout_console.print(f"Calling {invocation}", markup=False, highlight=False, soft_wrap=True)
        return
    
    if not yes:
        source_path, target_path = invocation.argv[-2], invocation.argv[-1]
        if not prompt_provider.confirm(f"Copy new and override existing files at {target_path} from {source_path}?"):
            raise typer.Abort()
    
    result = state.invoker.invoke(invocation)
    status = _report({result.target: result})
    if status:
        raise typer.Exit(status)
    prompt_provider.success(f"Copied {source} to {target}")


def _prepare_rsync(
    state: CliState,
    source_spec: str,
    target_spec: str,
    extra: List[str],
    cli_options: Dict[str, Any],
    verbose: bool,
):
    """Resolve both ends, validate them and build the rsync invocation"""
    drush_script = state.settings.drush_script
    source = HostPath.create(state.resolver, source_spec, drush_script)
    target = HostPath.create(state.resolver, target_spec, drush_script)
    
    check = validate_rsync(source, target)
    if not check.ok:
        stderr_console.print(f"[red]Error:[/red] {check.error}")
        raise typer.Exit(1)
    
    options = merge_options(
        source.record,
        RSYNC_COMMAND,
        command_aliases=RSYNC_ALIASES,
        role=Role.SOURCE,
        global_options=state.settings.options,
    )
    options.update(merge_options(
        target.record,
        RSYNC_COMMAND,
        command_aliases=RSYNC_ALIASES,
        role=Role.TARGET,
        cli_options={k: v for k, v in cli_options.items() if v is not None},
    ))
    return build_rsync(
        source,
        target,
        options,
        extra=extra,
        ssh_options=state.settings.ssh_options,
        verbose=verbose,
    )
