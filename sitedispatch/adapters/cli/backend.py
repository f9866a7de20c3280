"""
sited-backend: the far side of a remote invocation

Invoked over ssh as

    sited-backend [@alias] [--root=ROOT] [--uri=URI] [--backend] COMMAND [ARGS] [--opt[=value]]

It runs COMMAND from the in-process command registry against the
selected site. With --backend, the result is printed as one JSON line
at the end of stdout for the calling side to parse.
"""
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import typer

from ...core.constants import EXIT_ERROR, SELF_ALIAS
from ...core.exceptions import SiteDispatchError
from ...core.logging import get_logger, get_stderr_console, setup_logging
from ...domain.alias import AliasResolver, ResolverContext, SiteRecord, is_alias_token
from ...domain.dispatch import BackendInvoker, DispatchResult, Invocation, default_registry, emit_payload

logger = get_logger(__name__)
stderr_console = get_stderr_console()

# Options consumed by sited-backend itself. A trailing "=" means the
# option takes a value, either inline or from the next argument.
GLOBAL_OPTIONS = {
    "--root=": "root",
    "-r=": "root",
    "--uri=": "uri",
    "-l=": "uri",
    "--alias-path=": "alias-path",
    "--backend": "backend",
    "--delimited": "delimited",
    "--simulate": "simulate",
    "--debug": "debug",
    "-d": "debug",
}


@dataclass
class BackendArgs:
    """Parsed sited-backend command line"""
    alias: Optional[str] = None
    command: Optional[str] = None
    args: List[str] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)
    globals: Dict[str, Any] = field(default_factory=dict)

    @property
    def backend(self) -> bool:
        return bool(self.globals.get("backend"))


def _match_global(opt: str) -> Tuple[Optional[str], Any, bool]:
    """(name, value, takes_value) for a global option, or (None, None, False)"""
    for key, name in GLOBAL_OPTIONS.items():
        flag = key.rstrip("=")
        takes_value = flag != key
        if not opt.startswith(flag):
            continue
        if opt == flag:
            return name, None if takes_value else True, takes_value
        # --locale must not match --local
        if opt[len(flag)] != "=":
            continue
        value = opt[len(flag) + 1:] if takes_value else True
        return name, value, False
    return None, None, False


def _split_option(opt: str) -> Tuple[str, Any]:
    name, sep, value = opt.lstrip("-").partition("=")
    return name, value if sep else True


def parse_backend_argv(argv: Sequence[str]) -> BackendArgs:
    """
    Parse sited-backend arguments (without the program name).
    
    - The first @alias before the command selects the site.
    - The first bare word is the command; later bare words are arguments.
    - Global options take their value inline (--uri=x) or from the next
      argument when it does not start with "-".
    - Other --opt[=value] become command options.
    - "--" ends option parsing; everything after it is an argument.
    """
    parsed = BackendArgs()
    remaining = list(argv)
    
    while remaining:
        opt = remaining.pop(0)
        
        if opt == "--":
            parsed.args.extend(remaining)
            break
        
        if parsed.command is None and parsed.alias is None and is_alias_token(opt):
            parsed.alias = opt
            continue
        
        if not opt.startswith("-"):
            if parsed.command is None:
                parsed.command = opt
            else:
                parsed.args.append(opt)
            continue
        
        name, value, takes_next = _match_global(opt)
        if name:
            if value is None and takes_next and remaining and not remaining[0].startswith("-"):
                value = remaining.pop(0)
            parsed.globals[name] = value
            continue
        
        key, value = _split_option(opt)
        if key:
            parsed.options[key] = value
    
    return parsed


def _site_record(parsed: BackendArgs) -> Tuple[SiteRecord, AliasResolver]:
    root = parsed.globals.get("root")
    self_options = {"root": root, "uri": parsed.globals.get("uri")}
    context = ResolverContext(
        alias_path=parsed.globals.get("alias-path"),
        site_root=Path(root) if root else None,
        self_options=self_options,
    )
    resolver = AliasResolver(context)
    return resolver.resolve(parsed.alias or SELF_ALIAS), resolver


def execute(parsed: BackendArgs) -> DispatchResult:
    """Run the parsed command in-process; failures come back as results"""
    if not parsed.command:
        return DispatchResult(error_status=EXIT_ERROR, output="No command given", error="exception")
    
    try:
        record, resolver = _site_record(parsed)
    except SiteDispatchError as e:
        return DispatchResult(error_status=EXIT_ERROR, output=str(e), error="exception")
    
    invocation = Invocation(
        kind="local",
        target=record.name,
        command=parsed.command,
        args=parsed.args,
        options=parsed.options,
        record=record,
    )
    invoker = BackendInvoker(registry=default_registry(), resolver=resolver)
    return invoker.invoke(invocation)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point body; returns the exit status"""
    parsed = parse_backend_argv(sys.argv[1:] if argv is None else argv)
    
    if parsed.globals.get("debug"):
        setup_logging(level="DEBUG")
    elif parsed.backend:
        # stderr is read back as log lines by the caller
        setup_logging(level="CRITICAL")
    else:
        setup_logging(level="WARNING")
    
    if parsed.globals.get("simulate"):
        typer.echo(f"Calling in-process: {parsed.alias or SELF_ALIAS} {parsed.command} {' '.join(parsed.args)}".rstrip())
        return 0
    
    result = execute(parsed)
    
    if parsed.backend:
        typer.echo(emit_payload(result, delimited=bool(parsed.globals.get("delimited"))))
        return result.error_status
    
    if result.success:
        if result.output:
            typer.echo(result.output)
    else:
        stderr_console.print(f"[red]Error:[/red] {result.output}", highlight=False)
    return result.error_status


def run():
    """CLI entry point"""
    sys.exit(main())


if __name__ == "__main__":
    run()
