"""
In-process command registry

Local invocations run a registered handler directly instead of
spawning a process. A handler receives a CommandContext and returns
the result object; text written with ctx.print() becomes the output.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, TYPE_CHECKING

from ...core.exceptions import CommandNotFoundError
from ..alias.models import SiteRecord
from ..alias.paths import PathAliases
from .engine import is_remote
from .models import LogEntry

if TYPE_CHECKING:
    from ..alias.resolver import AliasResolver


@dataclass
class CommandContext:
    """What a handler gets to work with"""
    record: SiteRecord
    args: List[str] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)
    resolver: Optional["AliasResolver"] = None
    output: List[str] = field(default_factory=list)
    log: List[LogEntry] = field(default_factory=list)

    def print(self, text: str) -> None:
        self.output.append(text)

    def notice(self, message: str, type: str = "notice") -> None:
        self.log.append(LogEntry(type=type, message=message))


Handler = Callable[[CommandContext], Any]


@dataclass
class CommandSpec:
    """A registered command"""
    name: str
    handler: Handler
    aliases: Sequence[str] = ()
    description: str = ""


class CommandRegistry:
    """Commands that can run in-process"""
    
    def __init__(self):
        self._commands: Dict[str, CommandSpec] = {}
        self._lookup: Dict[str, str] = {}
    
    def register(self, name: str, handler: Handler, aliases: Sequence[str] = (), description: str = "") -> CommandSpec:
        spec = CommandSpec(name=name, handler=handler, aliases=tuple(aliases), description=description)
        self._commands[name] = spec
        self._lookup[name] = name
        for alias in aliases:
            self._lookup[alias] = name
        return spec
    
    def command(self, name: str, aliases: Sequence[str] = (), description: str = ""):
        """Decorator form of register()"""
        def decorator(func: Handler) -> Handler:
            self.register(name, func, aliases, description or (func.__doc__ or "").strip())
            return func
        return decorator
    
    def get(self, name: str) -> CommandSpec:
        """
        Look a command up by name or alias.
        
        Raises:
            CommandNotFoundError: If no command has that name
        """
        key = self._lookup.get(name)
        if key is None:
            raise CommandNotFoundError(f"Command '{name}' is not defined")
        return self._commands[key]
    
    def has(self, name: str) -> bool:
        return name in self._lookup
    
    def names_for(self, name: str) -> List[str]:
        """Full name plus every alias of a command; just [name] when unknown"""
        if not self.has(name):
            return [name]
        spec = self.get(name)
        return [spec.name] + list(spec.aliases)


# ============================================================
# Built-in commands
# ============================================================

def _version(ctx: CommandContext) -> Dict[str, str]:
    from ... import __version__
    ctx.print(f"sitedispatch version : {__version__}")
    return {"sitedispatch-version": __version__}


def _status(ctx: CommandContext) -> Dict[str, Any]:
    record = ctx.record
    status = {
        "site": record.name,
        "root": record.root,
        "uri": record.uri,
        "os": record.os,
        "remote": is_remote(record),
        "paths": PathAliases(record).resolved(),
    }
    for key in ("root", "uri", "os"):
        ctx.print(f"{key:<6}: {status[key]}")
    return status


def _site_alias(ctx: CommandContext) -> Dict[str, Any]:
    if ctx.args:
        if ctx.resolver is None:
            raise CommandNotFoundError("site:alias needs an alias resolver")
        records = ctx.resolver.resolve_list(ctx.args[0])
    else:
        records = [ctx.record]
    exported = {record.name: record.export() for record in records}
    for name in exported:
        ctx.print(name)
    return exported


def _echo(ctx: CommandContext) -> Dict[str, Any]:
    ctx.print(" ".join(ctx.args))
    return {"args": list(ctx.args), "options": dict(ctx.options)}


def default_registry() -> CommandRegistry:
    """Registry with the built-in commands"""
    registry = CommandRegistry()
    registry.register("version", _version, description="Show the sitedispatch version")
    registry.register("core:status", _status, aliases=("status", "st", "core-status"), description="Show the site's root, uri and paths")
    registry.register("site:alias", _site_alias, aliases=("sa", "site-alias"), description="Print site alias records")
    registry.register("echo", _echo, description="Return arguments and options unchanged")
    return registry
