"""
Per-run CLI state: settings and the services built from them
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from ...core.hooks import HookRegistry
from ...domain.alias import AliasResolver, ResolverContext, SiteRecord
from ...domain.dispatch import BackendInvoker, CommandRegistry, DispatchEngine, default_registry
from ...infrastructure.transport import create_transport
from ..config.loader import Settings


@dataclass
class CliState:
    """Everything the commands share within one process"""
    settings: Settings
    resolver: AliasResolver
    engine: DispatchEngine
    invoker: BackendInvoker
    registry: CommandRegistry
    hooks: HookRegistry = field(default_factory=HookRegistry)
    
    def local_record(self) -> Optional[SiteRecord]:
        """The bootstrapped site (@self), when a root was given"""
        if not self.settings.root:
            return None
        return self.resolver.resolve("@self")


def build_state(settings: Settings, hooks: Optional[HookRegistry] = None) -> CliState:
    """
    Wire resolver, engine and invoker from settings.
    
    Raises:
        ConfigError: Unknown transport
    """
    hooks = hooks or HookRegistry()
    self_options: Dict[str, Any] = {"root": settings.root, "uri": settings.uri}
    if settings.drush_script:
        self_options["drush-script"] = settings.drush_script
    
    context = ResolverContext(
        alias_path=settings.alias_path,
        site_root=Path(settings.root) if settings.root else None,
        self_options=self_options,
        alias_conflict=settings.alias_conflict,
        hooks=hooks,
    )
    resolver = AliasResolver(context)
    registry = default_registry()
    engine = DispatchEngine(
        ssh_binary=settings.ssh_binary,
        ssh_options=settings.ssh_options,
        local_drush_script=settings.drush_script,
    )
    invoker = BackendInvoker(
        transport=create_transport(settings.transport, settings.ssh_config),
        registry=registry,
        resolver=resolver,
        hooks=hooks,
        timeout=settings.timeout or None,
    )
    return CliState(
        settings=settings,
        resolver=resolver,
        engine=engine,
        invoker=invoker,
        registry=registry,
        hooks=hooks,
    )


def get_state(ctx: typer.Context) -> CliState:
    """State stored on the root context by the app callback"""
    return ctx.find_root().obj
