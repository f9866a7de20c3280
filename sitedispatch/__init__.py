"""
sitedispatch - site alias resolution and remote command dispatch

Provides:
- Site aliases loaded from TOML files on a search path, with parent
  inheritance, groups, wildcards and list aliases
- Layered option merging (global, alias, command-specific, CLI)
- Local in-process or remote (ssh) command dispatch with a structured
  JSON result protocol
- rsync between sites addressed by alias and path alias
"""

__version__ = "0.1.0"

# Export core components
from .core import (
    HookRegistry,
    SiteDispatchError,
    setup_logging,
)

# Export domain models
from .domain.alias import (
    AliasResolver,
    ResolverContext,
    SiteRecord,
    HostPath,
    PathAliases,
)

from .domain.options import (
    Role,
    merge_options,
)

from .domain.dispatch import (
    BackendInvoker,
    DispatchEngine,
    DispatchResult,
    Invocation,
    build_rsync,
    validate_rsync,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "HookRegistry",
    "SiteDispatchError",
    "setup_logging",
    # Aliases
    "AliasResolver",
    "ResolverContext",
    "SiteRecord",
    "HostPath",
    "PathAliases",
    # Options
    "Role",
    "merge_options",
    # Dispatch
    "BackendInvoker",
    "DispatchEngine",
    "DispatchResult",
    "Invocation",
    "build_rsync",
    "validate_rsync",
]
