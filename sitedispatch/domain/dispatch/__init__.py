"""
Dispatch domain module
"""
from .models import Invocation, DispatchResult, LogEntry
from .engine import DispatchEngine, is_remote, format_options
from .rsync import build_rsync, validate_rsync, rsync_options
from .commands import CommandContext, CommandRegistry, CommandSpec, default_registry
from .backend import BackendInvoker, parse_payload, emit_payload, result_from_payload

__all__ = [
    "Invocation",
    "DispatchResult",
    "LogEntry",
    "DispatchEngine",
    "is_remote",
    "format_options",
    "build_rsync",
    "validate_rsync",
    "rsync_options",
    "CommandContext",
    "CommandRegistry",
    "CommandSpec",
    "default_registry",
    "BackendInvoker",
    "parse_payload",
    "emit_payload",
    "result_from_payload",
]
