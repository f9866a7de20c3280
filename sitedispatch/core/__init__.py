"""
Core infrastructure layer
"""
from .client import RemoteClient, ClientConfig
from .constants import *
from .exceptions import *
from .logging import setup_logging, get_logger, get_stdout_console, get_stderr_console
from .interfaces import Transport, PromptProvider
from .hooks import HookRegistry
from .results import Result, ValidationError
from .utils import (
    load_ssh_config,
    current_user,
    escape_arg,
    split_list,
    split_path_list,
)

__all__ = [
    "RemoteClient",
    "ClientConfig",
    "setup_logging",
    "get_logger",
    "get_stdout_console",
    "get_stderr_console",
    "Transport",
    "PromptProvider",
    "HookRegistry",
    "Result",
    "ValidationError",
    "load_ssh_config",
    "current_user",
    "escape_arg",
    "split_list",
    "split_path_list",
]
