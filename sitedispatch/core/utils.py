"""
Core utility functions
"""
import getpass
import os
import platform
import re
import shlex
import paramiko
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

from .constants import DEFAULT_SSH_PORT
from .exceptions import ConfigError

SSH_CONFIG_PATH = "~/.ssh/config"

_WINDOWS_SAFE = re.compile(r'^[\w@%+=:,./\\-]+$')
_PORT_OPTION = re.compile(r'^\s*port\s*(=|\s)', re.I)


# ============================================================
# SSH Config Management
# ============================================================

def load_ssh_config(hostname: str, config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration for specified Host from ~/.ssh/config.
    
    Args:
        hostname: Host name in SSH configuration
        config_path: Alternative ssh config file
    
    Returns:
        Dictionary containing host, user, port, key_file
    
    Raises:
        ConfigError: If the ssh config file doesn't exist
    """
    path = Path(config_path or SSH_CONFIG_PATH).expanduser()
    if not path.exists():
        raise ConfigError(f"{path} does not exist")

    ssh_config = paramiko.SSHConfig.from_path(str(path))
    entry = ssh_config.lookup(hostname)

    return {
        "host": entry.get("hostname", hostname),
        "user": entry.get("user", None),
        "port": int(entry.get("port", DEFAULT_SSH_PORT)),
        "key_file": entry.get("identityfile", [None])[0],
    }


# ============================================================
# Local Environment
# ============================================================

def current_user() -> str:
    """Name of the user running this process"""
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return os.environ.get("USER") or os.environ.get("USERNAME") or "root"


def local_os() -> str:
    """Detected local OS, reported as "Windows" or "Linux" """
    return "Windows" if platform.system() == "Windows" else "Linux"


# ============================================================
# Parsing Helpers
# ============================================================

def split_path_list(value: Union[str, List[str], None]) -> List[str]:
    """
    Split a path list option into entries.
    
    Strings are split on ';' and on the platform path separator (':' on
    POSIX). Lists are taken as-is. Empty entries are dropped.
    """
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        items: List[str] = []
        for item in value:
            items.extend(split_path_list(item))
        return items
    
    separators = {";", os.pathsep}
    pattern = "|".join(re.escape(sep) for sep in sorted(separators))
    return [part.strip() for part in re.split(pattern, value) if part.strip()]


def split_list(value: Union[str, List[str], None]) -> List[str]:
    """Split a comma separated string (or pass a list through)"""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in str(value).split(",") if part.strip()]


def escape_arg(arg: str, os_name: str = "Linux") -> str:
    """Quote one argument for the shell of the given OS"""
    arg = str(arg)
    if os_name == "Windows":
        if arg and _WINDOWS_SAFE.match(arg):
            return arg
        return '"' + arg.replace('"', '\\"') + '"'
    return shlex.quote(arg)


def split_ssh_options(options: Any, source: str = "ssh-options") -> List[str]:
    """
    Split an ssh options string into arguments.
    
    Args:
        options: Value as configured
        source: Where the value came from, for the error message
    
    Raises:
        ConfigError: Value is not a string or has unbalanced quotes
    """
    if not isinstance(options, str):
        raise ConfigError(f"{source} must be a string, got {type(options).__name__}: {options!r}")
    try:
        return shlex.split(options)
    except ValueError as e:
        raise ConfigError(f"Invalid {source} {options!r}: {e}") from e


def sets_ssh_port(args: List[str]) -> bool:
    """True if ssh arguments already choose a port (-p N, -pN, -o Port=N)"""
    for index, arg in enumerate(args):
        if arg.startswith("-p"):
            return True
        if arg == "-o":
            option = args[index + 1] if index + 1 < len(args) else ""
        elif arg.startswith("-o"):
            option = arg[2:]
        else:
            continue
        if _PORT_OPTION.match(option):
            return True
    return False
