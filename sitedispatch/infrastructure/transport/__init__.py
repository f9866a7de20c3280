"""
Transports that run invocations
"""
from typing import Optional

from ...core.constants import DEFAULT_TRANSPORT
from ...core.exceptions import ConfigError
from ...core.interfaces import Transport
from .subprocess_transport import SubprocessTransport
from .paramiko_transport import ParamikoTransport


def create_transport(name: Optional[str] = None, ssh_config: Optional[str] = None) -> Transport:
    """
    Transport for remote invocations, by configured name.
    
    Args:
        name: "ssh" (spawn the ssh binary) or "paramiko"
        ssh_config: ssh config file consulted by the paramiko transport
    
    Raises:
        ConfigError: Unknown transport name
    """
    name = (name or DEFAULT_TRANSPORT).lower()
    if name == "ssh":
        return SubprocessTransport()
    if name == "paramiko":
        return ParamikoTransport(ssh_config=ssh_config)
    raise ConfigError(f"Unknown backend transport: {name} (expected ssh or paramiko)")


__all__ = ["SubprocessTransport", "ParamikoTransport", "create_transport"]
