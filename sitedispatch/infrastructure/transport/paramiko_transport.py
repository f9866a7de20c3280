"""
Run remote invocations over a paramiko connection instead of the ssh binary
"""
import socket
from typing import Optional, Tuple

import paramiko

from ...core.client import RemoteClient
from ...core.constants import DEFAULT_SSH_PORT
from ...core.exceptions import ConfigError, InvokeTimeoutError, SpawnFailedError
from ...core.interfaces import Transport
from ...core.logging import get_logger
from ...core.utils import current_user, load_ssh_config

logger = get_logger(__name__)


def _record_port(invocation) -> Optional[int]:
    if invocation.record is None or not invocation.record.remote_port:
        return None
    return int(invocation.record.remote_port)


class ParamikoTransport(Transport):
    """
    Opens one connection per invocation and runs invocation.remote_command.
    
    Host, user, port and identity file are taken from ~/.ssh/config when
    it has an entry for the host; the invocation's user wins.
    """
    
    def __init__(self, ssh_config: Optional[str] = None, connect_timeout: float = 10):
        self.ssh_config = ssh_config
        self.connect_timeout = connect_timeout
    
    def _connection_params(self, invocation) -> dict:
        params = {
            "host": invocation.host,
            "user": invocation.user or current_user(),
            "port": _record_port(invocation) or DEFAULT_SSH_PORT,
            "key_file": None,
        }
        try:
            entry = load_ssh_config(invocation.host, self.ssh_config)
        except ConfigError:
            return params
        params["host"] = entry["host"]
        params["port"] = _record_port(invocation) or entry["port"]
        params["key_file"] = entry["key_file"]
        if not invocation.user and entry["user"]:
            params["user"] = entry["user"]
        return params
    
    def _client(self, invocation) -> RemoteClient:
        params = self._connection_params(invocation)
        return RemoteClient(
            host=params["host"],
            user=params["user"],
            port=params["port"],
            auth_method="key" if params["key_file"] else "agent",
            key_path=params["key_file"],
            timeout=self.connect_timeout,
        )
    
    def run(self, invocation, timeout: Optional[float] = None) -> Tuple[str, str, int]:
        if not invocation.host:
            raise SpawnFailedError(f"{invocation.target} has no remote host")
        
        client = self._client(invocation)
        try:
            client.connect()
        except (paramiko.SSHException, OSError, RuntimeError) as e:
            client.close()
            raise SpawnFailedError(f"Could not connect to {invocation.host}: {e}") from e
        
        with client:
            logger.debug("Running on %s: %s", invocation.host, invocation.remote_command)
            try:
                return client.exec_with_code(invocation.remote_command, timeout=timeout)
            except InvokeTimeoutError as e:
                raise InvokeTimeoutError(
                    f"{invocation.command} on {invocation.target} timed out after {timeout} seconds",
                    stdout=e.stdout,
                    stderr=e.stderr,
                ) from e
            except socket.timeout as e:
                raise InvokeTimeoutError(
                    f"{invocation.command} on {invocation.target} timed out after {timeout} seconds"
                ) from e
            except paramiko.SSHException as e:
                raise SpawnFailedError(f"Remote command failed to start on {invocation.host}: {e}") from e
