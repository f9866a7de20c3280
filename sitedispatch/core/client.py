from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Literal, Tuple
import paramiko
from pathlib import Path

from .constants import DEFAULT_SSH_PORT
from .exceptions import InvokeTimeoutError

# Bytes per channel read, and seconds to wait when nothing is ready
READ_CHUNK = 32768
POLL_INTERVAL = 0.05


@dataclass
class ClientConfig:
    host: str
    user: str
    port: int = DEFAULT_SSH_PORT
    auth_method: Literal["agent", "key"] = "agent"
    key_path: Optional[str] = None
    timeout: Optional[float] = None


class RemoteClient:
    """
    Thin wrapper over paramiko SSHClient:
    - keeps host / user / port explicitly
    - key or agent authentication (password login is never attempted)
    - exec helpers returning exit codes
    - usable as a context manager
    """
    def __init__(
        self,
        host: str,
        user: str,
        port: int = DEFAULT_SSH_PORT,
        auth_method: Literal["agent", "key"] = "agent",
        key_path: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.config = ClientConfig(
            host=host,
            user=user,
            port=port,
            auth_method=auth_method,
            key_path=key_path,
            timeout=timeout,
        )

        self.client = paramiko.SSHClient()
        self.client.load_system_host_keys()
        self.client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    # --------------------
    # Connection management
    # --------------------
    def connect(self) -> None:
        cfg = self.config

        if cfg.auth_method == "key":
            self.client.connect(
                hostname=cfg.host,
                port=cfg.port,
                username=cfg.user,
                pkey=self._load_private_key(cfg.key_path),
                timeout=cfg.timeout,
                allow_agent=False,
                look_for_keys=False,
            )
        elif cfg.auth_method == "agent":
            self.client.connect(
                hostname=cfg.host,
                port=cfg.port,
                username=cfg.user,
                timeout=cfg.timeout,
                allow_agent=True,
                look_for_keys=True,
            )
        else:
            raise ValueError(f"Unsupported auth method: {cfg.auth_method}")

    def _load_private_key(self, path: Optional[str]) -> paramiko.PKey:
        """Try Ed25519 first, then RSA"""
        if not path:
            raise RuntimeError("Key authentication requires a key path")
        p = Path(path).expanduser()

        try:
            return paramiko.Ed25519Key.from_private_key_file(str(p))
        except (paramiko.SSHException, ValueError):
            try:
                return paramiko.RSAKey.from_private_key_file(str(p))
            except (paramiko.SSHException, ValueError) as e:
                raise RuntimeError(f"Failed to load private key at {p}") from e

    # --------------------
    # Helpers
    # --------------------
    def exec_with_code(
        self,
        cmd: str,
        timeout: Optional[float] = None,
        environment: Optional[Dict[str, str]] = None,
    ) -> Tuple[str, str, int]:
        """
        Run a command and return (stdout, stderr, exit_code).
        
        Args:
            cmd: Remote command line
            timeout: Wall-clock limit for the whole command, in seconds
            environment: Extra environment for the remote command
        
        Raises:
            InvokeTimeoutError: The command ran past timeout; its channel
                is closed and the output read so far is attached
        """
        stdin, stdout, stderr = self.client.exec_command(cmd, environment=environment)
        stdin.close()
        return read_channel(stdout.channel, timeout)

    def close(self) -> None:
        self.client.close()

    # --------------------
    # Context manager
    # --------------------
    def __enter__(self) -> RemoteClient:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


def read_channel(
    channel: paramiko.Channel,
    timeout: Optional[float] = None,
    poll_interval: float = POLL_INTERVAL,
) -> Tuple[str, str, int]:
    """
    Collect stdout / stderr of an exec channel until the command exits.
    
    The deadline covers the whole run, not the gap between reads, so a
    command that keeps printing still times out.
    
    Raises:
        InvokeTimeoutError: Deadline passed; the channel has been closed
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    out: List[bytes] = []
    err: List[bytes] = []
    
    while True:
        received = False
        if channel.recv_ready():
            out.append(channel.recv(READ_CHUNK))
            received = True
        if channel.recv_stderr_ready():
            err.append(channel.recv_stderr(READ_CHUNK))
            received = True
        if not received and channel.exit_status_ready():
            break
        if deadline is not None and time.monotonic() >= deadline:
            channel.close()
            raise InvokeTimeoutError(
                f"Remote command timed out after {timeout} seconds",
                stdout=_decode(out),
                stderr=_decode(err),
            )
        if not received:
            time.sleep(poll_interval)
    
    return _decode(out), _decode(err), channel.recv_exit_status()


def _decode(chunks: List[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")
