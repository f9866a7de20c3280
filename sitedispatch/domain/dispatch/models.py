"""
Dispatch domain models
"""
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from ...core.constants import EXIT_SUCCESS, EXIT_TIMEOUT
from ..alias.models import SiteRecord


@dataclass
class LogEntry:
    """One log line carried in a backend payload"""
    type: str
    message: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "message": self.message, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogEntry":
        return cls(
            type=str(data.get("type", "notice")),
            message=str(data.get("message", "")),
            timestamp=float(data.get("timestamp") or time.time()),
        )


@dataclass
class Invocation:
    """
    A command ready to run against one site.
    
    Remote invocations carry the full ssh argument vector and expect a
    backend payload on stdout. Process invocations (rsync) carry an argv
    whose output is taken as-is. Local invocations name an in-process
    command and carry no argv.
    """
    kind: Literal["local", "remote", "process"]
    target: str
    command: str
    args: List[str] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)
    argv: List[str] = field(default_factory=list)
    host: Optional[str] = None
    user: Optional[str] = None
    remote_argv: List[str] = field(default_factory=list)
    record: Optional[SiteRecord] = field(default=None, repr=False)

    @property
    def is_remote(self) -> bool:
        return self.kind == "remote"

    @property
    def is_local(self) -> bool:
        return self.kind == "local"

    @property
    def remote_command(self) -> str:
        """The command line the remote shell receives"""
        return " ".join(self.remote_argv)

    def __str__(self) -> str:
        if self.argv:
            return " ".join(self.argv)
        return " ".join([self.target, self.command] + list(self.args))


@dataclass
class DispatchResult:
    """
    Outcome of one backend invocation.
    
    A nonzero error_status is an ordinary result, not an exception;
    callers check it. error names the failure kind when the dispatch
    itself went wrong (spawn_failed, malformed_payload, timeout, exception).
    """
    error_status: int = EXIT_SUCCESS
    output: str = ""
    object: Any = None
    log: List[LogEntry] = field(default_factory=list)
    error: Optional[str] = None
    target: str = ""

    @property
    def success(self) -> bool:
        return self.error_status == EXIT_SUCCESS

    @property
    def timed_out(self) -> bool:
        return self.error == "timeout"

    def to_dict(self) -> Dict[str, Any]:
        """Wire form of the payload"""
        return {
            "error_status": self.error_status,
            "output": self.output,
            "object": self.object,
            "log": [entry.to_dict() for entry in self.log],
        }

    @classmethod
    def timeout(cls, target: str, seconds: Optional[float], output: str = "") -> "DispatchResult":
        return cls(
            error_status=EXIT_TIMEOUT,
            output=output or f"Command timed out after {seconds} seconds",
            error="timeout",
            target=target,
        )
