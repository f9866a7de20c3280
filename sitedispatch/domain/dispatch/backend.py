"""
Backend invoke result protocol

The far side of a remote invocation prints its result as one JSON
object on the last line of stdout:

    {"error_status": 0, "output": "...", "object": ..., "log": [...]}

The legacy form wrapped in DRUSH_BACKEND_OUTPUT_START>>> ...
<<<DRUSH_BACKEND_OUTPUT_END markers is accepted too. Anything printed
before the payload is kept as log lines.
"""
import json
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ...core.constants import (
    BACKEND_OUTPUT_START,
    BACKEND_OUTPUT_END,
    EXIT_ERROR,
    EXIT_SPAWN_FAILED,
    EXIT_SUCCESS,
)
from ...core.exceptions import (
    InvokeTimeoutError,
    MalformedPayloadError,
    SpawnFailedError,
)
from ...core.hooks import HookRegistry, INVOKE_PRE, INVOKE_POST
from ...core.interfaces import Transport
from ...core.logging import get_logger, level_for_entry_type
from ..alias.models import SiteRecord
from .commands import CommandContext, CommandRegistry, default_registry
from .models import DispatchResult, Invocation, LogEntry

logger = get_logger(__name__)


# ============================================================
# Wire format
# ============================================================

def parse_payload(stdout: str) -> Tuple[Dict[str, Any], List[str]]:
    """
    Extract the payload from a backend process's stdout.
    
    Returns:
        (payload, lines printed before the payload)
    
    Raises:
        MalformedPayloadError: No parseable payload at the end of stdout
    """
    start = stdout.rfind(BACKEND_OUTPUT_START)
    if start != -1:
        end = stdout.find(BACKEND_OUTPUT_END, start)
        if end == -1:
            raise MalformedPayloadError("Backend output start marker without end marker")
        body = stdout[start + len(BACKEND_OUTPUT_START):end]
        preceding = stdout[:start].splitlines()
    else:
        lines = [line for line in stdout.splitlines()]
        while lines and not lines[-1].strip():
            lines.pop()
        if not lines:
            raise MalformedPayloadError("Backend process printed no result")
        body = lines[-1].strip()
        preceding = lines[:-1]
    
    try:
        payload = json.loads(body)
    except ValueError as e:
        raise MalformedPayloadError(f"Backend result is not valid JSON: {e}") from e
    
    if not isinstance(payload, dict) or "error_status" not in payload:
        raise MalformedPayloadError("Backend result is missing error_status")
    return payload, [line for line in preceding if line.strip()]


def emit_payload(result: DispatchResult, delimited: bool = False) -> str:
    """Serialise a result for the calling side (one line)"""
    body = json.dumps(result.to_dict(), default=str, separators=(",", ":"))
    if delimited:
        return f"{BACKEND_OUTPUT_START}{body}{BACKEND_OUTPUT_END}"
    return body


def result_from_payload(payload: Dict[str, Any], preceding: Iterable[str] = ()) -> DispatchResult:
    log = [LogEntry(type="stdout", message=line) for line in preceding]
    for entry in payload.get("log") or []:
        if isinstance(entry, dict):
            log.append(LogEntry.from_dict(entry))
    
    try:
        error_status = int(payload.get("error_status") or EXIT_SUCCESS)
    except (TypeError, ValueError):
        error_status = EXIT_ERROR
    
    output = payload.get("output")
    return DispatchResult(
        error_status=error_status,
        output="" if output is None else str(output),
        object=payload.get("object"),
        log=log,
    )


def _line_entries(text: str, entry_type: str) -> List[LogEntry]:
    return [LogEntry(type=entry_type, message=line) for line in (text or "").splitlines() if line.strip()]


def _stderr_entries(stderr: str) -> List[LogEntry]:
    return _line_entries(stderr, "stderr")


# ============================================================
# Invoker
# ============================================================

class BackendInvoker:
    """
    Runs invocations and always answers with a DispatchResult.
    
    Dispatch failures (process would not start, bad payload, timeout,
    exception in an in-process command) are reported in the result,
    never raised.
    """
    
    def __init__(
        self,
        transport: Optional[Transport] = None,
        registry: Optional[CommandRegistry] = None,
        resolver=None,
        hooks: Optional[HookRegistry] = None,
        timeout: Optional[float] = None,
        process_transport: Optional[Transport] = None,
    ):
        """
        Args:
            transport: Runs remote invocations (default: ssh subprocess)
            registry: In-process commands for local invocations
            resolver: Alias resolver handed to in-process commands
            hooks: Registry for invoke.pre / invoke.post
            timeout: Default timeout in seconds (None or 0: wait forever)
            process_transport: Runs process invocations such as rsync
        """
        from ...infrastructure.transport import SubprocessTransport
        
        self.transport = transport or SubprocessTransport()
        self.process_transport = process_transport or SubprocessTransport()
        self.registry = registry or default_registry()
        self.resolver = resolver
        self.hooks = hooks or HookRegistry()
        self.timeout = timeout
    
    def invoke(self, invocation: Invocation, timeout: Optional[float] = None) -> DispatchResult:
        """Run one invocation and return its result"""
        timeout = timeout if timeout is not None else self.timeout
        timeout = timeout or None
        invocation = self.hooks.alter(INVOKE_PRE, invocation)
        
        if invocation.is_local:
            result = self._invoke_local(invocation)
        elif invocation.is_remote:
            result = self._invoke_remote(invocation, timeout)
        else:
            result = self._invoke_process(invocation, timeout)
        
        result.target = invocation.target
        for entry in result.log:
            logger.log(level_for_entry_type(entry.type), "[%s] %s", invocation.target, entry.message)
        if not result.success:
            logger.info("%s on %s exited with status %d", invocation.command, invocation.target, result.error_status)
        return self.hooks.alter(INVOKE_POST, result, invocation)
    
    def invoke_many(self, invocations: Iterable[Invocation], timeout: Optional[float] = None) -> Dict[str, DispatchResult]:
        """Run invocations one after another; one result per target"""
        results: Dict[str, DispatchResult] = {}
        for invocation in invocations:
            key = invocation.target
            suffix = 2
            while key in results:
                key = f"{invocation.target}#{suffix}"
                suffix += 1
            results[key] = self.invoke(invocation, timeout=timeout)
        return results
    
    def _invoke_local(self, invocation: Invocation) -> DispatchResult:
        record = invocation.record or SiteRecord.create(invocation.target)
        ctx = CommandContext(
            record=record,
            args=list(invocation.args),
            options=dict(invocation.options),
            resolver=self.resolver,
        )
        try:
            spec = self.registry.get(invocation.command)
            value = spec.handler(ctx)
        except Exception as e:
            logger.debug("In-process command %s failed", invocation.command, exc_info=True)
            return DispatchResult(
                error_status=EXIT_ERROR,
                output=str(e),
                log=ctx.log + [LogEntry(type="error", message=str(e))],
                error="exception",
            )
        return DispatchResult(
            error_status=EXIT_SUCCESS,
            output="\n".join(ctx.output),
            object=value,
            log=ctx.log,
        )
    
    def _run(self, transport: Transport, invocation: Invocation, timeout: Optional[float]):
        try:
            return transport.run(invocation, timeout)
        except InvokeTimeoutError as e:
            logger.warning("%s on %s: %s", invocation.command, invocation.target, e)
            result = DispatchResult.timeout(invocation.target, timeout)
            # keep what the command printed before it hung
            result.log = _line_entries(e.stdout, "stdout") + _stderr_entries(e.stderr)
            return result
        except SpawnFailedError as e:
            logger.error("%s", e)
            return DispatchResult(
                error_status=EXIT_SPAWN_FAILED,
                output=str(e),
                error=e.kind,
            )
    
    def _invoke_remote(self, invocation: Invocation, timeout: Optional[float]) -> DispatchResult:
        ran = self._run(self.transport, invocation, timeout)
        if isinstance(ran, DispatchResult):
            return ran
        stdout, stderr, exit_code = ran
        
        try:
            payload, preceding = parse_payload(stdout)
        except MalformedPayloadError as e:
            logger.warning("Malformed backend result from %s: %s", invocation.target, e)
            return DispatchResult(
                error_status=exit_code or EXIT_ERROR,
                output=stdout,
                log=_stderr_entries(stderr),
                error=e.kind,
            )
        
        result = result_from_payload(payload, preceding)
        result.log = _stderr_entries(stderr) + result.log
        if result.error_status == EXIT_SUCCESS and exit_code != EXIT_SUCCESS:
            result.error_status = exit_code
        return result
    
    def _invoke_process(self, invocation: Invocation, timeout: Optional[float]) -> DispatchResult:
        ran = self._run(self.process_transport, invocation, timeout)
        if isinstance(ran, DispatchResult):
            return ran
        stdout, stderr, exit_code = ran
        return DispatchResult(
            error_status=exit_code,
            output=stdout,
            log=_stderr_entries(stderr),
        )
