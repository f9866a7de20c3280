"""
Run invocations as local child processes (ssh, rsync)
"""
import subprocess
from typing import Optional, Tuple

from ...core.exceptions import InvokeTimeoutError, SpawnFailedError
from ...core.interfaces import Transport
from ...core.logging import get_logger

logger = get_logger(__name__)

# Seconds to wait after SIGTERM before SIGKILL
TERMINATE_GRACE = 5


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class SubprocessTransport(Transport):
    """Spawns invocation.argv and waits for it"""
    
    def run(self, invocation, timeout: Optional[float] = None) -> Tuple[str, str, int]:
        argv = list(invocation.argv)
        if not argv:
            raise SpawnFailedError(f"Nothing to run for {invocation.target}")
        
        logger.debug("Spawning: %s", " ".join(argv))
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise SpawnFailedError(f"Could not start {argv[0]}: {e}") from e
        
        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            process.terminate()
            try:
                stdout, stderr = process.communicate(timeout=TERMINATE_GRACE)
            except subprocess.TimeoutExpired:
                process.kill()
                stdout, stderr = process.communicate()
            # communicate() returns everything read so far, including
            # what was buffered before the first timeout
            raise InvokeTimeoutError(
                f"{invocation.command} on {invocation.target} timed out after {timeout} seconds",
                stdout=_text(stdout) or _text(e.stdout),
                stderr=_text(stderr) or _text(e.stderr),
            ) from e
        
        return stdout or "", stderr or "", process.returncode
