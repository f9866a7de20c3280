"""
Core interfaces for dependency injection
"""
from abc import ABC, abstractmethod
from typing import Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..domain.dispatch.models import Invocation


class Transport(ABC):
    """Runs one remote invocation and reports (stdout, stderr, exit_code)"""
    
    @abstractmethod
    def run(self, invocation: "Invocation", timeout: Optional[float] = None) -> Tuple[str, str, int]:
        """
        Run the invocation to completion.
        
        Raises:
            SpawnFailedError: If the process or connection could not be started
            InvokeTimeoutError: If the timeout elapsed; the child is terminated
        """
        pass


class PromptProvider(ABC):
    """User prompt interface"""
    
    @abstractmethod
    def prompt(self, message: str, default: Optional[str] = None, password: bool = False) -> str:
        """Prompt user for input"""
        pass
    
    @abstractmethod
    def confirm(self, message: str, default: bool = False) -> bool:
        """Prompt user for confirmation"""
        pass
