"""
Event hook registry

Handlers are kept per event name in registration order. Alter-style
events pass a value through every handler; a handler returning None
leaves the value unchanged.
"""
from typing import Any, Callable, Dict, List, Optional

from .logging import get_logger

logger = get_logger(__name__)

# Events fired by the dispatch core
ALIAS_ALTER = "alias.alter"
INVOKE_PRE = "invoke.pre"
INVOKE_POST = "invoke.post"


class HookRegistry:
    """Maps an event name to an ordered list of handlers"""
    
    def __init__(self):
        self._handlers: Dict[str, List[Callable[..., Any]]] = {}
    
    def register(self, event: str, handler: Optional[Callable[..., Any]] = None):
        """
        Register a handler for an event.
        
        Can be used directly or as a decorator:
        
            @hooks.register("alias.alter")
            def add_defaults(data, name): ...
        """
        if handler is None:
            def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
                self._handlers.setdefault(event, []).append(func)
                return func
            return decorator
        
        self._handlers.setdefault(event, []).append(handler)
        return handler
    
    def handlers(self, event: str) -> List[Callable[..., Any]]:
        """Handlers registered for an event, in order"""
        return list(self._handlers.get(event, []))
    
    def alter(self, event: str, value: Any, *args: Any) -> Any:
        """Pass value through every handler of the event"""
        for handler in self._handlers.get(event, []):
            result = handler(value, *args)
            if result is not None:
                value = result
        return value
    
    def collect(self, event: str, *args: Any) -> List[Any]:
        """Call every handler and collect the non-None results"""
        results = []
        for handler in self._handlers.get(event, []):
            result = handler(*args)
            if result is not None:
                results.append(result)
        logger.debug("Collected %d result(s) for %s", len(results), event)
        return results
    
    def clear(self, event: Optional[str] = None) -> None:
        """Remove handlers for one event, or for all events"""
        if event is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event, None)
