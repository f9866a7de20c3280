"""
Rich-based user prompts
"""
from typing import Optional

from rich.console import Console
from rich.prompt import Prompt, Confirm

from ...core.interfaces import PromptProvider
from ...core.logging import get_stdout_console


class RichPromptProvider(PromptProvider):
    """Rich-based prompt provider"""
    
    def __init__(self, console: Optional[Console] = None):
        self.console = console or get_stdout_console()
    
    def prompt(self, message: str, default: Optional[str] = None, password: bool = False) -> str:
        """Prompt user for input"""
        # Format message with default value if provided
        if default is not None:
            formatted_message = f"{message} (default: {default})"
        else:
            formatted_message = message
        
        return Prompt.ask(formatted_message, password=password, default=default, console=self.console)
    
    def confirm(self, message: str, default: bool = False) -> bool:
        """Prompt user for confirmation"""
        return Confirm.ask(message, default=default, console=self.console)
    
    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")
    
    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}")
