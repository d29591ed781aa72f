"""rails-runner - Rails console snippets for agents."""

from .console import ConsoleSession, ParsedResult, RailsConsoleClient
from .tools import ToolRegistry

__version__ = "0.1.0"

__all__ = ["ConsoleSession", "ParsedResult", "RailsConsoleClient", "ToolRegistry"]
