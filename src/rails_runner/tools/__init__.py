"""Tool package."""

from .builtin import ToolResponse, register_builtin_tools, run_console_command
from .registry import ToolDescriptor, ToolRegistry

__all__ = ["ToolDescriptor", "ToolRegistry", "ToolResponse", "register_builtin_tools", "run_console_command"]
