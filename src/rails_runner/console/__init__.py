"""Console execution core."""

from .client import RailsConsoleClient
from .executor import CommandExecutor
from .framing import OutputFramer
from .parser import ResultParser
from .safety import SafetyClassifier
from .session import ConsoleSession
from .types import CommandRequest, ParsedResult, RawExecutionOutput, SafetyVerdict

__all__ = [
    "CommandExecutor",
    "CommandRequest",
    "ConsoleSession",
    "OutputFramer",
    "ParsedResult",
    "RailsConsoleClient",
    "RawExecutionOutput",
    "ResultParser",
    "SafetyClassifier",
    "SafetyVerdict",
]
