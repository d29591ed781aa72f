"""Application-level exception types for rails-runner."""

from __future__ import annotations


class RailsRunnerError(Exception):
    """Base exception for rails-runner."""


class ConfigurationError(RailsRunnerError):
    """Base exception for configuration and startup validation errors."""


class EnvironmentNotFoundError(ConfigurationError):
    """Raised when the configured working directory does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Working directory '{path}' does not exist")
        self.path = path


class NotConnectedError(RailsRunnerError):
    """Raised when a command is executed before a successful connect."""

    def __init__(self) -> None:
        super().__init__("Not connected to Rails environment")


class CommandFailedError(RailsRunnerError):
    """Raised when the console process exits non-zero or cannot be spawned.

    The captured streams stay available so callers can tell an application error
    raised inside the snippet from an infrastructure failure.
    """

    def __init__(self, message: str, *, stdout: str = "", stderr: str = "", exit_code: int | None = None) -> None:
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code


class CommandTimeoutError(CommandFailedError):
    """Raised when the console process does not finish in time."""


class UnsafeOperationRejectedError(RailsRunnerError):
    """Raised when read-only mode refuses a snippet that looks mutating."""

    def __init__(self, matched_keywords: tuple[str, ...] = ()) -> None:
        super().__init__("The provided code contains potential mutations and cannot be executed in read-only mode")
        self.matched_keywords = matched_keywords


class SnippetNotFoundError(RailsRunnerError, KeyError):
    """Raised when a snippet id is not in the catalog."""

    def __init__(self, snippet_id: str) -> None:
        super().__init__(f"Code snippet not found: {snippet_id}")
        self.snippet_id = snippet_id

    def __str__(self) -> str:
        return str(self.args[0])


class NoDelimiterFoundError(RailsRunnerError):
    """Raised by the framer when captured output carries no delimiter."""
