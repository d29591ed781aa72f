"""Working-directory bound console session."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from rails_runner.errors import EnvironmentNotFoundError, NotConnectedError


class ConsoleSession:
    """Connection state for one Rails application root.

    The directory is checked once at connect time. Executions only consult the
    ``connected`` flag afterwards.
    """

    def __init__(self) -> None:
        self.working_directory: Path | None = None
        self.connected = False

    def connect(self, working_directory: Path | str) -> None:
        path = Path(working_directory).expanduser()
        if not path.is_dir():
            self.connected = False
            logger.error("console.connect.failed path={}", path)
            raise EnvironmentNotFoundError(str(working_directory))
        self.working_directory = path
        self.connected = True
        logger.info("console.connect path={}", path)

    def disconnect(self) -> None:
        if self.connected:
            logger.info("console.disconnect path={}", self.working_directory)
        self.connected = False

    def require_connected(self) -> Path:
        if not self.connected or self.working_directory is None:
            raise NotConnectedError()
        return self.working_directory
