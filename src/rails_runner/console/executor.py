"""One-shot console subprocess execution."""

from __future__ import annotations

import asyncio
import os
import shlex
import time
from collections.abc import Mapping, Sequence

from loguru import logger

from rails_runner.console.framing import OutputFramer
from rails_runner.console.session import ConsoleSession
from rails_runner.console.types import ERROR_PREFIX, CommandRequest, RawExecutionOutput
from rails_runner.errors import CommandFailedError, CommandTimeoutError, NoDelimiterFoundError

DEFAULT_CONSOLE_COMMAND = ("bundle", "exec", "rails", "console")
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_CONCURRENCY = 4
MAX_DETAIL_CHARS = 2000


def _tail(text: str, limit: int = MAX_DETAIL_CHARS) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return "..." + text[-limit:]


class CommandExecutor:
    """Run each snippet in its own console process.

    Nothing survives between calls: every :meth:`execute` spawns a new process with a
    new delimiter, so variables defined by one snippet are never visible to the next.
    """

    def __init__(
        self,
        session: ConsoleSession,
        *,
        command: Sequence[str] | str = DEFAULT_CONSOLE_COMMAND,
        env_overrides: Mapping[str, str] | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        framer: OutputFramer | None = None,
    ) -> None:
        self.session = session
        self.command: tuple[str, ...] = tuple(shlex.split(command) if isinstance(command, str) else command)
        if not self.command:
            raise ValueError("console command must not be empty")
        self.env_overrides = dict(env_overrides if env_overrides is not None else {"RAILS_ENV": "production"})
        self.timeout_seconds = timeout_seconds
        self.framer = framer or OutputFramer()
        self._slots = asyncio.Semaphore(max_concurrency)

    async def execute(self, source_code: str | CommandRequest) -> RawExecutionOutput:
        """Evaluate one snippet and return the captured streams.

        Raises:
            NotConnectedError: the session was never connected.
            CommandFailedError: the process exited non-zero or could not be started.
            CommandTimeoutError: the process ran past the timeout and was killed.
        """
        request = source_code if isinstance(source_code, CommandRequest) else CommandRequest(source_code)
        working_directory = self.session.require_connected()
        delimiter = self.framer.new_delimiter()
        script = self.framer.wrap(request.source_code, delimiter)
        env = {**os.environ, **self.env_overrides}

        async with self._slots:
            start = time.monotonic()
            logger.info("console.exec.start cwd={} command={}", working_directory, " ".join(self.command))
            try:
                process = await asyncio.create_subprocess_exec(
                    *self.command,
                    cwd=str(working_directory),
                    env=env,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as exc:
                logger.error("console.exec.spawn_failed error={}", exc)
                raise CommandFailedError(f"Command failed to start: {exc}") from exc

            try:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(script.encode("utf-8")), timeout=self.timeout_seconds
                )
            except asyncio.TimeoutError as exc:
                await self._kill(process)
                logger.error("console.exec.timeout seconds={}", self.timeout_seconds)
                raise CommandTimeoutError(f"Command timed out after {self.timeout_seconds:g}s") from exc
            finally:
                duration = time.monotonic() - start
                logger.info("console.exec.end exit={} duration={:.3f}ms", process.returncode, duration * 1000)

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        logger.debug("console.exec.output stdout={!r} stderr={!r}", _tail(stdout, 500), _tail(stderr, 500))

        exit_code = process.returncode
        if exit_code != 0:
            raise CommandFailedError(
                self._failure_message(exit_code, stdout, stderr, delimiter),
                stdout=stdout,
                stderr=stderr,
                exit_code=exit_code,
            )
        return RawExecutionOutput(
            stdout=stdout,
            stderr=stderr,
            exited_non_zero=False,
            exit_code=exit_code,
            delimiter=delimiter,
        )

    def _failure_message(self, exit_code: int | None, stdout: str, stderr: str, delimiter: str) -> str:
        detail = ""
        try:
            segment = self.framer.extract_segment(stdout, delimiter)
        except NoDelimiterFoundError:
            segment = ""
        lines = segment.strip().splitlines()
        error_starts = [index for index, line in enumerate(lines) if line.strip().startswith(ERROR_PREFIX)]
        if error_starts:
            # exception messages can span several lines, e.g. SyntaxError
            detail = _tail("\n".join(lines[error_starts[-1] :]))
        elif stderr.strip():
            detail = _tail(self.framer.scrub(stderr, delimiter))
        message = f"Command failed with exit code {exit_code}"
        return f"{message}\n{detail}" if detail else message

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()
