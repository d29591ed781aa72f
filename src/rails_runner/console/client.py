"""Rails console client used by the tool layer."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from rails_runner.config import Settings
from rails_runner.console.executor import CommandExecutor
from rails_runner.console.framing import OutputFramer
from rails_runner.console.parser import ResultParser
from rails_runner.console.safety import SafetyClassifier
from rails_runner.console.session import ConsoleSession
from rails_runner.console.types import ParsedResult, SafetyVerdict
from rails_runner.errors import UnsafeOperationRejectedError


class RailsConsoleClient:
    """Connect to a Rails application root and evaluate snippets in its console."""

    def __init__(
        self,
        *,
        session: ConsoleSession | None = None,
        executor: CommandExecutor | None = None,
        parser: ResultParser | None = None,
        classifier: SafetyClassifier | None = None,
    ) -> None:
        self.session = session or (executor.session if executor is not None else ConsoleSession())
        framer = executor.framer if executor is not None else OutputFramer()
        self.executor = executor or CommandExecutor(self.session, framer=framer)
        self.parser = parser or ResultParser(framer=framer)
        self.classifier = classifier or SafetyClassifier()

    @classmethod
    def from_settings(cls, settings: Settings, *, framer: OutputFramer | None = None) -> RailsConsoleClient:
        session = ConsoleSession()
        framer = framer or OutputFramer()
        executor = CommandExecutor(
            session,
            command=settings.console_command,
            env_overrides={"RAILS_ENV": settings.rails_env},
            timeout_seconds=settings.command_timeout_seconds,
            max_concurrency=settings.max_concurrent_commands,
            framer=framer,
        )
        return cls(
            session=session,
            executor=executor,
            parser=ResultParser(noise_prefixes=settings.noise_prefixes, framer=framer),
            classifier=SafetyClassifier(settings.mutation_keywords),
        )

    @property
    def connected(self) -> bool:
        return self.session.connected

    def connect(self, working_directory: Path | str) -> None:
        self.session.connect(working_directory)

    def disconnect(self) -> None:
        self.session.disconnect()

    def verify_read_only(self, code: str) -> SafetyVerdict:
        return self.classifier.classify(code)

    async def execute(self, code: str) -> ParsedResult:
        """Run a snippet without the read-only gate."""
        output = await self.executor.execute(code)
        result = self.parser.parse(output.stdout, output.delimiter)
        if result.degraded:
            logger.warning("console.parse.degraded reason=no-delimiter")
        return result

    async def execute_read_only(self, code: str) -> ParsedResult:
        """Run a snippet only if the classifier finds no mutation keyword."""
        verdict = self.verify_read_only(code)
        if not verdict.is_read_only:
            logger.warning("console.read_only.rejected keywords={}", ",".join(verdict.matched_keywords))
            raise UnsafeOperationRejectedError(verdict.matched_keywords)
        return await self.execute(code)
