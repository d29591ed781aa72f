"""Built-in console tool definitions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field, model_validator

from rails_runner.analysis import MutationAnalyzer
from rails_runner.config import Settings
from rails_runner.console.client import RailsConsoleClient
from rails_runner.errors import RailsRunnerError
from rails_runner.snippets import CodeSnippetCatalog
from rails_runner.tools.registry import ToolRegistry

ISOLATION_NOTE = "Every command is its own isolated session - you cannot use variables across commands."

CommandMode = Literal["read_only", "mutate"]


class ExecuteReadOnlyInput(BaseModel):
    code: str = Field(
        ...,
        min_length=1,
        description=(
            "The Ruby code to execute (must be read-only, e.g., 'User.count' or "
            "'Product.where(active: true).pluck(:name)')"
        ),
    )


class MutateInput(BaseModel):
    code: str | None = Field(default=None, description="The Ruby code to run")
    snippet_id: str | None = Field(default=None, description="Id of a catalog snippet to run instead of code")

    @model_validator(mode="after")
    def _require_source(self) -> MutateInput:
        if not (self.code and self.code.strip()) and not self.snippet_id:
            raise ValueError("either code or snippet_id is required")
        return self


@dataclass(frozen=True)
class ToolResponse:
    """Text payload handed back to the caller."""

    content: tuple[str, ...]
    is_error: bool = False

    @classmethod
    def failure(cls, prefix: str, exc: BaseException) -> ToolResponse:
        return cls(content=(f"{prefix}: {exc}",), is_error=True)

    @property
    def text(self) -> str:
        return "\n".join(self.content)


def _resolve_code(params: MutateInput, catalog: CodeSnippetCatalog) -> str:
    if params.code and params.code.strip():
        return params.code
    return catalog.get(params.snippet_id or "").code


async def execute_read_only(client: RailsConsoleClient, code: str) -> ToolResponse:
    """Refuse snippets that look mutating, run the rest, never raise."""
    try:
        result = await client.execute_read_only(code)
    except RailsRunnerError as exc:
        logger.warning("tool.read_only.failed error={}", exc)
        return ToolResponse.failure("Failed to execute read-only operation", exc)
    return ToolResponse(content=("Read-only operation executed successfully", str(result)))


async def execute_mutate(client: RailsConsoleClient, code: str) -> ToolResponse:
    try:
        result = await client.execute(code)
    except RailsRunnerError as exc:
        logger.warning("tool.mutate.failed error={}", exc)
        return ToolResponse.failure("Failed to execute mutation", exc)
    return ToolResponse(content=("Mutation executed successfully", str(result)))


async def dry_run_mutate(analyzer: MutationAnalyzer, code: str) -> ToolResponse:
    try:
        analysis = await analyzer.analyze(code)
    except RailsRunnerError as exc:
        logger.warning("tool.dry_run.failed error={}", exc)
        return ToolResponse.failure("Failed to analyze mutation", exc)
    return ToolResponse(content=("Dry run completed, all changes were rolled back", analysis.render()))


async def run_console_command(client: RailsConsoleClient, code: str, mode: CommandMode = "read_only") -> ToolResponse:
    """Route one request by mode."""
    if mode == "mutate":
        return await execute_mutate(client, code)
    return await execute_read_only(client, code)


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    client: RailsConsoleClient,
    catalog: CodeSnippetCatalog,
    settings: Settings,
    analyzer: MutationAnalyzer | None = None,
) -> None:
    """Register the console tools."""

    register = registry.register
    analyzer = analyzer or MutationAnalyzer(client)

    @register(
        name="execute_read_only",
        short_description="Run read-only Rails console code",
        model=ExecuteReadOnlyInput,
        detail=settings.describe_project(f"Executes read-only Rails console operations safely. {ISOLATION_NOTE}"),
    )
    async def _execute_read_only(params: ExecuteReadOnlyInput) -> ToolResponse:
        return await execute_read_only(client, params.code)

    @register(
        name="dry_run_mutate",
        short_description="Preview a mutation without committing",
        model=MutateInput,
        detail=settings.describe_project(
            "Runs Rails console code inside a transaction that is always rolled back and reports "
            f"the write statements it would issue. {ISOLATION_NOTE}"
        ),
    )
    async def _dry_run_mutate(params: MutateInput) -> ToolResponse:
        try:
            code = _resolve_code(params, catalog)
        except RailsRunnerError as exc:
            return ToolResponse.failure("Failed to analyze mutation", exc)
        return await dry_run_mutate(analyzer, code)

    @register(
        name="execute_mutate",
        short_description="Run mutating Rails console code",
        model=MutateInput,
        detail=settings.describe_project(
            f"Executes Rails console code that may change data. Run dry_run_mutate first. {ISOLATION_NOTE}"
        ),
    )
    async def _execute_mutate(params: MutateInput) -> ToolResponse:
        try:
            code = _resolve_code(params, catalog)
        except RailsRunnerError as exc:
            return ToolResponse.failure("Failed to execute mutation", exc)
        return await execute_mutate(client, code)
