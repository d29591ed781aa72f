"""Shared console dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

ParseStrategy = Literal["structured", "string", "text"]

ERROR_PREFIX = "Error: "


@dataclass(frozen=True)
class CommandRequest:
    """One snippet to evaluate in a fresh console process."""

    source_code: str


@dataclass(frozen=True)
class RawExecutionOutput:
    """Captured streams of one console run."""

    stdout: str
    stderr: str
    exited_non_zero: bool
    exit_code: int | None
    delimiter: str


@dataclass(frozen=True)
class ParsedResult:
    """Console output coerced into a value, tagged by the strategy that produced it."""

    value: Any
    text: str
    strategy: ParseStrategy
    degraded: bool = False

    @property
    def is_error(self) -> bool:
        return self.strategy == "text" and self.text.startswith(ERROR_PREFIX)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class SafetyVerdict:
    """Outcome of the lexical mutation check."""

    is_read_only: bool
    matched_keywords: tuple[str, ...] = ()
