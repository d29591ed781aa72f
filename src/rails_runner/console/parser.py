"""Turn framed console output into a parsed result.

The console's printed rendering is not a stable contract, so parsing never raises.
After the delimiter segment is isolated and noise lines are dropped, the text runs
through a short pipeline of named stages. A stage either finishes the parse or hands
(possibly rewritten) text to the next one; whatever is left at the end is returned as
opaque text.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Protocol

from loguru import logger

from rails_runner.config import DEFAULT_NOISE_PREFIXES
from rails_runner.console.framing import OutputFramer
from rails_runner.console.types import ParsedResult, ParseStrategy
from rails_runner.errors import NoDelimiterFoundError

_RUBY_ESCAPE_RE = re.compile(r"\\(u\{[0-9a-fA-F ]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{1,2}|[0-7]{1,3}|.)", re.DOTALL)
_RUBY_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "e": "\x1b",
    "s": " ",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    '"': '"',
    "\\": "\\",
    "#": "#",
}


@dataclass(frozen=True)
class StageOutcome:
    """What a stage hands back to the pipeline."""

    text: str
    result: ParsedResult | None = None
    strategy: ParseStrategy | None = None


class ParseStage(Protocol):
    name: str

    def run(self, text: str) -> StageOutcome: ...


def _unescape_ruby(body: str) -> str:
    def _replace(match: re.Match[str]) -> str:
        token = match.group(1)
        if token.startswith("u{"):
            return "".join(chr(int(part, 16)) for part in token[2:-1].split())
        if token.startswith("u") and len(token) == 5:
            return chr(int(token[1:], 16))
        if token.startswith("x") and len(token) > 1:
            return chr(int(token[1:], 16))
        if token.isdigit():
            return chr(int(token, 8))
        if token in _RUBY_SIMPLE_ESCAPES:
            return _RUBY_SIMPLE_ESCAPES[token]
        raise ValueError(f"unsupported escape: \\{token}")

    return _RUBY_ESCAPE_RE.sub(_replace, body)


class QuotedStringStage:
    """Unwrap one layer of string-literal quoting, as printed by ``inspect``."""

    name = "quoted_string"

    def run(self, text: str) -> StageOutcome:
        unwrapped = self.unwrap(text)
        if unwrapped is None:
            return StageOutcome(text=text)
        return StageOutcome(text=unwrapped, strategy="string")

    @staticmethod
    def unwrap(text: str) -> str | None:
        if len(text) < 2 or "\n" in text or text[0] != text[-1] or text[0] not in "\"'":
            return None

        if text[0] == "'":
            body = text[1:-1]
            if re.search(r"(?<!\\)'", body):
                return None
            return body.replace("\\'", "'").replace("\\\\", "\\")

        try:
            decoded = json.loads(text)
        except ValueError:
            decoded = None
        if isinstance(decoded, str):
            return decoded

        body = text[1:-1]
        if re.search(r'(?<!\\)(?:\\\\)*"', body):
            # more than one literal on the line
            return None
        try:
            return _unescape_ruby(body)
        except ValueError:
            logger.debug("parse.quoted_string.keep text={!r}", text[:80])
            return None


class StructuredStage:
    """Decode JSON objects and arrays and re-encode them canonically."""

    name = "structured"

    def run(self, text: str) -> StageOutcome:
        if not text.startswith(("{", "[")):
            return StageOutcome(text=text)
        try:
            value = json.loads(text)
        except ValueError as exc:
            logger.debug("parse.structured.miss error={}", exc)
            return StageOutcome(text=text)
        canonical = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        return StageOutcome(text=canonical, result=ParsedResult(value=value, text=canonical, strategy="structured"))


def default_stages() -> tuple[ParseStage, ...]:
    return (QuotedStringStage(), StructuredStage())


class ResultParser:
    """Parse captured console output into a :class:`ParsedResult`."""

    def __init__(
        self,
        *,
        noise_prefixes: Iterable[str] | None = None,
        framer: OutputFramer | None = None,
        stages: Sequence[ParseStage] | None = None,
    ) -> None:
        source = DEFAULT_NOISE_PREFIXES if noise_prefixes is None else noise_prefixes
        self.noise_prefixes: tuple[str, ...] = tuple(prefix for prefix in source if prefix)
        self.framer = framer or OutputFramer()
        self.stages: tuple[ParseStage, ...] = tuple(stages) if stages is not None else default_stages()

    def parse(self, raw_output: str, delimiter: str | None = None) -> ParsedResult:
        degraded = False
        try:
            segment = self.framer.extract_segment(raw_output, delimiter)
        except NoDelimiterFoundError:
            logger.debug("parse.degraded reason=no-delimiter length={}", len(raw_output))
            segment = raw_output.strip()
            degraded = True

        text = self.strip_noise(segment)
        strategy: ParseStrategy = "text"
        for stage in self.stages:
            outcome = stage.run(text)
            if outcome.result is not None:
                return replace(outcome.result, degraded=degraded)
            if outcome.strategy is not None:
                strategy = outcome.strategy
            text = outcome.text
        return ParsedResult(value=text, text=text, strategy=strategy, degraded=degraded)

    def strip_noise(self, segment: str) -> str:
        kept = [line for line in segment.splitlines() if not self._is_noise(line)]
        return "\n".join(kept).strip()

    def _is_noise(self, line: str) -> bool:
        stripped = line.strip()
        if not stripped:
            return True
        return stripped.startswith(self.noise_prefixes)
