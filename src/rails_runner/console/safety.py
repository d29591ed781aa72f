"""Lexical read-only check for console snippets."""

from __future__ import annotations

from collections.abc import Iterable

from rails_runner.config import DEFAULT_MUTATION_KEYWORDS
from rails_runner.console.types import SafetyVerdict


class SafetyClassifier:
    """Flag snippets that mention a mutation keyword anywhere in their text.

    This is a plain case-insensitive substring scan, not a parser. It produces false
    positives (``updated_at`` contains ``update``) and must be treated as advisory:
    a read-only verdict is no guarantee that the snippet cannot write.
    """

    def __init__(self, keywords: Iterable[str] | None = None) -> None:
        source = DEFAULT_MUTATION_KEYWORDS if keywords is None else keywords
        self.keywords: tuple[str, ...] = tuple(keyword.lower() for keyword in source if keyword.strip())

    def classify(self, source_code: str) -> SafetyVerdict:
        lowered = source_code.lower()
        matched = tuple(keyword for keyword in self.keywords if keyword in lowered)
        return SafetyVerdict(is_read_only=not matched, matched_keywords=matched)
