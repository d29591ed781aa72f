"""Reusable code snippets exposed as resources."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from rails_runner.errors import ConfigurationError, SnippetNotFoundError

SNIPPET_URI_SCHEME = "snippet://"


@dataclass(frozen=True)
class CodeSnippet:
    """One catalog entry."""

    id: str
    code: str
    description: str

    @property
    def uri(self) -> str:
        return f"{SNIPPET_URI_SCHEME}{self.id}"


BUILTIN_SNIPPETS: tuple[CodeSnippet, ...] = (
    CodeSnippet(
        id="list-models",
        description="List application models with their table names",
        code=(
            "Rails.application.eager_load!\n"
            "ActiveRecord::Base.descendants.reject(&:abstract_class?)"
            ".map { |model| { model: model.name, table: model.table_name } }.to_json"
        ),
    ),
    CodeSnippet(
        id="model-columns",
        description="Show column names and types for a model (replace User with your model)",
        code="User.columns.map { |column| { name: column.name, type: column.type, null: column.null } }.to_json",
    ),
    CodeSnippet(
        id="table-counts",
        description="Count rows for every application model",
        code=(
            "Rails.application.eager_load!\n"
            "ActiveRecord::Base.descendants.reject(&:abstract_class?)"
            ".to_h { |model| [model.name, model.count] }.to_json"
        ),
    ),
    CodeSnippet(
        id="routes",
        description="List application routes with verb, path and controller action",
        code=(
            "Rails.application.routes.routes.map { |route| "
            "{ verb: route.verb, path: route.path.spec.to_s, action: route.defaults.values_at(:controller, :action).compact.join('#') } }"
            ".to_json"
        ),
    ),
    CodeSnippet(
        id="pending-migrations",
        description="List migrations that have not been applied",
        code=(
            "ActiveRecord::Base.connection.migration_context.migrations_status"
            ".select { |status, _version, _name| status == 'down' }"
            ".map { |_status, version, name| { version: version, name: name } }.to_json"
        ),
    ),
)


def _snippets_from_yaml(path: Path) -> list[CodeSnippet]:
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot load snippets file '{path}': {exc}") from exc
    if data is None:
        return []
    if not isinstance(data, dict):
        raise ConfigurationError(f"Snippets file '{path}' must map snippet ids to entries")

    snippets: list[CodeSnippet] = []
    for snippet_id, entry in data.items():
        if not isinstance(entry, dict) or not isinstance(entry.get("code"), str):
            raise ConfigurationError(f"Snippet '{snippet_id}' in '{path}' needs a 'code' string")
        snippets.append(
            CodeSnippet(
                id=str(snippet_id),
                code=entry["code"].strip(),
                description=str(entry.get("description") or ""),
            )
        )
    return snippets


class CodeSnippetCatalog:
    """Identifier-keyed snippet lookup."""

    def __init__(self, snippets: list[CodeSnippet] | tuple[CodeSnippet, ...] = BUILTIN_SNIPPETS) -> None:
        self._snippets: dict[str, CodeSnippet] = {}
        for snippet in snippets:
            self.add(snippet)

    @classmethod
    def load(cls, snippets_file: Path | None = None) -> CodeSnippetCatalog:
        """Builtin snippets, overridden by entries from an optional YAML file."""
        catalog = cls()
        if snippets_file is not None:
            loaded = _snippets_from_yaml(snippets_file.expanduser())
            for snippet in loaded:
                catalog.add(snippet)
            logger.info("snippets.loaded path={} count={}", snippets_file, len(loaded))
        return catalog

    def add(self, snippet: CodeSnippet) -> None:
        self._snippets[snippet.id] = snippet

    def get(self, snippet_id: str) -> CodeSnippet:
        snippet = self._snippets.get(snippet_id)
        if snippet is None:
            raise SnippetNotFoundError(snippet_id)
        return snippet

    def get_by_uri(self, uri: str) -> CodeSnippet:
        snippet_id = uri.removeprefix(SNIPPET_URI_SCHEME).rstrip("/")
        return self.get(snippet_id)

    def __iter__(self) -> Iterator[CodeSnippet]:
        return iter(sorted(self._snippets.values(), key=lambda item: item.id))

    def __len__(self) -> int:
        return len(self._snippets)
