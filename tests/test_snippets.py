from pathlib import Path

import pytest

from rails_runner.console.safety import SafetyClassifier
from rails_runner.errors import ConfigurationError, SnippetNotFoundError
from rails_runner.snippets import BUILTIN_SNIPPETS, CodeSnippet, CodeSnippetCatalog


def test_get_returns_code_and_description() -> None:
    snippet = CodeSnippetCatalog().get("routes")
    assert "Rails.application.routes" in snippet.code
    assert snippet.description
    assert snippet.uri == "snippet://routes"


def test_unknown_id_raises_not_found() -> None:
    catalog = CodeSnippetCatalog()
    with pytest.raises(SnippetNotFoundError, match="Code snippet not found: nope"):
        catalog.get("nope")
    with pytest.raises(KeyError):
        catalog.get("nope")


def test_lookup_by_uri() -> None:
    catalog = CodeSnippetCatalog()
    assert catalog.get_by_uri("snippet://table-counts").id == "table-counts"
    assert catalog.get_by_uri("snippet://table-counts/").id == "table-counts"


def test_iteration_is_sorted_by_id() -> None:
    ids = [snippet.id for snippet in CodeSnippetCatalog()]
    assert ids == sorted(ids)
    assert len(CodeSnippetCatalog()) == len(BUILTIN_SNIPPETS)


def test_builtin_snippets_pass_the_read_only_check() -> None:
    classifier = SafetyClassifier()
    for snippet in BUILTIN_SNIPPETS:
        assert classifier.classify(snippet.code).is_read_only, snippet.id


def test_yaml_file_adds_and_overrides_snippets(tmp_path: Path) -> None:
    snippets_file = tmp_path / "snippets.yaml"
    snippets_file.write_text(
        "\n".join(
            [
                "routes:",
                "  description: Only admin routes",
                "  code: Rails.application.routes.routes.select { |r| r.path.spec.to_s.start_with?('/admin') }.size",
                "deactivate-stale-users:",
                "  description: Deactivate users without login for a year",
                "  code: |",
                "    User.where('last_login_at < ?', 1.year.ago).update_all(active: false)",
            ]
        ),
        encoding="utf-8",
    )

    catalog = CodeSnippetCatalog.load(snippets_file)

    assert catalog.get("routes").description == "Only admin routes"
    stale = catalog.get("deactivate-stale-users")
    assert stale.code == "User.where('last_login_at < ?', 1.year.ago).update_all(active: false)"
    assert len(catalog) == len(BUILTIN_SNIPPETS) + 1


def test_empty_yaml_file_keeps_builtins(tmp_path: Path) -> None:
    snippets_file = tmp_path / "snippets.yaml"
    snippets_file.write_text("", encoding="utf-8")
    assert len(CodeSnippetCatalog.load(snippets_file)) == len(BUILTIN_SNIPPETS)


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "broken:\n  description: no code here\n",
        "broken: [unclosed\n",
    ],
)
def test_malformed_yaml_raises_configuration_error(tmp_path: Path, content: str) -> None:
    snippets_file = tmp_path / "snippets.yaml"
    snippets_file.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        CodeSnippetCatalog.load(snippets_file)


def test_missing_yaml_file_raises_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="Cannot load snippets file"):
        CodeSnippetCatalog.load(tmp_path / "missing.yaml")


def test_catalog_accepts_explicit_snippets() -> None:
    catalog = CodeSnippetCatalog([CodeSnippet(id="one", code="1", description="the number one")])
    assert [snippet.id for snippet in catalog] == ["one"]
