from collections.abc import Callable
from pathlib import Path

import pytest
from mcp import types

from rails_runner.config import Settings
from rails_runner.console.client import RailsConsoleClient
from rails_runner.errors import ConfigurationError, EnvironmentNotFoundError
from rails_runner.server import SERVER_NAME, RunnerApp, create_server
from rails_runner.snippets import CodeSnippetCatalog


def _app(client: RailsConsoleClient, **settings: object) -> RunnerApp:
    return RunnerApp(
        settings=Settings(_env_file=None, **settings),  # type: ignore[arg-type]
        client=client,
        catalog=CodeSnippetCatalog(),
    )


def test_app_registers_builtin_tools(make_client: Callable[..., RailsConsoleClient]) -> None:
    app = _app(make_client("true"))
    assert app.registry.has("execute_read_only")
    assert app.registry.has("dry_run_mutate")
    assert app.registry.has("execute_mutate")


def test_from_settings_and_connect(app_dir: Path) -> None:
    app = RunnerApp.from_settings(Settings(_env_file=None, working_dir=app_dir))
    app.connect()
    assert app.client.connected is True
    app.disconnect()
    assert app.client.connected is False


def test_connect_fails_for_missing_directory(tmp_path: Path) -> None:
    app = RunnerApp.from_settings(Settings(_env_file=None, working_dir=tmp_path / "missing"))
    with pytest.raises(EnvironmentNotFoundError):
        app.connect()
    assert app.client.connected is False


def test_connect_without_working_dir_is_a_configuration_error() -> None:
    app = RunnerApp.from_settings(Settings(_env_file=None))
    with pytest.raises(ConfigurationError, match="RAILS_WORKING_DIR"):
        app.connect()


@pytest.mark.asyncio
async def test_call_tool_never_raises(make_client: Callable[..., RailsConsoleClient], fake_console) -> None:
    app = _app(make_client(fake_console('echo "$delim"\necho 42')))

    unknown = await app.call_tool("drop_database", {})
    assert unknown.text == "Unknown tool: drop_database"
    assert unknown.is_error is True

    invalid = await app.call_tool("execute_read_only", {"code": ""})
    assert invalid.text.startswith("Invalid arguments for execute_read_only")

    missing = await app.call_tool("execute_read_only", None)
    assert missing.is_error is True

    ok = await app.call_tool("execute_read_only", {"code": "User.count"})
    assert ok.content == ("Read-only operation executed successfully", "42")


@pytest.mark.asyncio
async def test_server_lists_tools_and_snippet_resources(make_client: Callable[..., RailsConsoleClient]) -> None:
    server = create_server(_app(make_client("true")))
    assert server.name == SERVER_NAME

    tools_result = await server.request_handlers[types.ListToolsRequest](types.ListToolsRequest(method="tools/list"))
    tools = {tool.name: tool for tool in tools_result.root.tools}
    assert set(tools) == {"execute_read_only", "dry_run_mutate", "execute_mutate"}
    assert tools["execute_read_only"].inputSchema["required"] == ["code"]

    resources_result = await server.request_handlers[types.ListResourcesRequest](
        types.ListResourcesRequest(method="resources/list")
    )
    uris = {str(resource.uri) for resource in resources_result.root.resources}
    assert "snippet://routes" in uris


@pytest.mark.asyncio
async def test_server_reads_snippet_resource(make_client: Callable[..., RailsConsoleClient]) -> None:
    server = create_server(_app(make_client("true")))
    request = types.ReadResourceRequest(
        method="resources/read",
        params=types.ReadResourceRequestParams(uri="snippet://routes"),  # type: ignore[arg-type]
    )
    result = await server.request_handlers[types.ReadResourceRequest](request)
    contents = result.root.contents
    assert len(contents) == 1
    assert "Rails.application.routes" in contents[0].text
    assert contents[0].mimeType == "text/plain"


@pytest.mark.asyncio
async def test_server_call_tool_returns_text_content(
    make_client: Callable[..., RailsConsoleClient], fake_console
) -> None:
    server = create_server(_app(make_client(fake_console('echo "$delim"\necho 42'))))
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name="execute_read_only", arguments={"code": "User.destroy_all"}),
    )
    result = await server.request_handlers[types.CallToolRequest](request)
    texts = [item.text for item in result.root.content]
    assert len(texts) == 1
    assert "cannot be executed in read-only mode" in texts[0]
