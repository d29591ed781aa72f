"""MCP server exposing the console tools and snippet resources over stdio."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from loguru import logger
from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.types import Resource, TextContent, Tool
from pydantic import ValidationError

from rails_runner.config import Settings
from rails_runner.console.client import RailsConsoleClient
from rails_runner.errors import SnippetNotFoundError
from rails_runner.snippets import CodeSnippetCatalog
from rails_runner.tools.builtin import ToolResponse, register_builtin_tools
from rails_runner.tools.registry import ToolRegistry

SERVER_NAME = "local-rails-runner"


@dataclass
class RunnerApp:
    """Everything one server process owns."""

    settings: Settings
    client: RailsConsoleClient
    catalog: CodeSnippetCatalog
    registry: ToolRegistry = field(default_factory=ToolRegistry)

    def __post_init__(self) -> None:
        if not self.registry.descriptors():
            register_builtin_tools(self.registry, client=self.client, catalog=self.catalog, settings=self.settings)

    @classmethod
    def from_settings(cls, settings: Settings) -> RunnerApp:
        return cls(
            settings=settings,
            client=RailsConsoleClient.from_settings(settings),
            catalog=CodeSnippetCatalog.load(settings.snippets_file),
        )

    def connect(self) -> None:
        self.client.connect(self.settings.require_working_dir())

    def disconnect(self) -> None:
        self.client.disconnect()

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> ToolResponse:
        """Run one tool and turn every failure into a text payload."""
        if not self.registry.has(name):
            return ToolResponse(content=(f"Unknown tool: {name}",), is_error=True)
        try:
            result = await self.registry.execute(name, kwargs=arguments or {})
        except ValidationError as exc:
            return ToolResponse(content=(f"Invalid arguments for {name}: {exc}",), is_error=True)
        except Exception as exc:
            return ToolResponse.failure(f"Tool {name} failed", exc)
        if isinstance(result, ToolResponse):
            return result
        return ToolResponse(content=(str(result),))


def create_server(app: RunnerApp) -> Server:
    server: Server = Server(SERVER_NAME)

    @server.list_tools()
    async def handle_list_tools() -> list[Tool]:
        return [
            Tool(name=descriptor.name, description=descriptor.detail, inputSchema=descriptor.input_schema())
            for descriptor in app.registry.descriptors()
        ]

    @server.call_tool()
    async def handle_call_tool(name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        response = await app.call_tool(name, arguments)
        return [TextContent(type="text", text=text) for text in response.content]

    @server.list_resources()
    async def handle_list_resources() -> list[Resource]:
        return [
            Resource(
                uri=snippet.uri,  # type: ignore[arg-type]
                name=f"Code Snippet {snippet.id}",
                mimeType="text/plain",
                description=snippet.description,
            )
            for snippet in app.catalog
        ]

    @server.read_resource()
    async def handle_read_resource(uri: Any) -> list[ReadResourceContents]:
        try:
            snippet = app.catalog.get_by_uri(str(uri))
        except SnippetNotFoundError as exc:
            raise ValueError(f"Resource not found: {uri}") from exc
        return [ReadResourceContents(content=snippet.code, mime_type="text/plain")]

    return server


async def serve(settings: Settings) -> None:
    """Connect to the Rails root and serve MCP requests on stdio until the client hangs up."""
    app = RunnerApp.from_settings(settings)
    app.connect()
    server = create_server(app)
    logger.info("server.start name={} tools={}", SERVER_NAME, ",".join(app.registry.compact_rows()))
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        app.disconnect()
        logger.info("server.stop name={}", SERVER_NAME)
