"""MCP server exposing the database tools and table schema resources."""

import asyncio
import json
from typing import Any

from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.types import Resource, TextContent, Tool
from pydantic import AnyUrl

from ..utils.logging import LogContext, get_logger
from .context import ServerContext
from .tools import TOOLS, ToolHandlers, schema_resource_uri

logger = get_logger(__name__, LogContext.SERVER)


def to_json(result: Any) -> str:
    return json.dumps(result, indent=2, default=str)


def create_server(context: ServerContext) -> Server:
    """Create and configure the MCP server for one context."""
    server = Server(context.config.server_name, version=context.config.server_version)
    handlers = ToolHandlers(context)

    @server.list_resources()  # type: ignore[no-untyped-call, untyped-decorator]
    async def list_resources() -> list[Resource]:
        tables = await asyncio.to_thread(handlers.list_table_resources)
        return [
            Resource(
                uri=AnyUrl(schema_resource_uri(table)),
                mimeType="application/json",
                name=f'"{table}" database schema',
            )
            for table in tables
        ]

    @server.read_resource()  # type: ignore[no-untyped-call, untyped-decorator]
    async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
        columns = await asyncio.to_thread(handlers.read_table_resource, str(uri))
        return [ReadResourceContents(content=to_json(columns), mime_type="application/json")]

    @server.list_tools()  # type: ignore[no-untyped-call, untyped-decorator]
    async def list_tools() -> list[Tool]:
        return TOOLS

    @server.call_tool()  # type: ignore[no-untyped-call, untyped-decorator]
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        try:
            result = await asyncio.to_thread(handlers.call, name, arguments)
        except Exception as e:
            logger.error(f"Tool {name} failed", exception=e, tool=name)
            raise
        return [TextContent(type="text", text=to_json(result))]

    return server


async def run_server(context: ServerContext) -> None:
    """Serve over stdio until the client disconnects."""
    server = create_server(context)
    logger.info(
        "Starting tool server",
        server_name=context.config.server_name,
        migrations_dir=str(context.config.migrations_path),
    )
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream, write_stream, server.create_initialization_options()
            )
    finally:
        context.close()
        logger.info("Tool server stopped")
