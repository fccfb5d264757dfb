# File: stay_scout/server.py
"""
stdio transport: exposes the engine's tools through the Model Context Protocol.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from stay_scout import __version__
from stay_scout.config import ServerConfig
from stay_scout.engine import Engine
from stay_scout.logger import logger

__all__ = ["build_server", "serve"]


def build_server(engine: Engine) -> Server:
    """Wire list_tools/call_tool handlers to *engine*."""
    server: Server = Server("stay-scout", version=__version__)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [
            types.Tool(name=d["name"], description=d["description"], inputSchema=d["inputSchema"])
            for d in engine.list_tools()
        ]

    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> types.CallToolResult:
        outcome = await engine.call(name, arguments)
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=outcome.text())],
            isError=outcome.is_error,
        )

    return server


async def serve(config: ServerConfig) -> None:
    """Run until stdin closes; robots.txt is loaded before the first request."""
    logger.info(
        "StayScout server starting (version %s, robots.txt respected: %s)",
        __version__,
        not config.ignore_robots_txt,
    )
    async with Engine(config) as engine:
        await engine.start()
        server = build_server(engine)
        async with stdio_server() as (read_stream, write_stream):
            logger.info("StayScout server running on stdio")
            await server.run(read_stream, write_stream, server.create_initialization_options())
    logger.info("StayScout server stopped")
