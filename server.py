"""
MCP Server Entry Point for Channel Entries
Run with: python server.py
"""

import asyncio
import logging
import sys
from typing import Any, Optional

from mcp.server.models import InitializationOptions
from mcp.server import NotificationOptions, Server
from mcp.server.stdio import stdio_server
from mcp import types

from config import DatabaseConfig, QueryConfig, get_environment_mode
from container import RegistryContainer
from database import DatabaseConnection
from handlers import get_handler
from tools import get_core_tool_catalog
from utils.error_messages import enhance_error_message

__version__ = "1.0.0"

# Initialize logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize server
app = Server("entries-mcp-server")
db: Optional[DatabaseConnection] = None
repos: Optional[RegistryContainer] = None


@app.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List available MCP tools (read-only entry access)"""
    return get_core_tool_catalog()


@app.call_tool()
async def handle_call_tool(
    name: str, arguments: dict[str, Any]
) -> list[types.TextContent]:
    """Route a tool call to its handler."""
    handler = get_handler(name)
    if handler is None:
        return [types.TextContent(type="text", text=f"Unknown tool: {name}")]

    try:
        return await handler(repos, arguments or {})
    except Exception as e:
        logger.error(f"Error executing tool {name}: {e}", exc_info=True)
        enhanced_msg = enhance_error_message(e)
        return [types.TextContent(
            type="text",
            text=f"Error executing {name}: {enhanced_msg}"
        )]


async def main():
    """Main entry point for MCP server"""
    global db, repos

    try:
        # config.py handles loading .env.{mode} based on APP_ENV
        config = DatabaseConfig.from_environment()

        db = DatabaseConnection(config)
        await db.connect()
        if not await db.check_connection():
            raise RuntimeError(f"Content store {config.database} at {config.host} is not answering queries")

        # Registries are loaded once and shared read-only by every request
        repos = await RegistryContainer.load(db, QueryConfig.from_environment())

        logger.info(f"Entries MCP Server starting ({get_environment_mode()})...")
        logger.info(
            f"Registries: {len(repos.channels)} channels, {len(repos.fields)} fields; "
            f"{len(get_core_tool_catalog())} tools"
        )

        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name="entries-mcp-server",
                    server_version=__version__,
                    capabilities=app.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={}
                    )
                )
            )
    except Exception as e:
        logger.error(f"Failed to start MCP server: {e}", exc_info=True)
        raise
    finally:
        if db:
            await db.disconnect()


def cli_entry():
    """Entry point for console script - wraps async main()"""
    import argparse

    parser = argparse.ArgumentParser(description="Channel Entries MCP Server")
    parser.add_argument('--version', '-v', action='store_true', help='Show version')

    args = parser.parse_args()

    if args.version:
        print(f"entries-mcp-server version {__version__}")
        sys.exit(0)

    logger.info("Starting in stdio mode...")
    asyncio.run(main())


if __name__ == "__main__":
    cli_entry()
