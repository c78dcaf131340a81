#!/usr/bin/env python3
"""
MCP server for the ASTN session layer.

This server exposes sign-up, sign-in, onboarding and account operations
as MCP tools backed by a single Session Manager.
"""

import argparse
import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP
from pydantic import ValidationError

from astn_session.config import SessionSettings
from astn_session.logging_config import setup_logging
from astn_session.session import SessionManager, create_session_manager
from astn_session.tools import register_all_tools

logger = logging.getLogger(__name__)


def create_server(manager: SessionManager) -> FastMCP:
    """Build the MCP server; the session is restored when the server starts."""

    @asynccontextmanager
    async def lifespan(server: FastMCP):
        await manager.start()
        try:
            yield
        finally:
            await manager.aclose()

    mcp = FastMCP("ASTN Session Server", lifespan=lifespan)
    register_all_tools(mcp, manager)
    return mcp


def main(argv: Optional[list[str]] = None) -> int:
    """Main function to start the ASTN session MCP server."""
    parser = argparse.ArgumentParser(description="ASTN session MCP server")
    parser.add_argument("--env-file", help="Path to .env file with Cognito settings")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    # ASTN_DATA_DIR is read from os.environ by storage and file logging
    if args.env_file:
        load_dotenv(dotenv_path=args.env_file, override=True)
    else:
        load_dotenv()

    setup_logging(logging.DEBUG if args.debug else logging.INFO)
    try:
        settings = SessionSettings.from_env(args.env_file)
    except ValidationError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    try:
        manager = create_session_manager(settings)
    except ValueError as e:
        logger.error("Cannot start: %s", e)
        return 1

    logger.info("Starting ASTN session MCP server")
    create_server(manager).run(transport="stdio")
    return 0


if __name__ == "__main__":
    exit(main())
