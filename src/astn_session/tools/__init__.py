"""MCP tools for the ASTN session server."""

from astn_session.tools.session import register_session_tools

__all__ = [
    "register_session_tools",
    "register_all_tools",
]


def register_all_tools(mcp, manager):
    """Register all MCP tools with the server."""
    register_session_tools(mcp, manager)
