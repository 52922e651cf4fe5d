"""graphsift MCP server: exposes graph query operations as tools for AI agents."""

from graphsift.mcp.server import mcp, run_server

__all__ = ["mcp", "run_server"]
