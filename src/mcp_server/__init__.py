"""MCP Server - sessions, tool registry, routing and auditing.

The MCP Server registers tools, checks sessions for protected tools,
routes calls to domain adapters, and audits all executions.
"""

from mcp_server.sessions import SessionStore
from mcp_server.registry import ToolRegistry
from mcp_server.router import ToolRouter
from mcp_server.auth import AuthGateway, authorize_request
from mcp_server.audit import AuditLogger

__all__ = [
    "SessionStore",
    "ToolRegistry",
    "ToolRouter",
    "AuthGateway",
    "authorize_request",
    "AuditLogger",
]
