"""Tool Domains.

Each domain contains:
- Tool definitions
- Adapter implementation
- Its collaborator (session store, database or HTTP API), injected

Domains are isolated with no cross-domain calls.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from domains.database.connection import DatabaseGateway
    from domains.homologaciones.client import ApprovalGateway
    from mcp_server.auth import AuthGateway
    from mcp_server.router import ToolRouter


def load_all_domains(
    router: "ToolRouter",
    auth_gateway: "AuthGateway",
    database_gateway: "DatabaseGateway",
    approval_gateway: "ApprovalGateway"
) -> None:
    """
    Load and register all tool domains.

    This is called at MCP Server startup to register all
    domain tools and adapters.
    """
    from domains.auth import register_auth_domain
    from domains.database import register_database_domain
    from domains.homologaciones import register_homologaciones_domain

    register_auth_domain(router, auth_gateway)
    register_database_domain(router, database_gateway)
    register_homologaciones_domain(router, approval_gateway)


__all__ = ["load_all_domains"]
