"""MCP Server - stdio application.

Wires the session store, gateways, domains and router together and serves
them to an MCP host over stdio. There is no LLM or UI logic here.
"""

import asyncio
import json
import uuid
from typing import Any, Callable, Optional

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging
from shared.models import ExecutionContext, ToolCall, ToolResult
from mcp_server.audit import AuditLogger
from mcp_server.auth import AuthGateway
from mcp_server.registry import ToolRegistry
from mcp_server.router import ToolRouter
from mcp_server.sessions import SessionStore
from domains import load_all_domains
from domains.database.connection import DatabaseGateway
from domains.homologaciones.client import ApprovalGateway

logger = get_logger(__name__)


def to_call_tool_result(result: ToolResult) -> types.CallToolResult:
    """Serialize a tool result as a single JSON text content item."""
    if result.data is not None:
        text = json.dumps(result.data, indent=2, ensure_ascii=False, default=str)
    else:
        text = result.error or ""

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=result.is_error
    )


class MCPApplication:
    """
    The process-wide server application.

    Owns the session store (and its sweeper), the gateways and the tool
    router for the lifetime of the process.
    """

    def __init__(
        self,
        settings: Settings,
        database_gateway: Optional[DatabaseGateway] = None,
        approval_gateway: Optional[ApprovalGateway] = None,
        clock: Optional[Callable[[], float]] = None
    ) -> None:
        """
        Build the application.

        Args:
            settings: Application settings
            database_gateway: Optional database gateway (built from settings otherwise)
            approval_gateway: Optional approval gateway (built from settings otherwise)
            clock: Optional monotonic clock for the session store
        """
        self.settings = settings

        self.sessions = SessionStore(
            ttl_minutes=settings.session.ttl_minutes,
            sweep_interval_minutes=settings.session.sweep_interval_minutes,
            clock=clock
        )
        self.auth_gateway = AuthGateway(self.sessions, settings.auth.secret)

        self.registry = ToolRegistry()
        self.audit_logger = AuditLogger(
            log_path=settings.audit.log_path,
            enabled=settings.audit.enabled,
            buffer_size=settings.audit.buffer_size
        )
        self.router = ToolRouter(
            registry=self.registry,
            sessions=self.sessions,
            audit_logger=self.audit_logger
        )

        self.database_gateway = database_gateway or DatabaseGateway(settings.database)
        self.approval_gateway = approval_gateway or ApprovalGateway.from_settings(
            settings.homologaciones
        )

        load_all_domains(
            self.router,
            auth_gateway=self.auth_gateway,
            database_gateway=self.database_gateway,
            approval_gateway=self.approval_gateway
        )

        if not self.auth_gateway.is_configured:
            logger.warning("AUTH_SECRET not configured, every auth_login will fail")

        self._server = Server(settings.server_name, version=settings.server_version)
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Register ``list_tools`` and ``call_tool`` handlers on the
        low-level MCP server."""
        app = self

        @self._server.list_tools()
        async def handle_list_tools() -> list[types.Tool]:
            return app.registry.get_tools_for_mcp()

        # Input is validated by the router so that rejections are audited too
        @self._server.call_tool(validate_input=False)
        async def handle_call_tool(
            name: str, arguments: dict[str, Any] | None,
        ) -> types.CallToolResult:
            return await app.call_tool(name, arguments)

    async def call_tool(
        self,
        name: str,
        arguments: Optional[dict[str, Any]] = None
    ) -> types.CallToolResult:
        """
        Execute a tool on behalf of the host.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            JSON text content with the error flag set on failure
        """
        call = ToolCall(
            tool_name=name,
            parameters=arguments or {},
            context=ExecutionContext(request_id=str(uuid.uuid4()))
        )
        result = await self.router.execute(call)
        return to_call_tool_result(result)

    async def start(self) -> None:
        """Start background work owned by the application."""
        self.sessions.start_sweeper()
        logger.info(
            "MCP Server started",
            domains=self.registry.list_domains(),
            tool_count=sum(self.registry.get_tool_count().values())
        )

    async def shutdown(self) -> None:
        """Stop background work and release collaborators."""
        logger.info("Shutting down MCP Server")
        await self.sessions.stop_sweeper()
        await self.audit_logger.flush()
        await self.approval_gateway.close()
        self.database_gateway.close()

    async def run_stdio(self) -> None:
        """Start the application, serve on stdio, and shut down on exit."""
        await self.start()
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self._server.run(
                    read_stream,
                    write_stream,
                    self._server.create_initialization_options(),
                )
        finally:
            await self.shutdown()


def main() -> None:
    """Run the MCP Server on stdio."""
    settings = get_settings()
    setup_logging(settings.log_level, json_output=settings.environment == "production")

    app = MCPApplication(settings)
    asyncio.run(app.run_stdio())


if __name__ == "__main__":
    main()
