"""Tool Router for MCP Server.

Takes a call from the host through lookup, schema validation and the
session gate before it reaches a domain adapter, and audits the outcome.
"""

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Optional, Union

from shared.logging import get_logger
from shared.models import (
    ExecutionContext,
    ToolCall,
    ToolDefinition,
    ToolResult,
    ToolResultStatus,
)
from mcp_server.auth import SESSION_PARAM, authorize_request
from mcp_server.audit import AuditLogger
from mcp_server.registry import ToolRegistry
from mcp_server.sessions import SessionStore

logger = get_logger(__name__)


# Adapters may be plain functions (run in the default executor) or coroutines
AdapterExecutor = Callable[
    [str, dict[str, Any], ExecutionContext],
    Union[ToolResult, Awaitable[ToolResult], Any]
]


class ToolRouter:
    """
    Dispatches tool calls to domain adapters.

    ``execute`` never raises. Unknown tools, invalid arguments, missing
    sessions and adapter failures all come back as error results.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        sessions: SessionStore,
        audit_logger: Optional[AuditLogger] = None
    ) -> None:
        self.registry = registry
        self.sessions = sessions
        self.audit_logger = audit_logger or AuditLogger(enabled=False)
        self._adapters: dict[str, AdapterExecutor] = {}

    def register_adapter(self, domain: str, executor: AdapterExecutor) -> None:
        """Route every tool of ``domain`` to ``executor``."""
        self._adapters[domain] = executor
        logger.debug("Adapter registered", domain=domain)

    async def _reject(
        self,
        tool: ToolDefinition,
        call: ToolCall,
        status: ToolResultStatus,
        code: str,
        message: str,
        data: Any = None
    ) -> ToolResult:
        result = ToolResult(
            tool_name=tool.name,
            status=status,
            data=data,
            error=message,
            error_code=code
        )
        logger.info("Tool call rejected", tool=tool.name, code=code)
        await self.audit_logger.log(tool, call, result)
        return result

    async def execute(self, call: ToolCall) -> ToolResult:
        """
        Execute a tool call.

        Args:
            call: Tool call request

        Returns:
            Tool execution result
        """
        started = time.perf_counter()
        tool = self.registry.get(call.tool_name)

        if tool is None:
            logger.warning("Unknown tool requested", tool=call.tool_name)
            return ToolResult(
                tool_name=call.tool_name,
                status=ToolResultStatus.NOT_FOUND,
                error=f"Herramienta '{call.tool_name}' no encontrada",
                error_code="TOOL_NOT_FOUND"
            )

        is_valid, errors = self.registry.validate_input(tool.name, call.parameters)
        if not is_valid:
            return await self._reject(
                tool, call,
                ToolResultStatus.VALIDATION_ERROR,
                "VALIDATION_ERROR",
                f"Parámetros inválidos: {'; '.join(errors)}"
            )

        authorized, denial = authorize_request(tool, call.parameters, self.sessions)
        if not authorized:
            return await self._reject(
                tool, call,
                ToolResultStatus.UNAUTHORIZED,
                "UNAUTHORIZED",
                denial["message"],
                data=denial
            )

        if tool.requires_session:
            call.context.session_id = call.parameters.get(SESSION_PARAM)

        adapter = self._adapters.get(tool.domain)
        if adapter is None:
            return await self._reject(
                tool, call,
                ToolResultStatus.ERROR,
                "NO_ADAPTER",
                f"No adapter registered for domain '{tool.domain}'"
            )

        try:
            result = await self._run_adapter(adapter, tool, call)
        except Exception as e:
            logger.error("Tool execution failed", tool=tool.name, error=str(e), exc_info=True)
            result = ToolResult(
                tool_name=tool.name,
                status=ToolResultStatus.ERROR,
                error=str(e),
                error_code="EXECUTION_ERROR"
            )

        result.execution_time_ms = (time.perf_counter() - started) * 1000
        await self.audit_logger.log(tool, call, result)
        return result

    async def _run_adapter(
        self,
        adapter: AdapterExecutor,
        tool: ToolDefinition,
        call: ToolCall
    ) -> ToolResult:
        # Blocking adapters (database) run in the default thread pool
        if inspect.iscoroutinefunction(adapter):
            outcome = await adapter(tool.name, call.parameters, call.context)
        else:
            outcome = await asyncio.get_running_loop().run_in_executor(
                None, adapter, tool.name, call.parameters, call.context
            )

        if isinstance(outcome, ToolResult):
            return outcome

        return ToolResult(tool_name=tool.name, status=ToolResultStatus.SUCCESS, data=outcome)
