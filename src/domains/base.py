"""Base class for domain adapters.

An adapter declares the tools of one domain and executes them against an
injected collaborator (session store, database or HTTP API). Collaborator
failures come back as error results, never as exceptions.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Union

from shared.models import (
    DomainConfig,
    ExecutionContext,
    ToolDefinition,
    ToolResult,
    ToolResultStatus,
)


class BaseAdapter(ABC):
    """Tool declarations plus an ``execute`` entry point for one domain."""

    def __init__(self, config: DomainConfig) -> None:
        self.config = config
        self.domain = config.name
        self._tools: dict[str, ToolDefinition] = {}

    @property
    def tools(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    @abstractmethod
    def execute(
        self,
        action: str,
        parameters: dict[str, Any],
        context: ExecutionContext
    ) -> Union[ToolResult, Awaitable[ToolResult]]:
        """
        Run one of this domain's tools.

        Args:
            action: Tool name
            parameters: Validated tool arguments
            context: Execution context

        Returns:
            Tool execution result
        """

    def _success(self, action: str, data: Any = None) -> ToolResult:
        return ToolResult(tool_name=action, status=ToolResultStatus.SUCCESS, data=data)

    def _error(
        self,
        action: str,
        message: str,
        code: str = "ERROR",
        data: Any = None
    ) -> ToolResult:
        return ToolResult(
            tool_name=action,
            status=ToolResultStatus.ERROR,
            data=data,
            error=message,
            error_code=code
        )

    def _not_found(self, action: str) -> ToolResult:
        return ToolResult(
            tool_name=action,
            status=ToolResultStatus.NOT_FOUND,
            error=f"Herramienta '{action}' no pertenece al dominio '{self.domain}'",
            error_code="ACTION_NOT_FOUND"
        )
