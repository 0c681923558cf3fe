"""Tool Registry for MCP Server.

Holds every tool the domains declare at startup, keyed by its flat name,
and renders them for the host's ``tools/list`` request.
"""

from typing import Any, Iterable, Optional

from mcp import types

from shared.logging import get_logger
from shared.models import ToolDefinition
from shared.schema import object_schema, validate_schema

logger = get_logger(__name__)


class ToolRegistry:
    """Name-to-definition lookup shared by the router and the MCP handlers."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition) -> None:
        """
        Add a tool.

        Raises:
            ValueError: If another tool already uses the name
        """
        existing = self._tools.get(tool.name)
        if existing is not None:
            raise ValueError(
                f"Tool '{tool.name}' is already registered by domain '{existing.domain}'"
            )

        self._tools[tool.name] = tool
        logger.debug(
            "Tool registered",
            tool=tool.name,
            domain=tool.domain,
            requires_session=tool.requires_session
        )

    def register_many(self, tools: Iterable[ToolDefinition]) -> None:
        for tool in tools:
            self.register(tool)

    def get(self, tool_name: str) -> Optional[ToolDefinition]:
        return self._tools.get(tool_name)

    def list_tools(
        self,
        domain: Optional[str] = None,
        include_deprecated: bool = False
    ) -> list[ToolDefinition]:
        """Tools in registration order, optionally for one domain only."""
        return [
            tool for tool in self._tools.values()
            if (domain is None or tool.domain == domain)
            and (include_deprecated or not tool.deprecated)
        ]

    def list_domains(self) -> list[str]:
        return sorted({tool.domain for tool in self._tools.values()})

    def validate_input(
        self,
        tool_name: str,
        parameters: dict[str, Any]
    ) -> tuple[bool, list[str]]:
        """
        Check call arguments against the tool's input schema.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        tool = self.get(tool_name)
        if tool is None:
            return False, [f"Tool '{tool_name}' not found"]
        return validate_schema(parameters, tool.input_schema)

    def get_tools_for_mcp(self) -> list[types.Tool]:
        """Describe the tools in the MCP ``tools/list`` format."""
        return [
            types.Tool(
                name=tool.name,
                title=tool.title,
                description=tool.description,
                inputSchema=tool.input_schema or object_schema()
            )
            for tool in self.list_tools()
        ]

    def get_tool_count(self) -> dict[str, int]:
        """Number of tools per domain."""
        counts: dict[str, int] = {}
        for tool in self._tools.values():
            counts[tool.domain] = counts.get(tool.domain, 0) + 1
        return counts
