"""Shared models, configuration and logging for the Homologaciones MCP server."""

from shared.models import (
    ToolDefinition,
    ToolCall,
    ToolResult,
    ToolResultStatus,
    ExecutionContext,
    Session,
    AuditEntry,
)
from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "ToolDefinition",
    "ToolCall",
    "ToolResult",
    "ToolResultStatus",
    "ExecutionContext",
    "Session",
    "AuditEntry",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
