"""Core data models for the Homologaciones MCP server.

This module defines the shared data structures used across the server,
ensuring type safety and validation throughout the system.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ExecutionType(str, Enum):
    """Type of tool execution - read operations vs write operations."""
    READ = "read"
    WRITE = "write"


class ToolDefinition(BaseModel):
    """
    Complete definition of an MCP tool.

    Tool names are flat (e.g. ``auth_login``); the domain only selects the
    adapter that executes the tool.
    """
    name: str = Field(..., description="Tool name as exposed to the MCP host")
    domain: str = Field(..., description="Domain whose adapter executes the tool")
    title: Optional[str] = Field(default=None, description="Human readable title")
    description: str = Field(..., description="Clear description for LLM usage")

    input_schema: dict[str, Any] = Field(
        default_factory=dict,
        description="JSON Schema for input validation"
    )

    execution_type: ExecutionType = Field(default=ExecutionType.READ)
    requires_session: bool = Field(
        default=False,
        description="Whether a valid sessionId argument is required"
    )

    deprecated: bool = False


class ExecutionContext(BaseModel):
    """Context for a single tool execution."""
    request_id: str = Field(..., description="Unique request identifier")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: str = Field(default="mcp_stdio", description="Request source")
    session_id: Optional[str] = Field(
        default=None,
        description="Session validated for this call, if the tool is protected"
    )


class ToolCall(BaseModel):
    """A request to execute a specific tool."""
    tool_name: str = Field(..., description="Tool name")
    parameters: dict[str, Any] = Field(default_factory=dict)
    context: ExecutionContext


class ToolResultStatus(str, Enum):
    """Status of tool execution."""
    SUCCESS = "success"
    ERROR = "error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"


class ToolResult(BaseModel):
    """
    Result of a tool execution.

    ``data`` is the JSON payload sent back to the host. ``error`` is the
    human-readable message used when there is no payload to send.
    """
    tool_name: str
    status: ToolResultStatus
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    execution_time_ms: float = 0

    @property
    def is_error(self) -> bool:
        return self.status != ToolResultStatus.SUCCESS


class Session(BaseModel):
    """An authenticated session tracked by last activity (monotonic seconds)."""
    id: str
    created_at: float
    last_activity: float


class AuditEntry(BaseModel):
    """
    Audit log entry for tool executions.

    Captures tool, parameters, timestamp, and result.
    """
    id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Tool information
    tool_name: str
    domain: str
    execution_type: ExecutionType

    # Request details
    parameters: dict[str, Any] = Field(default_factory=dict)
    session: Optional[str] = Field(default=None, description="Masked session id")

    # Result information
    status: ToolResultStatus
    error: Optional[str] = None
    error_code: Optional[str] = None
    execution_time_ms: float = 0

    # Correlation
    request_id: str


class DomainConfig(BaseModel):
    """Configuration for a tool domain."""
    name: str
    description: str
    version: str = "1.0.0"
