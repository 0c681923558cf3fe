"""Audit trail for MCP Server.

Every routed call, including the ones rejected by validation or by the
session gate, becomes one JSON line in the audit file.
"""

import asyncio
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import aiofiles

from shared.logging import get_logger, mask_session_id
from shared.models import (
    AuditEntry,
    ToolCall,
    ToolDefinition,
    ToolResult,
    ToolResultStatus,
)

logger = get_logger(__name__)

REDACTED = "[REDACTED]"


class AuditLogger:
    """
    Buffered JSONL audit writer.

    Secrets and session ids never reach the file: matching keys are
    replaced at any nesting depth, and the session a call ran under is
    kept only in masked form.
    """

    # Compared case-insensitively against parameter names
    SENSITIVE_PARAMS = frozenset({
        "secret", "sessionid", "password", "token", "api_key", "apikey", "credential"
    })

    def __init__(
        self,
        log_path: str = "logs/audit.log",
        enabled: bool = True,
        buffer_size: int = 100
    ) -> None:
        self.log_path = Path(log_path)
        self.enabled = enabled
        self.buffer_size = buffer_size
        self._pending: list[AuditEntry] = []
        self._lock = asyncio.Lock()

        if self.enabled:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {
                key: REDACTED if key.lower() in self.SENSITIVE_PARAMS else self._scrub(item)
                for key, item in value.items()
            }
        if isinstance(value, list):
            return [self._scrub(item) for item in value]
        return value

    def create_entry(
        self,
        tool: ToolDefinition,
        call: ToolCall,
        result: ToolResult
    ) -> AuditEntry:
        """Build the audit record of one call."""
        session = call.context.session_id
        return AuditEntry(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            tool_name=tool.name,
            domain=tool.domain,
            execution_type=tool.execution_type,
            parameters=self._scrub(call.parameters),
            session=mask_session_id(session) if session else None,
            status=result.status,
            error=result.error,
            error_code=result.error_code,
            execution_time_ms=result.execution_time_ms,
            request_id=call.context.request_id,
        )

    async def log(
        self,
        tool: ToolDefinition,
        call: ToolCall,
        result: ToolResult
    ) -> None:
        """Record a call; the file is written once ``buffer_size`` entries are pending."""
        if not self.enabled:
            return

        entry = self.create_entry(tool, call, result)
        logger.info(
            "Tool call audited",
            audit_id=entry.id,
            tool=entry.tool_name,
            status=entry.status.value,
            error_code=entry.error_code,
            execution_time_ms=round(entry.execution_time_ms, 2)
        )

        async with self._lock:
            self._pending.append(entry)
            if len(self._pending) >= self.buffer_size:
                await self._write_pending()

    async def _write_pending(self) -> None:
        if not self._pending:
            return

        batch, self._pending = self._pending, []
        lines = "".join(entry.model_dump_json() + "\n" for entry in batch)

        try:
            async with aiofiles.open(self.log_path, "a", encoding="utf-8") as f:
                await f.write(lines)
        except OSError as e:
            logger.error("Audit write failed", path=str(self.log_path), error=str(e))
            self._pending = batch + self._pending

    async def flush(self) -> None:
        """Write every pending entry."""
        async with self._lock:
            await self._write_pending()

    async def query(
        self,
        tool_name: Optional[str] = None,
        status: Optional[ToolResultStatus] = None,
        limit: int = 100
    ) -> list[AuditEntry]:
        """
        Read written entries back, oldest first.

        Args:
            tool_name: Only entries for this tool
            status: Only entries with this status
            limit: Maximum entries to return

        Returns:
            Matching audit entries
        """
        if not self.log_path.exists():
            return []

        matches: list[AuditEntry] = []
        async with aiofiles.open(self.log_path, "r", encoding="utf-8") as f:
            async for line in f:
                try:
                    entry = AuditEntry(**json.loads(line))
                except ValueError:
                    continue

                if tool_name and entry.tool_name != tool_name:
                    continue
                if status and entry.status != status:
                    continue

                matches.append(entry)
                if len(matches) >= limit:
                    break

        return matches
