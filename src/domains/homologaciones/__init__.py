"""Homologaciones Domain - approved approval records.

A single session-protected tool that proxies the remote homologaciones API.
"""

from datetime import datetime, timezone
from typing import Any

from shared.logging import get_logger
from shared.models import DomainConfig, ExecutionContext, ToolDefinition, ToolResult
from shared.schema import object_schema
from domains.base import BaseAdapter
from domains.homologaciones.client import ApprovalGateway, ApprovalGatewayError

logger = get_logger(__name__)


class HomologacionesAdapter(BaseAdapter):
    """
    Homologaciones Domain Adapter.

    The router has already validated the session by the time ``execute``
    runs; the validated id arrives in the execution context.
    """

    def __init__(self, config: DomainConfig, gateway: ApprovalGateway) -> None:
        super().__init__(config)
        self.gateway = gateway

        self._tools["buscar_homologaciones_aprobadas"] = ToolDefinition(
            name="buscar_homologaciones_aprobadas",
            domain=self.domain,
            title="Buscar homologaciones aprobadas",
            description=(
                "Busca homologaciones aprobadas junto con la respectiva información. "
                "Requiere un sessionId válido obtenido con auth_login."
            ),
            input_schema=object_schema(
                {
                    "sessionId": {
                        "type": "string",
                        "description": "ID de sesión obtenido con auth_login"
                    }
                },
                required=["sessionId"]
            ),
            requires_session=True
        )

    async def execute(
        self,
        action: str,
        parameters: dict[str, Any],
        context: ExecutionContext
    ) -> ToolResult:
        """Execute a homologaciones action."""
        if action != "buscar_homologaciones_aprobadas":
            return self._not_found(action)

        try:
            records = await self.gateway.fetch_approved()
        except ApprovalGatewayError as e:
            return self._error(
                action,
                f"Error consultando homologaciones: {e}",
                code="UPSTREAM_ERROR"
            )

        return self._success(action, {
            "authenticated": True,
            "sessionId": context.session_id,
            "data": records,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })


def register_homologaciones_domain(router, gateway: ApprovalGateway) -> HomologacionesAdapter:
    """Register the homologaciones domain with the MCP server."""
    config = DomainConfig(
        name="homologaciones",
        description="Approved homologaciones from the remote API",
        version="1.0.0"
    )

    adapter = HomologacionesAdapter(config, gateway)

    router.registry.register_many(adapter.tools)
    router.register_adapter("homologaciones", adapter.execute)

    logger.info("Homologaciones domain registered", tool_count=len(adapter.tools))
    return adapter
