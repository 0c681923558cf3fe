"""Auth Domain - session login, logout and help tools.

Thin adapters over the Auth Gateway and the Session Store.
"""

from typing import Any

from shared.logging import get_logger, mask_session_id
from shared.models import (
    DomainConfig,
    ExecutionContext,
    ExecutionType,
    ToolDefinition,
    ToolResult,
    ToolResultStatus,
)
from shared.schema import object_schema
from domains.base import BaseAdapter
from mcp_server.auth import AuthFailure, AuthGateway

logger = get_logger(__name__)


class AuthAdapter(BaseAdapter):
    """
    Auth Domain Adapter.

    Provides tools for:
    - Exchanging the shared secret for a session
    - Closing a session
    - Explaining the authentication flow
    """

    def __init__(self, config: DomainConfig, gateway: AuthGateway) -> None:
        super().__init__(config)
        self.gateway = gateway
        self.sessions = gateway.sessions
        self._define_tools()

    def _define_tools(self) -> None:
        """Define all auth tools."""

        self._tools["auth_login"] = ToolDefinition(
            name="auth_login",
            domain=self.domain,
            title="Iniciar sesión",
            description=(
                "Autentica con la palabra secreta y devuelve un sessionId "
                "necesario para las herramientas protegidas."
            ),
            input_schema=object_schema(
                {
                    "secret": {
                        "type": "string",
                        "description": "Palabra secreta de acceso"
                    }
                },
                required=["secret"]
            ),
            execution_type=ExecutionType.WRITE
        )

        self._tools["auth_logout"] = ToolDefinition(
            name="auth_logout",
            domain=self.domain,
            title="Cerrar sesión",
            description="Cierra la sesión indicada.",
            input_schema=object_schema(
                {
                    "sessionId": {
                        "type": "string",
                        "description": "ID de sesión obtenido con auth_login"
                    }
                },
                required=["sessionId"]
            ),
            execution_type=ExecutionType.WRITE
        )

        self._tools["auth_help"] = ToolDefinition(
            name="auth_help",
            domain=self.domain,
            title="Ayuda de autenticación",
            description="Explica cómo autenticarse y qué herramientas requieren sesión.",
            input_schema=object_schema()
        )

    def execute(
        self,
        action: str,
        parameters: dict[str, Any],
        context: ExecutionContext
    ) -> ToolResult:
        """Execute an auth action."""
        logger.debug("Auth action", action=action, request_id=context.request_id)

        handlers = {
            "auth_login": self._login,
            "auth_logout": self._logout,
            "auth_help": self._help,
        }

        handler = handlers.get(action)
        if not handler:
            return self._not_found(action)

        return handler(parameters)

    def _login(self, params: dict[str, Any]) -> ToolResult:
        result = self.gateway.authenticate(params.get("secret"))

        if result.failure == AuthFailure.NOT_CONFIGURED:
            return self._error(
                "auth_login",
                result.message,
                code="CONFIGURATION_ERROR",
                data={"success": False, "message": result.message}
            )

        if not result.success:
            return ToolResult(
                tool_name="auth_login",
                status=ToolResultStatus.UNAUTHORIZED,
                data={"success": False, "message": result.message},
                error=result.message,
                error_code="INVALID_SECRET"
            )

        return self._success("auth_login", {
            "success": True,
            "sessionId": result.session_id,
            "message": result.message,
            "expiresIn": int(self.sessions.ttl_seconds),
        })

    def _logout(self, params: dict[str, Any]) -> ToolResult:
        session_id = params.get("sessionId")
        if self.sessions.revoke(session_id):
            return self._success("auth_logout", {
                "success": True,
                "message": "Sesión cerrada correctamente",
            })

        logger.debug("Logout for unknown session", session=mask_session_id(session_id))
        return self._success("auth_logout", {
            "success": False,
            "message": "Sesión no encontrada o ya expirada",
        })

    def _help(self, params: dict[str, Any]) -> ToolResult:
        ttl_minutes = int(self.sessions.ttl_seconds // 60)
        return self._success("auth_help", {
            "title": "Autenticación del servidor de homologaciones",
            "steps": [
                "1. Llama a 'auth_login' con la palabra secreta: {\"secret\": \"...\"}",
                "2. Guarda el 'sessionId' devuelto",
                "3. Envía 'sessionId' en cada herramienta protegida",
                "4. Llama a 'auth_logout' con tu 'sessionId' al terminar",
            ],
            "protectedTools": ["buscar_homologaciones_aprobadas"],
            "sessionDuration": f"{ttl_minutes} minutos de inactividad",
            "notes": [
                "Cada uso válido de la sesión renueva su duración",
                "Si la sesión expira debes volver a ejecutar 'auth_login'",
            ],
        })


def register_auth_domain(router, gateway: AuthGateway) -> AuthAdapter:
    """Register the auth domain with the MCP server."""
    config = DomainConfig(
        name="auth",
        description="Session authentication behind a shared secret",
        version="1.0.0"
    )

    adapter = AuthAdapter(config, gateway)

    router.registry.register_many(adapter.tools)
    router.register_adapter("auth", adapter.execute)

    logger.info("Auth domain registered", tool_count=len(adapter.tools))
    return adapter
