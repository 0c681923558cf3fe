"""Authentication and Authorization for MCP Server.

Handles:
- Shared-secret authentication (minting sessions)
- Session checks for protected tools
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel

from shared.logging import get_logger, mask_session_id
from shared.models import ToolDefinition
from mcp_server.sessions import SessionStore

logger = get_logger(__name__)

SESSION_PARAM = "sessionId"
LOGIN_TOOL = "auth_login"


class AuthFailure(str, Enum):
    """Why an authentication attempt failed."""
    NOT_CONFIGURED = "not_configured"
    INVALID_SECRET = "invalid_secret"


class AuthResult(BaseModel):
    """Outcome of an authentication attempt."""
    success: bool
    message: str
    session_id: Optional[str] = None
    failure: Optional[AuthFailure] = None


class AuthGateway:
    """
    Gates session creation behind a shared secret.

    There is no rate limiting or lockout on repeated failures.
    """

    def __init__(self, sessions: SessionStore, expected_secret: Optional[str]) -> None:
        self.sessions = sessions
        self._expected_secret = expected_secret

    @property
    def is_configured(self) -> bool:
        return bool(self._expected_secret)

    def authenticate(self, secret: Optional[str]) -> AuthResult:
        """
        Check a submitted secret and mint a session on success.

        Args:
            secret: Secret submitted by the caller

        Returns:
            Authentication result; never raises
        """
        if not self.is_configured:
            logger.error("Authentication attempted without AUTH_SECRET configured")
            return AuthResult(
                success=False,
                message="Error: AUTH_SECRET no configurado en variables de entorno",
                failure=AuthFailure.NOT_CONFIGURED
            )

        if secret != self._expected_secret:
            logger.warning("Authentication failed", reason="invalid_secret")
            return AuthResult(
                success=False,
                message="Palabra secreta incorrecta",
                failure=AuthFailure.INVALID_SECRET
            )

        session_id = self.sessions.create()
        logger.info("Authentication succeeded", session=mask_session_id(session_id))
        return AuthResult(
            success=True,
            session_id=session_id,
            message="Autenticación exitosa. Guarda tu sessionId para futuras consultas."
        )


def unauthorized_payload() -> dict[str, Any]:
    """Payload returned when a protected tool is called without a live session."""
    return {
        "error": "No autorizado",
        "message": (
            "Sesión inválida o expirada. Debes autenticarte primero con la "
            f"herramienta '{LOGIN_TOOL}'."
        ),
        "requiredAction": LOGIN_TOOL,
    }


def authorize_request(
    tool: ToolDefinition,
    parameters: dict[str, Any],
    sessions: SessionStore
) -> tuple[bool, Optional[dict[str, Any]]]:
    """
    Check if a call may execute a tool.

    Protected tools need a ``sessionId`` argument naming a live session.
    Validating renews the session, or evicts it when it has expired.

    Args:
        tool: Tool definition
        parameters: Call arguments
        sessions: Session store

    Returns:
        Tuple of (is_authorized, error_payload)
    """
    if not tool.requires_session:
        return True, None

    session_id = parameters.get(SESSION_PARAM)
    if not sessions.validate(session_id):
        logger.warning(
            "Access denied (invalid session)",
            tool=tool.name,
            session=mask_session_id(session_id)
        )
        return False, unauthorized_payload()

    logger.debug("Access granted", tool=tool.name, session=mask_session_id(session_id))
    return True, None
