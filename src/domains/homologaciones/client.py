"""Approval Gateway - client for the remote homologaciones API."""

from typing import Any, Optional

import httpx

from shared.config import HomologacionesSettings
from shared.logging import get_logger

logger = get_logger(__name__)


class ApprovalGatewayError(Exception):
    """The approval-record API could not be reached or answered with an error."""
    pass


class ApprovalGateway:
    """
    Client for the homologaciones API.

    One GET per call: no retries, no pagination.
    """

    def __init__(
        self,
        base_url: str,
        path: str = "/api/v1/homologaciones",
        status: str = "Aprobado",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        """
        Initialize the gateway.

        Args:
            base_url: API base URL
            path: Path of the homologaciones listing
            status: Value sent as the ``estatus`` filter
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.path = path
        self.status = status
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        settings: HomologacionesSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "ApprovalGateway":
        return cls(
            base_url=settings.base_url,
            path=settings.path,
            status=settings.status,
            timeout=settings.timeout_seconds,
            transport=transport
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def fetch_approved(self) -> Any:
        """
        Fetch approved homologaciones.

        Returns:
            Parsed JSON body

        Raises:
            ApprovalGatewayError: On transport failure, non-2xx status or
                a body that is not JSON
        """
        client = await self._get_client()

        try:
            response = await client.get(self.path, params={"estatus": self.status})
        except httpx.HTTPError as e:
            logger.error("Approval API unreachable", error=str(e))
            raise ApprovalGatewayError(f"No se pudo contactar el servicio: {e}")

        if not response.is_success:
            logger.error(
                "Approval API returned an error",
                status_code=response.status_code
            )
            raise ApprovalGatewayError(
                f"Error HTTP: {response.status_code} - {response.reason_phrase}"
            )

        try:
            return response.json()
        except ValueError:
            raise ApprovalGatewayError("Respuesta inválida: el cuerpo no es JSON")
