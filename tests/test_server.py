"""End-to-end tests through the MCP application."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from mcp import types

from conftest import FakeConnection, FakeDatabaseGateway
from shared.config import AuditSettings, AuthSettings, SessionSettings, Settings

ALL_TOOLS = {
    "auth_login",
    "auth_logout",
    "auth_help",
    "get_database_context",
    "get_table_relationships",
    "execute_query",
    "get_table_schema",
    "list_tables",
    "suggest_queries",
    "insert_data",
    "test_connection",
    "buscar_homologaciones_aprobadas",
}


def _payload(result: types.CallToolResult):
    assert len(result.content) == 1
    return json.loads(result.content[0].text)


@pytest.fixture
def approval_calls():
    return []


@pytest.fixture
def app(clock, approval_calls):
    from domains.homologaciones.client import ApprovalGateway
    from mcp_server.main import MCPApplication

    def handler(request: httpx.Request) -> httpx.Response:
        approval_calls.append(request)
        return httpx.Response(200, json=[{"id": 1, "estatus": "Aprobado"}])

    settings = Settings(
        _env_file=None,
        auth=AuthSettings(_env_file=None, secret="correct"),
        session=SessionSettings(_env_file=None, ttl_minutes=30),
        audit=AuditSettings(_env_file=None, enabled=False)
    )
    return MCPApplication(
        settings,
        database_gateway=FakeDatabaseGateway(FakeConnection(tables={"usuarios": []})),
        approval_gateway=ApprovalGateway(
            base_url="https://homologaciones.test",
            transport=httpx.MockTransport(handler)
        ),
        clock=clock
    )


class TestMCPApplication:
    """Tests for the assembled server."""

    def test_lists_every_tool(self, app):
        tools = {t.name: t for t in app.registry.get_tools_for_mcp()}

        assert set(tools) == ALL_TOOLS
        assert tools["buscar_homologaciones_aprobadas"].inputSchema["required"] == ["sessionId"]
        assert app.registry.list_domains() == ["auth", "database", "homologaciones"]

    @pytest.mark.asyncio
    async def test_session_lifecycle(self, app, approval_calls):
        login = await app.call_tool("auth_login", {"secret": "correct"})
        assert not login.isError
        session_id = _payload(login)["sessionId"]

        records = await app.call_tool("buscar_homologaciones_aprobadas", {"sessionId": session_id})
        assert not records.isError
        body = _payload(records)
        assert body["authenticated"] is True
        assert body["sessionId"] == session_id
        assert body["data"] == [{"id": 1, "estatus": "Aprobado"}]

        logout = await app.call_tool("auth_logout", {"sessionId": session_id})
        assert _payload(logout)["success"] is True

        denied = await app.call_tool("buscar_homologaciones_aprobadas", {"sessionId": session_id})
        assert denied.isError
        assert _payload(denied)["requiredAction"] == "auth_login"
        assert len(approval_calls) == 1

    @pytest.mark.asyncio
    async def test_wrong_secret(self, app):
        result = await app.call_tool("auth_login", {"secret": "incorrect"})

        assert result.isError
        assert _payload(result) == {"success": False, "message": "Palabra secreta incorrecta"}
        assert len(app.sessions) == 0

    @pytest.mark.asyncio
    async def test_session_expires_after_inactivity(self, app, clock, approval_calls):
        session_id = _payload(await app.call_tool("auth_login", {"secret": "correct"}))["sessionId"]

        clock.advance(20)
        assert not (await app.call_tool(
            "buscar_homologaciones_aprobadas", {"sessionId": session_id}
        )).isError

        clock.advance(31)
        expired = await app.call_tool("buscar_homologaciones_aprobadas", {"sessionId": session_id})

        assert expired.isError
        assert session_id not in app.sessions
        assert len(approval_calls) == 1

    @pytest.mark.asyncio
    async def test_destructive_query_rejected(self, app):
        result = await app.call_tool("execute_query", {"query": "DROP TABLE x"})

        assert result.isError
        assert "Solo se permiten consultas SELECT" in result.content[0].text
        assert app.database_gateway.opened == 0

    @pytest.mark.asyncio
    async def test_insert_through_server(self, app):
        result = await app.call_tool(
            "insert_data", {"table": "usuarios", "data": {"nombre": "Ana"}}
        )

        assert not result.isError
        assert _payload(result)["inserted"] == {"id": 1, "nombre": "Ana"}

    @pytest.mark.asyncio
    async def test_unknown_tool(self, app):
        result = await app.call_tool("drop_everything", {})

        assert result.isError
        assert "drop_everything" in result.content[0].text

    @pytest.mark.asyncio
    async def test_schema_violation(self, app):
        result = await app.call_tool("execute_query", {"query": "SELECT 1", "limit": 0})

        assert result.isError
        assert result.content[0].text.startswith("Parámetros inválidos")
        assert app.database_gateway.opened == 0

    @pytest.mark.asyncio
    async def test_missing_arguments(self, app):
        result = await app.call_tool("auth_login", None)

        assert result.isError
        assert "secret" in result.content[0].text

    @pytest.mark.asyncio
    async def test_mcp_handlers_registered(self, app):
        handler = app._server.request_handlers[types.ListToolsRequest]

        response = await handler(types.ListToolsRequest(method="tools/list"))

        assert {t.name for t in response.root.tools} == ALL_TOOLS

    @pytest.mark.asyncio
    async def test_start_and_shutdown(self, app):
        app.approval_gateway.close = AsyncMock()
        app.audit_logger.flush = AsyncMock()

        await app.start()
        assert app.sessions._sweeper is not None

        await app.shutdown()

        assert app.sessions._sweeper is None
        app.approval_gateway.close.assert_awaited_once()
        app.audit_logger.flush.assert_awaited_once()
        assert app.database_gateway.closed


class TestToolResultSerialization:
    """Tests for the CallToolResult mapping."""

    def test_data_is_serialized_as_json(self):
        from mcp_server.main import to_call_tool_result
        from shared.models import ToolResult, ToolResultStatus

        result = to_call_tool_result(ToolResult(
            tool_name="auth_help",
            status=ToolResultStatus.SUCCESS,
            data={"título": "Ayuda"}
        ))

        assert not result.isError
        assert result.content[0].type == "text"
        assert "título" in result.content[0].text
        assert json.loads(result.content[0].text) == {"título": "Ayuda"}

    def test_error_without_payload_uses_message(self):
        from mcp_server.main import to_call_tool_result
        from shared.models import ToolResult, ToolResultStatus

        result = to_call_tool_result(ToolResult(
            tool_name="x",
            status=ToolResultStatus.NOT_FOUND,
            error="Herramienta 'x' no encontrada"
        ))

        assert result.isError
        assert result.content[0].text == "Herramienta 'x' no encontrada"


class TestMain:
    """Tests for the console entry point."""

    def test_main_runs_stdio_app(self, monkeypatch):
        from mcp_server import main as main_module

        app = MagicMock()
        app.run_stdio = MagicMock(return_value="coroutine")
        monkeypatch.setattr(main_module, "get_settings", lambda: Settings(_env_file=None))
        monkeypatch.setattr(main_module, "setup_logging", MagicMock())
        monkeypatch.setattr(main_module, "MCPApplication", MagicMock(return_value=app))
        run = MagicMock()
        monkeypatch.setattr(main_module.asyncio, "run", run)

        main_module.main()

        run.assert_called_once_with("coroutine")


class TestInstalledSdk:
    """The server is written against the 1.x MCP SDK."""

    def test_mcp_major_version(self):
        from importlib.metadata import version

        assert version("mcp").split(".")[0] == "1"

    def test_tool_schema_attribute(self):
        tool = types.Tool(name="ping", description="Ping", inputSchema={"type": "object"})

        assert tool.inputSchema == {"type": "object"}
