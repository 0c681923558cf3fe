"""Database Domain - SQL introspection and execution tools.

Tools for exploring the homologaciones PostgreSQL database: structure,
relationships, read-only queries, row inserts and connectivity checks.
"""

import re
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError

from shared.logging import get_logger
from shared.models import (
    DomainConfig,
    ExecutionContext,
    ExecutionType,
    ToolDefinition,
    ToolResult,
)
from shared.schema import object_schema
from domains.base import BaseAdapter
from domains.database.connection import (
    DatabaseConfigurationError,
    DatabaseGateway,
    QueryConnection,
)

logger = get_logger(__name__)

DEFAULT_QUERY_LIMIT = 1000
SAMPLE_ROWS = 3

TABLES_SQL = """
    SELECT
        t.table_name,
        obj_description(c.oid) AS table_comment
    FROM information_schema.tables t
    LEFT JOIN pg_class c ON c.relname = t.table_name
    WHERE t.table_schema = :schema
    ORDER BY t.table_name
"""

COLUMNS_SQL = """
    SELECT
        c.column_name,
        c.data_type,
        c.is_nullable,
        c.column_default,
        c.character_maximum_length,
        col_description(pgc.oid, c.ordinal_position) AS column_comment
    FROM information_schema.columns c
    LEFT JOIN pg_class pgc ON pgc.relname = c.table_name
    WHERE c.table_name = :table_name AND c.table_schema = :schema
    ORDER BY c.ordinal_position
"""

FOREIGN_KEYS_SQL = """
    SELECT
        kcu.column_name,
        ccu.table_name AS foreign_table_name,
        ccu.column_name AS foreign_column_name,
        tc.constraint_name
    FROM information_schema.table_constraints AS tc
    JOIN information_schema.key_column_usage AS kcu
        ON tc.constraint_name = kcu.constraint_name
    JOIN information_schema.constraint_column_usage AS ccu
        ON ccu.constraint_name = tc.constraint_name
    WHERE tc.constraint_type = 'FOREIGN KEY'
        AND tc.table_name = :table_name
        AND tc.table_schema = :schema
"""

PRIMARY_KEYS_SQL = """
    SELECT kcu.column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
        ON tc.constraint_name = kcu.constraint_name
    WHERE tc.constraint_type = 'PRIMARY KEY'
        AND tc.table_name = :table_name
        AND tc.table_schema = :schema
"""

RELATIONSHIPS_SQL = """
    SELECT
        tc.table_name AS source_table,
        kcu.column_name AS source_column,
        ccu.table_name AS target_table,
        ccu.column_name AS target_column,
        tc.constraint_name
    FROM information_schema.table_constraints AS tc
    JOIN information_schema.key_column_usage AS kcu
        ON tc.constraint_name = kcu.constraint_name
    JOIN information_schema.constraint_column_usage AS ccu
        ON ccu.constraint_name = tc.constraint_name
    WHERE tc.constraint_type = 'FOREIGN KEY'
        AND tc.table_schema = :schema
    ORDER BY tc.table_name
"""

SERVER_INFO_SQL = "SELECT NOW() AS current_time, version() AS postgres_version"

# Keyword -> suggested statements for suggest_queries
QUERY_SUGGESTIONS: dict[str, list[str]] = {
    "homologaciones aprobadas": [
        "SELECT * FROM homologaciones WHERE estado = 'Aprobado'",
        "SELECT COUNT(*) AS total_aprobadas FROM homologaciones WHERE estado = 'Aprobado'",
    ],
    "homologaciones pendientes": [
        "SELECT * FROM homologaciones WHERE estado = 'Pendiente'",
        "SELECT COUNT(*) AS total_pendientes FROM homologaciones WHERE estado = 'Pendiente'",
    ],
    "usuarios": [
        "SELECT * FROM usuarios",
        "SELECT tipo_usuario, COUNT(*) AS cantidad FROM usuarios GROUP BY tipo_usuario",
    ],
    "reportes": [
        "SELECT estado, COUNT(*) AS cantidad FROM homologaciones GROUP BY estado",
        "SELECT DATE_TRUNC('month', fecha_solicitud) AS mes, COUNT(*) "
        "FROM homologaciones GROUP BY mes ORDER BY mes",
    ],
    "estadísticas": [
        "SELECT COUNT(*) AS total_homologaciones FROM homologaciones",
        "SELECT AVG(EXTRACT(DAY FROM (fecha_aprobacion - fecha_solicitud))) "
        "AS dias_promedio_aprobacion FROM homologaciones WHERE fecha_aprobacion IS NOT NULL",
    ],
}

GENERIC_SUGGESTIONS = [
    "SELECT * FROM homologaciones LIMIT 10",
    "SELECT * FROM usuarios LIMIT 10",
    "SELECT table_name FROM information_schema.tables WHERE table_schema = 'public'",
]

# Action -> prefix of the error message shown to the user
ERROR_PREFIXES = {
    "get_database_context": "Error obteniendo contexto",
    "get_table_relationships": "Error obteniendo relaciones",
    "execute_query": "Error ejecutando consulta",
    "get_table_schema": "Error obteniendo esquema",
    "list_tables": "Error listando tablas",
    "suggest_queries": "Error generando sugerencias",
    "insert_data": "Error insertando datos",
    "test_connection": "Error de conexión",
}

_TRAILING_SEMICOLONS = re.compile(r"[\s;]+$")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def is_select_query(query: str) -> bool:
    """True if the statement starts with SELECT (case-insensitive)."""
    return query.strip().lower().startswith("select")


def apply_limit(query: str) -> str:
    """Wrap a SELECT so that at most ``:row_limit`` rows come back."""
    inner = _TRAILING_SEMICOLONS.sub("", query.strip())
    return f"SELECT * FROM ({inner}\n) AS limited_query LIMIT :row_limit"


class DatabaseAdapter(BaseAdapter):
    """
    Database Domain Adapter.

    Provides tools for:
    - Schema introspection (tables, columns, keys, relationships)
    - Read-only SQL queries
    - Row inserts
    - Connectivity checks
    """

    def __init__(self, config: DomainConfig, gateway: DatabaseGateway) -> None:
        super().__init__(config)
        self.gateway = gateway
        self._define_tools()

    def _define_tools(self) -> None:
        """Define all database tools."""

        self._tools["get_database_context"] = ToolDefinition(
            name="get_database_context",
            domain=self.domain,
            title="Obtener contexto completo de la base de datos",
            description=(
                "Analiza toda la estructura de la base de datos: tablas, columnas, "
                "claves, relaciones y datos de ejemplo."
            ),
            input_schema=object_schema()
        )

        self._tools["get_table_relationships"] = ToolDefinition(
            name="get_table_relationships",
            domain=self.domain,
            title="Obtener relaciones entre tablas",
            description="Muestra todas las relaciones y foreign keys entre tablas.",
            input_schema=object_schema()
        )

        self._tools["execute_query"] = ToolDefinition(
            name="execute_query",
            domain=self.domain,
            title="Ejecutar consulta SQL",
            description="Ejecuta una consulta SELECT en la base de datos.",
            input_schema=object_schema(
                {
                    "query": {
                        "type": "string",
                        "description": "Consulta SQL SELECT"
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Límite de resultados",
                        "minimum": 1,
                        "default": DEFAULT_QUERY_LIMIT
                    }
                },
                required=["query"]
            )
        )

        self._tools["get_table_schema"] = ToolDefinition(
            name="get_table_schema",
            domain=self.domain,
            title="Obtener esquema de tabla",
            description="Obtiene la estructura detallada de una tabla específica.",
            input_schema=object_schema(
                {
                    "tableName": {
                        "type": "string",
                        "description": "Nombre de la tabla"
                    }
                },
                required=["tableName"]
            )
        )

        self._tools["list_tables"] = ToolDefinition(
            name="list_tables",
            domain=self.domain,
            title="Listar tablas",
            description="Lista todas las tablas disponibles en la base de datos.",
            input_schema=object_schema()
        )

        self._tools["suggest_queries"] = ToolDefinition(
            name="suggest_queries",
            domain=self.domain,
            title="Sugerir consultas",
            description="Sugiere consultas SQL útiles basadas en la pregunta del usuario.",
            input_schema=object_schema(
                {
                    "userQuestion": {
                        "type": "string",
                        "description": "Pregunta o necesidad del usuario"
                    }
                },
                required=["userQuestion"]
            )
        )

        self._tools["insert_data"] = ToolDefinition(
            name="insert_data",
            domain=self.domain,
            title="Insertar datos",
            description="Inserta una nueva fila en una tabla.",
            input_schema=object_schema(
                {
                    "table": {
                        "type": "string",
                        "description": "Nombre de la tabla"
                    },
                    "data": {
                        "type": "object",
                        "description": "Datos a insertar como objeto clave-valor",
                        "minProperties": 1
                    }
                },
                required=["table", "data"]
            ),
            execution_type=ExecutionType.WRITE
        )

        self._tools["test_connection"] = ToolDefinition(
            name="test_connection",
            domain=self.domain,
            title="Verificar conexión",
            description="Verifica que la conexión a la base de datos funcione correctamente.",
            input_schema=object_schema()
        )

    def execute(
        self,
        action: str,
        parameters: dict[str, Any],
        context: ExecutionContext
    ) -> ToolResult:
        """Execute a database action."""
        logger.debug("Database action", action=action, request_id=context.request_id)

        handlers: dict[str, Callable[[dict[str, Any]], Any]] = {
            "get_database_context": self._get_database_context,
            "get_table_relationships": self._get_table_relationships,
            "execute_query": self._execute_query,
            "get_table_schema": self._get_table_schema,
            "list_tables": self._list_tables,
            "suggest_queries": self._suggest_queries,
            "insert_data": self._insert_data,
            "test_connection": self._test_connection,
        }

        handler = handlers.get(action)
        if not handler:
            return self._not_found(action)

        prefix = ERROR_PREFIXES[action]
        try:
            return self._success(action, handler(parameters))
        except DatabaseConfigurationError as e:
            return self._error(action, f"{prefix}: {e}", code="CONFIGURATION_ERROR")
        except ValueError as e:
            return self._error(action, f"{prefix}: {e}", code="VALIDATION_ERROR")
        except SQLAlchemyError as e:
            logger.error("Database action failed", action=action, error=str(e))
            return self._error(action, f"{prefix}: {e}", code="DATABASE_ERROR")

    def _get_database_context(self, params: dict[str, Any]) -> dict[str, Any]:
        def collect(conn: QueryConnection) -> list[dict[str, Any]]:
            schema = {"schema": self.gateway.schema}
            details = []
            for row in conn.query(TABLES_SQL, schema):
                name = row["table_name"]
                bind = {**schema, "table_name": name}
                details.append({
                    "name": name,
                    "comment": row["table_comment"],
                    "totalRows": conn.count(name),
                    "columns": conn.query(COLUMNS_SQL, bind),
                    "primaryKeys": [
                        pk["column_name"] for pk in conn.query(PRIMARY_KEYS_SQL, bind)
                    ],
                    "foreignKeys": conn.query(FOREIGN_KEYS_SQL, bind),
                    "sampleData": conn.sample(name, SAMPLE_ROWS),
                })
            return details

        tables = self.gateway.with_connection(collect)
        total_rows = sum(t["totalRows"] for t in tables)

        return {
            "database": self.gateway.settings.name,
            "totalTables": len(tables),
            "tables": tables,
            "summary": (
                f"Base de datos con {len(tables)} tablas y {total_rows} registros totales"
            ),
        }

    def _get_table_relationships(self, params: dict[str, Any]) -> dict[str, Any]:
        rows = self.gateway.with_connection(
            lambda conn: conn.query(RELATIONSHIPS_SQL, {"schema": self.gateway.schema})
        )
        return {
            "relationships": rows,
            "totalRelationships": len(rows),
            "summary": f"{len(rows)} relaciones encontradas entre tablas",
        }

    def _execute_query(self, params: dict[str, Any]) -> dict[str, Any]:
        query = params["query"]
        limit = params.get("limit", DEFAULT_QUERY_LIMIT)

        # Checked before any connection is opened
        if not is_select_query(query):
            raise ValueError("Solo se permiten consultas SELECT por seguridad")

        rows = self.gateway.with_connection(
            lambda conn: conn.query(apply_limit(query), {"row_limit": limit})
        )
        return {
            "success": True,
            "rows": rows,
            "rowCount": len(rows),
            "query": query,
            "limit": limit,
            "executedAt": _now_iso(),
        }

    def _get_table_schema(self, params: dict[str, Any]) -> dict[str, Any]:
        table_name = params["tableName"]

        def describe(conn: QueryConnection) -> list[dict[str, Any]]:
            if not conn.table_exists(table_name):
                raise ValueError(f"La tabla '{table_name}' no existe")
            return conn.query(
                COLUMNS_SQL,
                {"schema": self.gateway.schema, "table_name": table_name}
            )

        columns = self.gateway.with_connection(describe)
        return {
            "table": table_name,
            "columns": columns,
            "totalColumns": len(columns),
        }

    def _list_tables(self, params: dict[str, Any]) -> dict[str, Any]:
        rows = self.gateway.with_connection(
            lambda conn: conn.query(TABLES_SQL, {"schema": self.gateway.schema})
        )
        return {
            "tables": rows,
            "totalTables": len(rows),
        }

    def _suggest_queries(self, params: dict[str, Any]) -> dict[str, Any]:
        question = params["userQuestion"]
        lowered = question.lower()

        suggestions = [
            {"keyword": keyword, "queries": queries}
            for keyword, queries in QUERY_SUGGESTIONS.items()
            if keyword.lower() in lowered
        ]
        if not suggestions:
            suggestions.append({
                "keyword": "consultas generales",
                "queries": GENERIC_SUGGESTIONS,
            })

        return {
            "userQuestion": question,
            "suggestions": suggestions,
            "tip": "Usa la tool 'execute_query' para ejecutar cualquiera de estas consultas",
            "totalSuggestions": sum(len(s["queries"]) for s in suggestions),
        }

    def _insert_data(self, params: dict[str, Any]) -> dict[str, Any]:
        table_name = params["table"]
        data = params["data"]

        inserted = self.gateway.with_connection(lambda conn: conn.insert(table_name, data))
        logger.info("Row inserted", table=table_name, columns=list(data))

        return {
            "success": True,
            "inserted": inserted,
            "table": table_name,
            "insertedAt": _now_iso(),
        }

    def _test_connection(self, params: dict[str, Any]) -> dict[str, Any]:
        rows = self.gateway.with_connection(lambda conn: conn.query(SERVER_INFO_SQL))
        return {
            "success": True,
            "connectionStatus": "Conexión exitosa",
            "serverInfo": rows[0] if rows else None,
            "testedAt": _now_iso(),
        }


def register_database_domain(router, gateway: DatabaseGateway) -> DatabaseAdapter:
    """Register the database domain with the MCP server."""
    config = DomainConfig(
        name="database",
        description="Introspection and SQL access to the homologaciones database",
        version="1.0.0"
    )

    adapter = DatabaseAdapter(config, gateway)

    router.registry.register_many(adapter.tools)
    router.register_adapter("database", adapter.execute)

    logger.info("Database domain registered", tool_count=len(adapter.tools))
    return adapter
