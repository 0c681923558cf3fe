"""Database Gateway - one PostgreSQL connection per call.

Wraps a SQLAlchemy engine without pooling. Identifiers supplied by
callers (table and column names) only reach SQL through SQLAlchemy Core
constructs or reflection, never through string formatting.
"""

from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import (
    Connection,
    Engine,
    MetaData,
    Table,
    create_engine,
    func,
    inspect,
    literal_column,
    select,
    table,
    text,
)
from sqlalchemy.engine import URL
from sqlalchemy.exc import NoSuchTableError
from sqlalchemy.pool import NullPool

from shared.config import DatabaseSettings
from shared.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class DatabaseConfigurationError(Exception):
    """Required database settings are missing."""
    pass


class QueryConnection:
    """
    Query interface handed to ``DatabaseGateway.with_connection`` callbacks.

    Rows are returned as plain dicts keyed by column name.
    """

    def __init__(self, conn: Connection, schema: Optional[str] = None) -> None:
        self._conn = conn
        self.schema = schema

    def query(self, sql: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        """
        Run a SQL statement with named bind parameters.

        Args:
            sql: SQL text using ``:name`` placeholders
            params: Bind parameter values

        Returns:
            Result rows (empty for statements that return none)
        """
        result = self._conn.execute(text(sql), params or {})
        if not result.returns_rows:
            return []
        return [dict(row._mapping) for row in result]

    def table_exists(self, name: str) -> bool:
        return inspect(self._conn).has_table(name, schema=self.schema)

    def count(self, name: str) -> int:
        """Count rows of a table."""
        stmt = select(func.count()).select_from(table(name, schema=self.schema))
        return int(self._conn.execute(stmt).scalar_one())

    def sample(self, name: str, limit: int = 3) -> list[dict[str, Any]]:
        """Fetch the first rows of a table."""
        stmt = (
            select(literal_column("*"))
            .select_from(table(name, schema=self.schema))
            .limit(limit)
        )
        return [dict(row._mapping) for row in self._conn.execute(stmt)]

    def insert(self, name: str, data: dict[str, Any]) -> dict[str, Any]:
        """
        Insert one row and return it as stored.

        The table is reflected first, so unknown tables or columns are
        rejected before anything is sent.

        Raises:
            ValueError: If the table or a column does not exist
        """
        try:
            target = Table(name, MetaData(), schema=self.schema, autoload_with=self._conn)
        except NoSuchTableError:
            raise ValueError(f"La tabla '{name}' no existe")

        unknown = [key for key in data if key not in target.c]
        if unknown:
            raise ValueError(
                f"Columnas inexistentes en '{name}': {', '.join(unknown)}"
            )

        stmt = target.insert().values(data).returning(*target.c)
        row = self._conn.execute(stmt).one()
        return dict(row._mapping)


class DatabaseGateway:
    """
    Database Gateway.

    Every ``with_connection`` call opens a fresh connection and closes it
    when the callback returns. The callback's work is committed on success
    and rolled back on error, so callers never see partial results.
    """

    DRIVER = "postgresql+psycopg2"

    def __init__(
        self,
        settings: DatabaseSettings,
        engine_factory: Optional[Callable[[], Engine]] = None
    ) -> None:
        """
        Initialize the gateway.

        Args:
            settings: Connection settings
            engine_factory: Optional engine builder (tests use SQLite)
        """
        self.settings = settings
        self.schema = settings.schema_name
        self._engine_factory = engine_factory or self._create_engine
        self._engine: Optional[Engine] = None

    def check_configuration(self) -> None:
        """
        Raises:
            DatabaseConfigurationError: If a required variable is unset
        """
        missing = self.settings.missing()
        if missing:
            logger.error("Database configuration incomplete", missing=missing)
            raise DatabaseConfigurationError(
                f"Variables de entorno faltantes: {', '.join(missing)}"
            )

    def _build_url(self) -> URL:
        return URL.create(
            self.DRIVER,
            username=self.settings.username,
            password=self.settings.password,
            host=self.settings.host,
            port=self.settings.port,
            database=self.settings.name,
        )

    def _create_engine(self) -> Engine:
        self.check_configuration()
        timeout_ms = self.settings.query_timeout_seconds * 1000
        return create_engine(
            self._build_url(),
            poolclass=NullPool,
            connect_args={
                "sslmode": self.settings.sslmode,
                "connect_timeout": self.settings.connect_timeout_seconds,
                "options": f"-c statement_timeout={timeout_ms}",
            },
        )

    def _get_engine(self) -> Engine:
        if self._engine is None:
            self._engine = self._engine_factory()
            logger.info(
                "Database engine created",
                host=self.settings.host,
                database=self.settings.name,
                user=self.settings.username,
            )
        return self._engine

    def with_connection(self, fn: Callable[[QueryConnection], T]) -> T:
        """
        Run ``fn`` with a freshly opened connection.

        Args:
            fn: Callback receiving a QueryConnection

        Returns:
            Whatever ``fn`` returns

        Raises:
            DatabaseConfigurationError: If required settings are missing
            sqlalchemy.exc.SQLAlchemyError: On connection or query failure
        """
        engine = self._get_engine()
        with engine.connect() as conn:
            result = fn(QueryConnection(conn, self.schema))
            conn.commit()
        return result

    def close(self) -> None:
        """Dispose of the engine."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
