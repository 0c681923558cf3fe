"""Shared fixtures: a controllable clock and a fake database gateway."""

from typing import Any, Callable, Optional

import pytest

from shared.config import DatabaseSettings


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += minutes * 60


class FakeConnection:
    """Stands in for QueryConnection; answers queries through a responder."""

    def __init__(
        self,
        responder: Optional[Callable[[str, Optional[dict[str, Any]]], list[dict[str, Any]]]] = None,
        tables: Optional[dict[str, list[dict[str, Any]]]] = None
    ) -> None:
        self.responder = responder or (lambda sql, params: [])
        self.tables = tables or {}
        self.calls: list[tuple[str, Optional[dict[str, Any]]]] = []
        self.inserted: list[tuple[str, dict[str, Any]]] = []

    def query(self, sql: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        self.calls.append((sql, params))
        return self.responder(sql, params)

    def table_exists(self, name: str) -> bool:
        return name in self.tables

    def count(self, name: str) -> int:
        return len(self.tables[name])

    def sample(self, name: str, limit: int = 3) -> list[dict[str, Any]]:
        return self.tables[name][:limit]

    def insert(self, name: str, data: dict[str, Any]) -> dict[str, Any]:
        if name not in self.tables:
            raise ValueError(f"La tabla '{name}' no existe")
        row = {"id": len(self.tables[name]) + 1, **data}
        self.tables[name].append(row)
        self.inserted.append((name, data))
        return row


class FakeDatabaseGateway:
    """Records how often a connection was opened and hands out a FakeConnection."""

    def __init__(
        self,
        connection: Optional[FakeConnection] = None,
        error: Optional[Exception] = None
    ) -> None:
        self.settings = DatabaseSettings(_env_file=None, name="homologacion")
        self.schema = "public"
        self.connection = connection or FakeConnection()
        self.error = error
        self.opened = 0
        self.closed = False

    def with_connection(self, fn):
        self.opened += 1
        if self.error is not None:
            raise self.error
        return fn(self.connection)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_db() -> FakeDatabaseGateway:
    return FakeDatabaseGateway()
