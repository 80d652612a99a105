"""Pytest configuration and fixtures."""

import threading

import pytest
from fastapi.testclient import TestClient

from dbaas_rest import create_app, LifecycleManager, Registry
from dbaas_rest._errors import ConnectFailure

FIRST_IDENTITY = 100934786117271616


class FakeHandle:
    """Handle stand-in that records whether it was released."""

    def __init__(self, engine_id: str, database: str | None = None):
        self.engine_id = engine_id
        self.database = database
        self.identity_query = "SELECT UUID_SHORT()"
        self.closed = False

    def quote(self, name: str) -> str:
        return f"`{name}`"

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class FakeConnector:
    """In-memory EngineConnector double.

    Failures are injected per operation name via ``fail``; ``gate`` blocks
    ``execute`` until set so tests can hold a create mid-flight.
    """

    def __init__(self, engines=("mysql",)):
        self.engines = set(engines)
        self.handles: list[FakeHandle] = []
        self.statements: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.gate: threading.Event | None = None
        self.entered = threading.Event()
        self.disposed = False
        self._next_id = FIRST_IDENTITY
        self._lock = threading.Lock()

    def fail(self, op: str, exc: Exception) -> None:
        self.failures[op] = exc

    def _maybe_fail(self, op: str) -> None:
        exc = self.failures.get(op)
        if exc is not None:
            raise exc

    def _open(self, engine_id, database):
        if engine_id not in self.engines:
            raise ConnectFailure(f"Unknown engine: '{engine_id}'")
        handle = FakeHandle(engine_id, database)
        with self._lock:
            self.handles.append(handle)
        return handle

    def open_unscoped(self, engine_id):
        self._maybe_fail("open_unscoped")
        return self._open(engine_id, None)

    def open_scoped(self, engine_id, name):
        self._maybe_fail("open_scoped")
        return self._open(engine_id, name)

    def execute(self, handle, statement, timeout=None):
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        self._maybe_fail("execute")
        with self._lock:
            self.statements.append(statement)
        return 1

    def verify(self, handle, timeout=None):
        self._maybe_fail("verify")

    def fetch_scalar(self, handle, query, timeout=None):
        self._maybe_fail("fetch_scalar")
        with self._lock:
            value = self._next_id
            self._next_id += 1
        return value

    def close(self, handle):
        handle.close()

    def list_engines(self):
        return sorted(self.engines)

    def dispose(self):
        self.disposed = True

    @property
    def open_handles(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.closed]


@pytest.fixture
def connector() -> FakeConnector:
    """Create a fresh fake engine connector."""
    return FakeConnector()


@pytest.fixture
def registry() -> Registry:
    """Create a fresh database registry."""
    return Registry()


@pytest.fixture
def manager(connector: FakeConnector, registry: Registry) -> LifecycleManager:
    """Create a lifecycle manager over the fake connector."""
    return LifecycleManager(connector, registry)


@pytest.fixture
def app(manager: LifecycleManager):
    """Create a test app with a fresh manager."""
    return create_app(manager)


@pytest.fixture
def client(app) -> TestClient:
    """Create a test client."""
    return TestClient(app)
