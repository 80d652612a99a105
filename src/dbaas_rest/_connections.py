"""Engine connector: pooled, deadline-bounded handles to backing database engines."""

from __future__ import annotations

import concurrent.futures
import logging
import math
import socket
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy import Connection, Engine, create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError

from ._errors import ApiError, ConnectFailure, EngineTimeout, ExecFailure

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECS = 5.0
DEFAULT_IDENTITY_QUERY = "SELECT UUID_SHORT()"


@dataclass(frozen=True)
class PoolPolicy:
    """Process-wide connection pool bounds applied to every handle."""

    max_open: int = 20
    max_idle: int = 20
    max_lifetime_secs: int = 300

    def engine_kwargs(self, timeout_secs: float) -> dict[str, Any]:
        """Translate the policy into SQLAlchemy ``QueuePool`` arguments."""
        return {
            "pool_size": self.max_idle,
            "max_overflow": max(self.max_open - self.max_idle, 0),
            "pool_recycle": self.max_lifetime_secs,
            "pool_timeout": timeout_secs,
        }


def driver_timeout_args(url: URL, timeout_secs: float) -> dict[str, Any]:
    """DBAPI ``connect_args`` that bound socket I/O by the same deadline.

    Drivers not listed here get nothing; their calls are still interrupted
    when the deadline passes.
    """
    secs = max(math.ceil(timeout_secs), 1)
    driver = url.get_driver_name()
    if driver in ("pymysql", "mysqldb"):
        return {"connect_timeout": secs, "read_timeout": secs, "write_timeout": secs}
    if driver in ("psycopg2", "psycopg"):
        return {
            "connect_timeout": max(secs, 2),
            "options": f"-c statement_timeout={int(timeout_secs * 1000)}",
        }
    return {}


def interrupt_dbapi_connection(dbapi_connection: Any) -> None:
    """Abort whatever statement is running on a raw DBAPI connection."""
    if hasattr(dbapi_connection, "interrupt"):  # sqlite3
        dbapi_connection.interrupt()
    elif hasattr(dbapi_connection, "cancel"):  # psycopg2 / psycopg
        dbapi_connection.cancel()
    else:
        # pymysql / mysqlclient block in recv(); shutting the socket down wakes them.
        sock = getattr(dbapi_connection, "_sock", None)
        if sock is not None:
            sock.shutdown(socket.SHUT_RDWR)


@dataclass(frozen=True)
class EngineSpec:
    """A configured backing engine."""

    url: str
    identity_query: str = DEFAULT_IDENTITY_QUERY
    engine_kwargs: dict[str, Any] = field(default_factory=dict)


class Handle:
    """A live connection pool to an engine, optionally scoped to one database.

    Use as a context manager so the pool is released on every exit path.
    """

    def __init__(
        self,
        engine_id: str,
        engine: Engine,
        identity_query: str,
        database: str | None = None,
    ):
        self.engine_id = engine_id
        self.engine = engine
        self.identity_query = identity_query
        self.database = database
        self.closed = False

    def quote(self, name: str) -> str:
        """Quote an identifier for this engine's dialect."""
        return self.engine.dialect.identifier_preparer.quote(name)

    def close(self) -> None:
        """Dispose the pool. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        self.engine.dispose()

    def __enter__(self) -> Handle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class _EngineCall:
    """One engine round-trip on its own worker thread.

    Each call owns its thread, so a call that outlives its deadline never
    holds capacity another request is waiting for.
    """

    def __init__(
        self,
        what: str,
        handle: Handle,
        work: Callable[[Connection], Any],
        on_error: Callable[[SQLAlchemyError], ApiError],
    ):
        self.what = what
        self.future: concurrent.futures.Future = concurrent.futures.Future()
        self._handle = handle
        self._work = work
        self._on_error = on_error
        self._dbapi_connection: Any = None
        self._interrupted = False
        self._lock = threading.Lock()

    def start(self) -> None:
        threading.Thread(target=self._run, name="engine-io", daemon=True).start()

    def _run(self) -> None:
        if not self.future.set_running_or_notify_cancel():
            return
        try:
            with self._handle.engine.connect() as conn:
                with self._lock:
                    if self._interrupted:
                        raise EngineTimeout(f"{self.what} was interrupted before it started")
                    self._dbapi_connection = conn.connection.dbapi_connection
                try:
                    result = self._work(conn)
                finally:
                    with self._lock:
                        self._dbapi_connection = None
        except SQLAlchemyError as exc:
            error = self._on_error(exc)
            error.__cause__ = exc
            self.future.set_exception(error)
        except BaseException as exc:
            self.future.set_exception(exc)
        else:
            self.future.set_result(result)

    def interrupt(self) -> None:
        """Abort the statement in flight, or stop it from starting."""
        with self._lock:
            self._interrupted = True
            if self._dbapi_connection is None:
                return
            try:
                interrupt_dbapi_connection(self._dbapi_connection)
            except OSError as exc:
                logger.debug("%s: interrupt failed: %s", self.what, exc)


class EngineConnector:
    """Opens pooled handles to named engines and runs statements under a deadline."""

    def __init__(
        self,
        pool_policy: PoolPolicy | None = None,
        timeout_secs: float = DEFAULT_TIMEOUT_SECS,
    ):
        self._engines: dict[str, EngineSpec] = {}
        self._pool_policy = pool_policy or PoolPolicy()
        self._timeout_secs = timeout_secs
        self._in_flight: set[_EngineCall] = set()
        self._lock = threading.Lock()

    @property
    def pool_policy(self) -> PoolPolicy:
        return self._pool_policy

    @property
    def timeout_secs(self) -> float:
        return self._timeout_secs

    @property
    def in_flight(self) -> int:
        """Number of engine calls whose worker has not finished yet."""
        with self._lock:
            return len(self._in_flight)

    def register(
        self,
        engine_id: str,
        url: str,
        identity_query: str = DEFAULT_IDENTITY_QUERY,
        **engine_kwargs: Any,
    ) -> None:
        """Register a backing engine.

        Args:
            engine_id: Identifier callers use to select the engine (e.g., "mysql")
            url: SQLAlchemy URL with no database selected
            identity_query: Query returning a fresh numeric identity from the engine
            **engine_kwargs: Extra ``create_engine`` arguments, overriding the pool policy
        """
        self._engines[engine_id] = EngineSpec(url, identity_query, engine_kwargs)

    def list_engines(self) -> list[str]:
        """List registered engine identifiers."""
        return list(self._engines.keys())

    def has_engine(self, engine_id: str) -> bool:
        """Check if an engine identifier is registered."""
        return engine_id in self._engines

    def open_unscoped(self, engine_id: str) -> Handle:
        """Open a pool to the engine without selecting a database."""
        return self._open(engine_id, None)

    def open_scoped(self, engine_id: str, name: str) -> Handle:
        """Open a pool to the engine with database ``name`` selected."""
        return self._open(engine_id, name)

    def _open(self, engine_id: str, database: str | None) -> Handle:
        spec = self._engines.get(engine_id)
        if spec is None:
            raise ConnectFailure(f"Unknown engine: '{engine_id}'")

        kwargs = {**self._pool_policy.engine_kwargs(self._timeout_secs), **spec.engine_kwargs}
        try:
            url = make_url(spec.url)
            if database is not None:
                url = url.set(database=database)
            kwargs["connect_args"] = {
                **driver_timeout_args(url, self._timeout_secs),
                **spec.engine_kwargs.get("connect_args", {}),
            }
            engine = create_engine(url, **kwargs)
        except (SQLAlchemyError, ImportError, TypeError) as exc:
            logger.error("Error %s when opening engine '%s'", exc, engine_id)
            raise ConnectFailure(f"Cannot open engine '{engine_id}': {exc}") from exc

        return Handle(engine_id, engine, spec.identity_query, database)

    def execute(self, handle: Handle, statement: str, timeout: float | None = None) -> int:
        """Run a DDL statement and return the number of affected rows."""

        def run(conn: Connection) -> int:
            with conn.begin():
                return conn.exec_driver_sql(statement).rowcount

        return self._run_with_deadline(
            f"Statement on '{handle.engine_id}'",
            handle,
            run,
            lambda exc: ExecFailure(f"Statement failed on '{handle.engine_id}': {exc}"),
            timeout,
        )

    def verify(self, handle: Handle, timeout: float | None = None) -> None:
        """Ping the engine to confirm the handle can reach it."""
        self._run_with_deadline(
            f"Ping of '{handle.engine_id}'",
            handle,
            lambda conn: conn.exec_driver_sql("SELECT 1"),
            lambda exc: ConnectFailure(f"Engine '{handle.engine_id}' unreachable: {exc}"),
            timeout,
        )

    def fetch_scalar(self, handle: Handle, query: str, timeout: float | None = None) -> Any:
        """Run a query and return the first column of its first row."""
        return self._run_with_deadline(
            f"Query on '{handle.engine_id}'",
            handle,
            lambda conn: conn.exec_driver_sql(query).scalar(),
            lambda exc: ExecFailure(f"Query failed on '{handle.engine_id}': {exc}"),
            timeout,
        )

    def close(self, handle: Handle) -> None:
        """Release a handle's pool."""
        handle.close()

    def _run_with_deadline(
        self,
        what: str,
        handle: Handle,
        work: Callable[[Connection], Any],
        on_error: Callable[[SQLAlchemyError], ApiError],
        timeout: float | None = None,
    ) -> Any:
        """Run ``work`` on a pooled connection, waiting at most ``timeout`` seconds.

        On expiry the running statement is interrupted so the worker unwinds
        and returns its connection to the pool.
        """
        limit = self._timeout_secs if timeout is None else timeout
        call = _EngineCall(what, handle, work, on_error)
        with self._lock:
            self._in_flight.add(call)
        call.future.add_done_callback(lambda _: self._forget(call))
        call.start()
        try:
            return call.future.result(timeout=limit)
        except concurrent.futures.TimeoutError:
            call.interrupt()
            logger.warning("%s did not complete within %gs", what, limit)
            raise EngineTimeout(f"{what} did not complete within {limit:g}s") from None

    def _forget(self, call: _EngineCall) -> None:
        with self._lock:
            self._in_flight.discard(call)

    def dispose(self) -> None:
        """Interrupt any engine calls still running. Called on shutdown."""
        with self._lock:
            calls = list(self._in_flight)
        for call in calls:
            call.interrupt()
