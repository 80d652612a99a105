"""Create/delete orchestration for logical databases."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ._errors import (
    ConnectFailure,
    EngineTimeout,
    ExecFailure,
    duplicate_database,
    invalid_request,
    unknown_database,
)
from ._identity import allocate_id
from ._registry import DatabaseRecord, Registry

if TYPE_CHECKING:
    from ._connections import EngineConnector

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "mysql"


@dataclass(frozen=True)
class DatabaseSpec:
    """Requested database. ``engine=None`` selects the manager's default engine."""

    name: str
    engine: str | None = None
    size: str = ""
    replicas: int = 0


class LifecycleManager:
    """Provisions and drops databases and keeps the registry in step with the engine.

    Args:
        connector: Engine connector used for all engine I/O.
        registry: Registry to record databases in; a fresh one if omitted.
        default_engine: Engine used when a spec does not name one.
    """

    def __init__(
        self,
        connector: EngineConnector,
        registry: Registry | None = None,
        default_engine: str = DEFAULT_ENGINE,
    ):
        self._connector = connector
        self._registry = registry if registry is not None else Registry()
        self._default_engine = default_engine

    @property
    def connector(self) -> EngineConnector:
        return self._connector

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def default_engine(self) -> str:
        return self._default_engine

    def create(self, spec: DatabaseSpec) -> str:
        """Create a database on the engine, register it, and return its identity."""
        if not spec.name.strip():
            raise invalid_request("Database name must not be empty")

        if not self._registry.reserve(spec.name):
            logger.info("Database '%s' is already present", spec.name)
            raise duplicate_database(spec.name)

        engine_id = spec.engine or self._default_engine
        try:
            with self._connector.open_unscoped(engine_id) as handle:
                rows = self._connector.execute(
                    handle, f"CREATE DATABASE IF NOT EXISTS {handle.quote(spec.name)}"
                )
            logger.info("Created database '%s' on '%s', rows affected: %d", spec.name, engine_id, rows)

            try:
                with self._connector.open_scoped(engine_id, spec.name) as handle:
                    self._connector.verify(handle)
                    identity = allocate_id(self._connector, handle)
            except (ConnectFailure, ExecFailure, EngineTimeout) as exc:
                # Left on the engine, unregistered; cleanup is up to the caller.
                logger.warning(
                    "Database '%s' exists on '%s' but was not registered: %s",
                    spec.name, engine_id, exc.message,
                )
                raise

            record = DatabaseRecord(
                name=spec.name,
                engine=engine_id,
                size=spec.size,
                replicas=spec.replicas,
                identity=identity,
                rows_affected=rows,
            )
            self._registry.insert(record)
        finally:
            self._registry.release(spec.name)

        logger.info("Registered database '%s' with identity %s", spec.name, identity)
        return identity

    def delete(self, name: str) -> None:
        """Drop a registered database from its engine and unregister it."""
        record = self._registry.get(name)
        if record is None:
            logger.info("Database '%s' is not present", name)
            raise unknown_database(name)

        # The stored engine is trusted as-is; it is not re-validated here.
        engine_id = record.engine or self._default_engine
        logger.debug("Dropping '%s' via engine '%s' recorded at creation", record.name, engine_id)

        with self._connector.open_scoped(engine_id, record.name) as handle:
            rows = self._connector.execute(handle, f"DROP DATABASE {handle.quote(record.name)}")
        logger.info("Dropped database '%s' on '%s', rows affected: %d", record.name, engine_id, rows)

        self._registry.remove(record.name)

    def get_metadata(self) -> list[DatabaseRecord]:
        """Registered databases in creation order."""
        return self._registry.list_records()

    def close(self) -> None:
        """Release engine resources. Called on shutdown."""
        self._connector.dispose()
