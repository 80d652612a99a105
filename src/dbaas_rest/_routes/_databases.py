"""Database lifecycle routes."""

from fastapi import APIRouter, Depends

from .._lifecycle import DatabaseSpec, LifecycleManager
from .._models import (
    CreateDatabaseRequest,
    CreateDatabaseResponse,
    DatabaseMetadata,
    MetadataResponse,
    success_envelope,
)
from ._dependencies import get_manager

router = APIRouter(prefix="/databases", tags=["databases"])

# Sync handlers; engine calls block and run on the FastAPI threadpool.


@router.post("")
def create_database(
    body: CreateDatabaseRequest,
    manager: LifecycleManager = Depends(get_manager),
) -> dict:
    """Create a database and return its identity."""
    identity = manager.create(
        DatabaseSpec(
            name=body.name,
            engine=body.engine,
            size=body.size,
            replicas=body.replicas,
        )
    )
    return success_envelope(CreateDatabaseResponse(id=identity))


@router.delete("/{name}")
def delete_database(
    name: str,
    manager: LifecycleManager = Depends(get_manager),
) -> dict:
    """Drop a database."""
    manager.delete(name)
    return success_envelope()


@router.get("")
def get_metadata(manager: LifecycleManager = Depends(get_manager)) -> dict:
    """List registered databases in creation order."""
    databases = [DatabaseMetadata.from_record(r) for r in manager.get_metadata()]
    return success_envelope(MetadataResponse(databases=databases))
