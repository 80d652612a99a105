"""Pydantic request/response models."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ._registry import DatabaseRecord


# === Base class for camelCase serialization ===


class CamelModel(BaseModel):
    """Base model that serializes to camelCase."""

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
    )


def success_envelope(data: CamelModel | None = None) -> dict:
    """Wrap response data in success envelope."""
    if data is None:
        return {"status": "success", "data": None}
    return {"status": "success", "data": data.model_dump(by_alias=True)}


# === Requests ===


class CreateDatabaseRequest(CamelModel):
    """Request body for database creation."""

    name: str = Field(min_length=1)
    engine: str | None = None
    size: str = ""
    replicas: int = Field(default=0, ge=0)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value


# === Responses ===


class CreateDatabaseResponse(CamelModel):
    """Response for database creation."""

    id: str


class DatabaseMetadata(CamelModel):
    """Metadata for a single registered database."""

    name: str
    engine: str
    size: str
    replicas: int
    id: str

    @classmethod
    def from_record(cls, record: DatabaseRecord) -> "DatabaseMetadata":
        return cls(
            name=record.name,
            engine=record.engine,
            size=record.size,
            replicas=record.replicas,
            id=record.identity,
        )


class MetadataResponse(CamelModel):
    """Response for listing databases."""

    databases: list[DatabaseMetadata]


# === Errors ===


class ErrorDetail(BaseModel):
    """Error details."""

    message: str
    type: str


class ErrorResponse(BaseModel):
    """Error response."""

    status: str = "error"
    error: ErrorDetail
