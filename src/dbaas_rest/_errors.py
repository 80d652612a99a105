"""Error handling utilities."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ApiError(Exception):
    """Custom API error with HTTP status code."""

    def __init__(self, status_code: int, error_type: str, message: str):
        self.status_code = status_code
        self.error_type = error_type
        self.message = message
        super().__init__(message)


class InvalidRequest(ApiError):
    """The request body could not be decoded or validated."""

    def __init__(self, message: str):
        super().__init__(422, "InvalidRequest", message)


class DuplicateDatabase(ApiError):
    """A database with the same case-folded name is registered or being created."""

    def __init__(self, message: str):
        super().__init__(409, "DuplicateDatabase", message)


class UnknownDatabase(ApiError):
    """No registered database matches the requested name."""

    def __init__(self, message: str):
        super().__init__(404, "UnknownDatabase", message)


class ConnectFailure(ApiError):
    """The backing engine could not be opened or reached."""

    def __init__(self, message: str):
        super().__init__(502, "ConnectFailure", message)


class ExecFailure(ApiError):
    """The backing engine rejected a statement."""

    def __init__(self, message: str):
        super().__init__(502, "ExecFailure", message)


class EngineTimeout(ApiError):
    """An engine call did not finish within its deadline."""

    def __init__(self, message: str):
        super().__init__(504, "Timeout", message)


class RegistryError(Exception):
    """Registry consistency violation. Indicates a logic fault, not a caller error."""


class AlreadyExists(RegistryError):
    pass


class NotFound(RegistryError):
    pass


def invalid_request(message: str) -> ApiError:
    """Create an invalid request error."""
    return InvalidRequest(message)


def duplicate_database(name: str) -> ApiError:
    """Create a duplicate database error."""
    return DuplicateDatabase(f"Database '{name}' already exists")


def unknown_database(name: str) -> ApiError:
    """Create an unknown database error."""
    return UnknownDatabase(f"Database '{name}' not found")


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def register_error_handlers(app: FastAPI) -> None:
    """Register error handlers on the FastAPI app."""

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "status": "error",
                "error": {"type": exc.error_type, "message": exc.message},
            },
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return await handle_api_error(
            request, invalid_request(_format_validation_errors(exc))
        )
