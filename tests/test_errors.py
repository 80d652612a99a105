"""Tests for error handling."""

from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from dbaas_rest._errors import (
    AlreadyExists,
    ApiError,
    ConnectFailure,
    EngineTimeout,
    ExecFailure,
    NotFound,
    RegistryError,
    duplicate_database,
    invalid_request,
    register_error_handlers,
    unknown_database,
)


def test_api_error():
    err = ApiError(404, "NotFound", "Resource not found")
    assert err.status_code == 404
    assert err.error_type == "NotFound"
    assert err.message == "Resource not found"


def test_duplicate_database():
    err = duplicate_database("dbName1")
    assert err.status_code == 409
    assert err.error_type == "DuplicateDatabase"
    assert "dbName1" in err.message


def test_unknown_database():
    err = unknown_database("ghost")
    assert err.status_code == 404
    assert err.error_type == "UnknownDatabase"
    assert "ghost" in err.message


def test_invalid_request():
    err = invalid_request("bad body")
    assert err.status_code == 422
    assert err.error_type == "InvalidRequest"


def test_engine_errors():
    assert ConnectFailure("x").error_type == "ConnectFailure"
    assert ConnectFailure("x").status_code == 502
    assert ExecFailure("x").error_type == "ExecFailure"
    assert ExecFailure("x").status_code == 502
    assert EngineTimeout("x").error_type == "Timeout"
    assert EngineTimeout("x").status_code == 504


def test_registry_errors_are_not_api_errors():
    assert issubclass(AlreadyExists, RegistryError)
    assert issubclass(NotFound, RegistryError)
    assert not issubclass(RegistryError, ApiError)


def _app() -> FastAPI:
    app = FastAPI()
    register_error_handlers(app)

    class Body(BaseModel):
        name: str

    @app.get("/boom")
    def boom():
        raise EngineTimeout("Statement on 'mysql' did not complete within 5s")

    @app.post("/echo")
    def echo(body: Body):
        return {"name": body.name}

    return app


def test_api_error_handler_envelope():
    client = TestClient(_app())
    response = client.get("/boom")
    assert response.status_code == 504
    assert response.json() == {
        "status": "error",
        "error": {
            "type": "Timeout",
            "message": "Statement on 'mysql' did not complete within 5s",
        },
    }


def test_validation_error_becomes_invalid_request():
    client = TestClient(_app())
    response = client.post("/echo", content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 422
    body = response.json()
    assert body["status"] == "error"
    assert body["error"]["type"] == "InvalidRequest"


def test_validation_error_names_missing_field():
    client = TestClient(_app())
    response = client.post("/echo", json={})
    assert response.status_code == 422
    assert "name" in response.json()["error"]["message"]
