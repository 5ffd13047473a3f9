"""
Tests for the error registry, FeedLensError and the exception handlers.
"""

import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from feedlens.core.errors import CODE_PATTERN, FeedLensError
from feedlens.core.errors.middleware import (
    database_error_handler,
    feedlens_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_error_handler,
)
from feedlens.core.errors.registry import ErrorRegistry, RegistryValidationError, error_registry
from feedlens.core.log_middleware import CorrelationMiddleware


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestRegistry:

    def test_shipped_registry_is_valid(self):
        registry = ErrorRegistry()
        registry.load()

        assert len(registry) >= 10
        assert all(CODE_PATTERN.match(c) for c in registry.all_codes())
        assert set(registry.codes_for_domain("LLM")) == {"FL-LLM-001", "FL-LLM-002", "FL-LLM-003"}

    def test_lookup(self):
        entry = error_registry.lookup("FL-ING-002")
        assert entry.http_status == 413
        assert entry.domain == "ING"

    def test_lookup_unknown(self):
        with pytest.raises(KeyError):
            error_registry.lookup("FL-SYS-999")

    def test_rejects_domain_mismatch(self, tmp_path):
        path = tmp_path / "registry.yaml"
        path.write_text(
            "schema_version: 1\n"
            "errors:\n"
            "  - code: FL-API-001\n"
            "    domain: DB\n"
            "    title: t\n"
            "    severity: INFO\n"
            "    retryable: false\n"
            "    http_status: 400\n"
            "    safe_message: m\n"
            "    remediation: []\n"
        )
        with pytest.raises(RegistryValidationError, match="doesn't match"):
            ErrorRegistry().load(str(path))

    def test_rejects_missing_fields(self, tmp_path):
        path = tmp_path / "registry.yaml"
        path.write_text("errors:\n  - code: FL-API-001\n    domain: API\n")
        with pytest.raises(RegistryValidationError, match="missing fields"):
            ErrorRegistry().load(str(path))

    def test_rejects_success_status(self, tmp_path):
        path = tmp_path / "registry.yaml"
        path.write_text(
            "errors:\n"
            "  - code: FL-ING-009\n"
            "    domain: ING\n"
            "    title: t\n"
            "    severity: INFO\n"
            "    retryable: false\n"
            "    http_status: 200\n"
            "    safe_message: m\n"
            "    remediation: []\n"
        )
        with pytest.raises(RegistryValidationError, match="not an error status"):
            ErrorRegistry().load(str(path))

    def test_failed_reload_keeps_previous_entries(self, tmp_path):
        registry = ErrorRegistry()
        registry.load()
        before = len(registry)
        path = tmp_path / "registry.yaml"
        path.write_text("errors:\n  - just a string\n")

        with pytest.raises(RegistryValidationError, match="expected a mapping"):
            registry.load(str(path))

        assert len(registry) == before
        assert registry.get("FL-DB-001") is not None


def test_feedlens_error_rejects_bad_code():
    with pytest.raises(ValueError):
        FeedLensError("oops")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(CorrelationMiddleware)
    app.add_exception_handler(FeedLensError, feedlens_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(OperationalError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/llm")
    async def llm_down():
        raise FeedLensError("FL-LLM-001", detail="upstream said 500", payload={"hint": "x"})

    @app.get("/unregistered")
    async def unregistered():
        raise FeedLensError("FL-ZZZ-999")

    @app.get("/db")
    async def db_down():
        raise OperationalError("SELECT 1", {}, Exception("unable to open database file"))

    @app.get("/conflict")
    async def conflict():
        raise StarletteHTTPException(status_code=409, detail="already exists")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @app.get("/typed")
    async def typed(n: int):
        return {"n": n}

    return TestClient(app, raise_server_exceptions=False)


def test_registered_error_body(client):
    response = client.get("/llm")

    assert response.status_code == 502
    body = response.json()
    assert body["code"] == "FL-LLM-001"
    assert body["retryable"] is True
    assert body["hint"] == "x"
    assert isinstance(body["remediation"], list)
    # Internal detail never leaks
    assert "upstream said 500" not in response.text


def test_unregistered_code_is_generic_500(client):
    response = client.get("/unregistered")
    assert response.status_code == 500
    assert response.json()["error"] == "An unexpected error occurred."


def test_database_error(client):
    response = client.get("/db")
    assert response.status_code == 503
    assert response.json()["code"] == "FL-DB-001"
    assert "unable to open" not in response.text


def test_plain_http_exception_keeps_error_shape(client):
    response = client.get("/conflict")
    assert response.status_code == 409
    assert response.json() == {"error": "already exists"}


def test_unknown_route(client):
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.json()["code"] == "FL-API-002"


def test_validation_error(client):
    response = client.get("/typed", params={"n": "abc"})
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "FL-API-001"
    assert body["details"][0]["loc"] == ["query", "n"]


def test_unhandled_exception(client):
    response = client.get("/boom")
    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "FL-SYS-001"
    assert "kaboom" not in response.text


@pytest.mark.parametrize("path", ["/llm", "/db", "/conflict", "/nowhere", "/boom"])
def test_every_error_has_string_error_key(client, path):
    assert isinstance(client.get(path).json()["error"], str)


# ---------------------------------------------------------------------------
# Correlation middleware
# ---------------------------------------------------------------------------

def test_correlation_headers_are_echoed(client):
    response = client.get("/typed", params={"n": 1}, headers={"x-request-id": "req-1", "x-correlation-id": "corr-1"})
    assert response.headers["x-request-id"] == "req-1"
    assert response.headers["x-correlation-id"] == "corr-1"


def test_correlation_headers_are_generated(client):
    response = client.get("/typed", params={"n": 1})
    assert len(response.headers["x-request-id"]) == 32
    assert len(response.headers["x-correlation-id"]) == 32
