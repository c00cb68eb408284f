"""
Unit tests for the error handling middleware.

Builds a small FastAPI app whose routes raise each error kind and checks
the structured response.
"""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from fluentpath.middleware.error_handling import (
    AlreadyCompletedError,
    InfrastructureError,
    InvalidInputError,
    NotEnrolledError,
    NotFoundError,
    ServiceError,
    setup_error_handling,
)

ERRORS = {
    "not-found": NotFoundError("Lesson not found", details={"lesson_id": "l-1"}),
    "not-enrolled": NotEnrolledError("Not enrolled in this course"),
    "already-completed": AlreadyCompletedError("Lesson already completed"),
    "invalid-input": InvalidInputError("score must be between 0 and 100"),
    "infrastructure": InfrastructureError("Persistence failure during get_lesson"),
}


def _build_app(debug: bool) -> FastAPI:
    app = FastAPI()
    setup_error_handling(app, debug=debug)

    @app.get("/raise/{kind}")
    async def raise_error(kind: str):
        raise ERRORS[kind]

    @app.get("/crash")
    async def crash():
        raise RuntimeError("secret connection string")

    @app.get("/http")
    async def http_error():
        raise HTTPException(status_code=418, detail="teapot")

    return app


@pytest.fixture
def client():
    return TestClient(_build_app(debug=False))


@pytest.fixture
def debug_client():
    return TestClient(_build_app(debug=True))


class TestServiceErrors:
    @pytest.mark.parametrize(
        "kind,status_code,error_code",
        [
            ("not-found", 404, "not_found"),
            ("not-enrolled", 403, "not_enrolled"),
            ("already-completed", 409, "already_completed"),
            ("invalid-input", 422, "invalid_input"),
            ("infrastructure", 503, "infrastructure_error"),
        ],
    )
    def test_status_and_code(self, client, kind, status_code, error_code):
        response = client.get(f"/raise/{kind}")

        assert response.status_code == status_code
        body = response.json()
        assert body["error"] == error_code
        assert body["message"] == ERRORS[kind].message
        assert len(body["error_id"]) == 8
        assert "timestamp" in body

    def test_details_hidden_outside_debug(self, client):
        assert client.get("/raise/not-found").json()["details"] is None

    def test_details_shown_in_debug(self, debug_client):
        body = debug_client.get("/raise/not-found").json()
        assert body["details"] == {"lesson_id": "l-1"}

    def test_business_errors_log_at_warning(self, client, caplog):
        with caplog.at_level("WARNING", logger="fluentpath.middleware.error_handling"):
            client.get("/raise/not-enrolled")

        [record] = [r for r in caplog.records if "not_enrolled" in r.getMessage()]
        assert record.levelname == "WARNING"

    def test_infrastructure_errors_log_at_error(self, client, caplog):
        with caplog.at_level("WARNING", logger="fluentpath.middleware.error_handling"):
            client.get("/raise/infrastructure")

        [record] = [r for r in caplog.records if "infrastructure_error" in r.getMessage()]
        assert record.levelname == "ERROR"


class TestUnexpectedErrors:
    def test_sanitized_500(self, client):
        response = client.get("/crash")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_server_error"
        assert "secret" not in response.text

    def test_debug_includes_exception(self, debug_client):
        body = debug_client.get("/crash").json()
        assert body["details"]["exception"] == "RuntimeError"

    def test_http_exceptions_pass_through(self, client):
        response = client.get("/http")

        assert response.status_code == 418
        assert response.json() == {"detail": "teapot"}


class TestServiceErrorBase:
    def test_overrides(self):
        error = ServiceError("custom", status_code=400, error_code="custom_code")

        assert error.status_code == 400
        assert error.error_code == "custom_code"
        assert error.is_business_error is True

    def test_infrastructure_is_not_business(self):
        assert InfrastructureError("x").is_business_error is False
