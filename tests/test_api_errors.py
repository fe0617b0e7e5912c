"""Tests for the unified API error envelope."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from security.api_errors import (
    APIError,
    BadRequestError,
    ErrorCode,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    register_exception_handlers,
)


class TestAPIError:

    def test_status_follows_code(self):
        assert APIError(ErrorCode.RESOURCE_ALREADY_EXISTS, "exists").status_code == 409
        assert APIError("SERVER_UNAVAILABLE", "down").status_code == 503

    def test_unknown_code_string_is_rejected(self):
        with pytest.raises(ValueError):
            APIError("NOT_A_CODE", "nope")

    @pytest.mark.parametrize("error, status_code, code", [
        (UnauthorizedError(), 401, ErrorCode.AUTH_REQUIRED),
        (ForbiddenError(), 403, ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS),
        (BadRequestError("Invalid role name"), 400, ErrorCode.VALIDATION_ERROR),
        (NotFoundError("School not found"), 404, ErrorCode.RESOURCE_NOT_FOUND),
    ])
    def test_shortcuts(self, error, status_code, code):
        assert error.status_code == status_code
        assert error.code == code

    def test_to_response(self):
        error = BadRequestError(
            "Request validation failed",
            field_errors=[{"field": "role", "message": "too short"}],
        )

        response = error.to_response("req-1", "/role-permissions/custom")

        assert response.success is False
        assert response.error is True
        assert response.request_id == "req-1"
        assert response.field_errors[0].field == "role"
        assert response.field_errors[0].code == "invalid"


class Body(BaseModel):
    role: str


@pytest.fixture
def error_client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/forbidden")
    async def forbidden():
        raise ForbiddenError()

    @app.post("/echo")
    async def echo(body: Body):
        return body

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database password is hunter2")

    return TestClient(app, raise_server_exceptions=False)


class TestExceptionHandlers:

    def test_api_error_envelope(self, error_client):
        response = error_client.get("/forbidden")

        assert response.status_code == 403
        body = response.json()
        assert body["success"] is False
        assert body["error"] is True
        assert body["code"] == "AUTH_INSUFFICIENT_PERMISSIONS"
        assert body["message"] == "Insufficient permissions"
        assert body["path"] == "/forbidden"
        assert body["timestamp"].endswith("Z")
        assert response.headers["X-Request-ID"] == body["request_id"]

    def test_request_validation_is_400(self, error_client):
        response = error_client.post("/echo", json={})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["field_errors"][0]["field"] == "role"

    def test_method_not_allowed(self, error_client):
        response = error_client.delete("/forbidden")

        assert response.status_code == 405
        assert response.json()["code"] == "METHOD_NOT_ALLOWED"

    def test_unhandled_error_hides_details(self, error_client):
        response = error_client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "SERVER_INTERNAL_ERROR"
        assert "hunter2" not in body["message"]

    def test_request_id_header_is_reused(self, error_client):
        response = error_client.get("/forbidden", headers={"X-Request-ID": "abc-123"})

        assert response.json()["request_id"] == "abc-123"
