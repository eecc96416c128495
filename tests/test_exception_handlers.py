"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from machinedata_api.core.errors import (
    AppError,
    ConflictAppError,
    NotFoundAppError,
    RateLimitAppError,
    StoreAppError,
    ValidationAppError,
)
from machinedata_api.core.exception_handlers import setup_exception_handlers


class _Body(BaseModel):
    value: int


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        ("error_cls", "status_code"),
        [
            (ValidationAppError, 400),
            (NotFoundAppError, 404),
            (ConflictAppError, 409),
        ],
    )
    def test_client_errors_expose_message(
        self,
        client: TestClient,
        app_with_handlers: FastAPI,
        error_cls: type,
        status_code: int,
    ):
        """Verify client-side errors map to their status with the message as body."""
        @app_with_handlers.get("/test-client-error")
        async def test_endpoint():
            raise error_cls(code="test", message="Something about the request")

        response = client.get("/test-client-error")

        assert response.status_code == status_code
        assert response.json() == {"error": "Something about the request"}

    def test_store_error_returns_generic_500(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify store failures never leak their detail."""
        @app_with_handlers.get("/test-store")
        async def test_endpoint():
            raise StoreAppError(
                code="store_operation_failed",
                message="MongoDB find failed: mongodb://admin:secret@db timed out",
                details={"operation": "find"},
            )

        response = client.get("/test-store")

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert "secret" not in response.text

    def test_rate_limit_error_is_plain_text_429(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-rate-limit")
        async def test_endpoint():
            raise RateLimitAppError(code="rate_limit_exceeded", message="Slow down!")

        response = client.get("/test-rate-limit")

        assert response.status_code == 429
        assert response.text == "Slow down!"
        assert response.headers["content-type"].startswith("text/plain")


class TestRequestValidationHandler:
    def test_invalid_body_returns_400_with_fixed_message(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.post("/test-body")
        async def test_endpoint(body: _Body):
            return body

        response = client.post("/test-body", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Fields missing in the request."}


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        """Verify fallback exception handler is registered."""
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_logic(self):
        """Verify general_exception_handler returns correct structure."""
        from machinedata_api.core.exception_handlers import general_exception_handler

        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("Unexpected error: database connection failed")
        response = asyncio.run(general_exception_handler(request, exc))

        response_body = response.body if isinstance(response.body, bytes) else bytes(response.body)
        data = json.loads(response_body.decode())
        assert response.status_code == 500
        assert data == {"error": "Internal server error"}

    def test_general_exception_handler_never_leaks_stack_trace(self):
        """Verify stack traces are never included in response."""
        from machinedata_api.core.exception_handlers import general_exception_handler

        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = ValueError("Test error with details")
        response = asyncio.run(general_exception_handler(request, exc))

        response_text = bytes(response.body).decode()
        assert "Traceback" not in response_text
        assert "ValueError" not in response_text
        assert "details" not in response_text


class TestErrorHandlerIntegration:
    """Integration tests for exception handler setup."""

    def test_setup_exception_handlers_registers_handlers(self, app_with_handlers: FastAPI):
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_multiple_handler_setups_does_not_fail(self):
        """Verify calling setup_exception_handlers multiple times is safe."""
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
