"""Tests for application wiring and lifecycle."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from machinedata_api.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from machinedata_api.adapters.store.in_memory import InMemoryMachineStore
from machinedata_api.core.app_factory import create_app
from machinedata_api.core.errors import StoreAppError


class RecordingStore(InMemoryMachineStore):
    def __init__(self) -> None:
        super().__init__()
        self.events: list[str] = []

    async def ensure_indexes(self) -> None:
        self.events.append("ensure_indexes")

    async def close(self) -> None:
        self.events.append("close")


def test_lifespan_prepares_and_closes_store() -> None:
    store = RecordingStore()
    app = create_app(store=store)

    with TestClient(app) as client:
        assert store.events == ["ensure_indexes"]
        assert client.get("/health").status_code == 200

    assert store.events == ["ensure_indexes", "close"]


class UnreachableStore(RecordingStore):
    async def ensure_indexes(self) -> None:
        self.events.append("ensure_indexes")
        raise StoreAppError(
            code="store_operation_failed",
            message="MongoDB create_index failed: No servers found yet",
            details={"operation": "create_index"},
        )

    async def ping(self) -> bool:
        return False


def test_app_starts_when_index_creation_fails() -> None:
    store = UnreachableStore()
    app = create_app(store=store)

    with patch("machinedata_api.core.app_factory.logger") as logger:
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200
            assert client.get("/health/ready").status_code == 503

    assert store.events == ["ensure_indexes", "close"]
    logger.error.assert_called_once()
    assert logger.error.call_args.args[0] == "store.indexes_failed"
    assert logger.error.call_args.kwargs["extra"]["error_code"] == "store_operation_failed"


def test_default_rate_limiter_is_in_memory() -> None:
    app = create_app(store=InMemoryMachineStore())

    assert isinstance(app.state.rate_limiter, InMemorySlidingWindowRateLimiter)
    assert app.state.rate_limit_policies.daily.limit == 1000
    assert app.state.rate_limit_policies.burst.window_seconds == 5


def test_openapi_documents_routes_and_rate_limit_response() -> None:
    schema = create_app(store=InMemoryMachineStore()).openapi()

    assert "/machinedata" in schema["paths"]
    assert "/machinedata/{serial_number}" in schema["paths"]
    assert "/machinedata/" not in schema["paths"]
    assert "429" in schema["paths"]["/machinedata"]["post"]["responses"]
    assert {t["name"] for t in schema["tags"]} >= {"Machine Data", "Health"}
