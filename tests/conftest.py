"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the environment before any import reads the settings, so tests
never need a running MongoDB or a .env file.
"""

import itertools
import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

# Set default env vars that all tests might need
os.environ.setdefault("MONGO_DB_URI", "mongodb://localhost:27017")
os.environ.setdefault("APP_STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from machinedata_api.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from machinedata_api.adapters.store.in_memory import InMemoryMachineStore
from machinedata_api.core.app_factory import create_app


@pytest.fixture
def store() -> InMemoryMachineStore:
    return InMemoryMachineStore()


@pytest.fixture
def client(store: InMemoryMachineStore):
    """Client whose limiter clock moves 10s per check, so limits never trip."""
    ticks = itertools.count(1_000_000.0, 10.0)
    limiter = InMemorySlidingWindowRateLimiter(clock=lambda: next(ticks))
    app = create_app(store=store, rate_limiter=limiter)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def machine_payload() -> dict:
    return {"serialNumber": "SN1", "name": "Lathe", "isWorking": True}
