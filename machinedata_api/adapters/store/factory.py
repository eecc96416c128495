"""Factory for the configured machine store."""

from machinedata_api.adapters.store.base import AbstractMachineStore
from machinedata_api.adapters.store.in_memory import InMemoryMachineStore
from machinedata_api.adapters.store.mongo import MongoMachineStore
from machinedata_api.core.config import Settings, settings as default_settings
from machinedata_api.core.errors import ValidationAppError


def create_machine_store(settings: Settings | None = None) -> AbstractMachineStore:
    """Instantiate the store selected by ``APP_STORE_BACKEND``.

    Args:
        settings: Settings to read; defaults to the global settings.

    Returns:
        AbstractMachineStore: Configured store. The Mongo client connects lazily.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    cfg = settings or default_settings
    backend = cfg.app.store_backend.lower()

    if backend == "mongo":
        return MongoMachineStore.from_uri(
            cfg.mongo.uri,
            cfg.mongo.database,
            cfg.mongo.collection,
            server_selection_timeout_ms=cfg.mongo.server_selection_timeout_ms,
        )

    if backend == "memory":
        return InMemoryMachineStore()

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown store backend: '{backend}'. Supported backends: mongo, memory",
    )
