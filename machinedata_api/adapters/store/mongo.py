"""MongoDB machine store adapter."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from pymongo import ASCENDING, AsyncMongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from machinedata_api.adapters.store.base import AbstractMachineStore
from machinedata_api.core.errors import DuplicateMachineError, StoreAppError
from machinedata_api.schemas.machine import MachineRecord, MaintenanceEntry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MongoMachineStore(AbstractMachineStore):
    """Store backed by one MongoDB collection, one document per machine.

    Uses the async PyMongo client. ``update_status`` is a single
    ``find_one_and_update`` so the status flip and the history append land
    together; concurrent updates to the same machine may append in either
    order.
    """

    def __init__(
        self,
        client: AsyncMongoClient,
        database: str,
        collection: str,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the store.

        Args:
            client: Async PyMongo client (connects lazily).
            database: Database name.
            collection: Collection name.
            clock: Time source for maintenance entries.
        """
        self.client = client
        self.collection = client[database][collection]
        self._clock = clock

    @classmethod
    def from_uri(
        cls,
        uri: str,
        database: str,
        collection: str,
        *,
        server_selection_timeout_ms: int = 5000,
    ) -> "MongoMachineStore":
        client: AsyncMongoClient = AsyncMongoClient(
            uri,
            tz_aware=True,
            connect=False,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
        )
        return cls(client, database, collection)

    def _store_error(self, operation: str, exc: Exception, serial_number: str | None = None) -> StoreAppError:
        details: dict[str, Any] = {"operation": operation, "error_type": type(exc).__name__}
        if serial_number is not None:
            details["serial_number"] = serial_number
        return StoreAppError(
            code="store_operation_failed",
            message=f"MongoDB {operation} failed: {exc}",
            details=details,  # type: ignore[arg-type]
        )

    async def list_all(self) -> list[MachineRecord]:
        try:
            return [MachineRecord.from_document(doc) async for doc in self.collection.find()]
        except PyMongoError as exc:
            raise self._store_error("find", exc) from exc

    async def find_by_key(self, serial_number: str) -> MachineRecord | None:
        try:
            document = await self.collection.find_one({"serialNumber": serial_number})
        except PyMongoError as exc:
            raise self._store_error("find_one", exc, serial_number) from exc
        return MachineRecord.from_document(document) if document else None

    async def insert(self, record: MachineRecord) -> MachineRecord:
        document = record.to_document()
        try:
            result = await self.collection.insert_one(document)
        except DuplicateKeyError as exc:
            raise DuplicateMachineError(
                code="duplicate_serial_number",
                message="Machine data with this serial number already exists",
                details={"serial_number": record.serial_number, "operation": "insert_one"},
            ) from exc
        except PyMongoError as exc:
            raise self._store_error("insert_one", exc, record.serial_number) from exc

        document["_id"] = result.inserted_id
        return MachineRecord.from_document(document)

    async def update_status(self, serial_number: str, is_working: bool) -> MachineRecord | None:
        entry = MaintenanceEntry.for_status(is_working, self._clock())
        try:
            document = await self.collection.find_one_and_update(
                {"serialNumber": serial_number},
                {
                    "$set": {"isWorking": is_working},
                    "$push": {"maintenanceHistory": entry.model_dump(by_alias=True)},
                },
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise self._store_error("find_one_and_update", exc, serial_number) from exc
        return MachineRecord.from_document(document) if document else None

    async def delete_by_key(self, serial_number: str) -> bool:
        try:
            document = await self.collection.find_one_and_delete({"serialNumber": serial_number})
        except PyMongoError as exc:
            raise self._store_error("find_one_and_delete", exc, serial_number) from exc
        return document is not None

    async def ensure_indexes(self) -> None:
        """Create the unique serial number index.

        Raises ``StoreAppError`` when MongoDB is unreachable or the collection
        already holds duplicate serial numbers; startup logs it and carries on.
        """
        try:
            name = await self.collection.create_index(
                [("serialNumber", ASCENDING)],
                unique=True,
                name="serialNumber_unique",
            )
        except PyMongoError as exc:
            raise self._store_error("create_index", exc) from exc
        logger.info("store.indexes_ready", extra={"index": name})

    async def ping(self) -> bool:
        try:
            await self.client.admin.command("ping")
        except PyMongoError as exc:
            logger.warning("store.ping_failed", extra={"error_type": type(exc).__name__})
            return False
        return True

    async def close(self) -> None:
        await self.client.close()
