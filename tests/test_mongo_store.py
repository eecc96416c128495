"""Unit tests for the MongoDB store adapter with a mocked collection."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from machinedata_api.adapters.store.mongo import MongoMachineStore
from machinedata_api.core.errors import DuplicateMachineError, StoreAppError
from machinedata_api.schemas.machine import MachineRecord

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class _AsyncCursor:
    def __init__(self, documents: list[dict]) -> None:
        self._documents = documents

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for document in self._documents:
            yield document


def _document(serial: str = "SN1", **overrides) -> dict:
    document = {
        "_id": ObjectId(),
        "serialNumber": serial,
        "name": "Lathe",
        "isWorking": True,
        "maintenanceHistory": [],
    }
    document.update(overrides)
    return document


@pytest.fixture
def store() -> MongoMachineStore:
    store = MongoMachineStore(MagicMock(), "machinedata", "machinedatas", clock=lambda: FIXED_NOW)
    store.collection = Mock()
    return store


def test_list_all_converts_documents(store: MongoMachineStore) -> None:
    docs = [_document("SN1"), _document("SN2", isWorking=False)]
    store.collection.find = Mock(return_value=_AsyncCursor(docs))

    records = asyncio.run(store.list_all())

    assert [r.serial_number for r in records] == ["SN1", "SN2"]
    assert records[0].id == str(docs[0]["_id"])
    assert records[1].is_working is False


def test_list_all_tolerates_legacy_maintenance_entries(store: MongoMachineStore) -> None:
    docs = [_document("SN1", maintenanceHistory=[{"date": FIXED_NOW}, {"description": "Oiled"}])]
    store.collection.find = Mock(return_value=_AsyncCursor(docs))

    records = asyncio.run(store.list_all())

    history = records[0].maintenance_history
    assert history[0].date == FIXED_NOW
    assert history[0].description is None
    assert history[1].description == "Oiled"


def test_find_by_key_queries_serial_number(store: MongoMachineStore) -> None:
    store.collection.find_one = AsyncMock(return_value=None)

    assert asyncio.run(store.find_by_key("SN1")) is None
    store.collection.find_one.assert_awaited_once_with({"serialNumber": "SN1"})


def test_insert_returns_record_with_inserted_id(store: MongoMachineStore) -> None:
    inserted_id = ObjectId()
    store.collection.insert_one = AsyncMock(return_value=Mock(inserted_id=inserted_id))

    record = asyncio.run(
        store.insert(MachineRecord(serial_number="SN1", name="Lathe", is_working=True))
    )

    assert record.id == str(inserted_id)
    document = store.collection.insert_one.await_args.args[0]
    assert document["serialNumber"] == "SN1"
    assert document["isWorking"] is True
    assert document["maintenanceHistory"] == []
    assert "specifications" not in document


def test_insert_duplicate_raises_duplicate_error(store: MongoMachineStore) -> None:
    store.collection.insert_one = AsyncMock(side_effect=DuplicateKeyError("E11000 duplicate key"))

    with pytest.raises(DuplicateMachineError):
        asyncio.run(store.insert(MachineRecord(serial_number="SN1", name="Lathe", is_working=True)))


def test_update_status_sets_and_pushes_in_one_operation(store: MongoMachineStore) -> None:
    updated = _document(
        isWorking=False,
        maintenanceHistory=[{"date": FIXED_NOW, "description": "Machine is not working"}],
    )
    store.collection.find_one_and_update = AsyncMock(return_value=updated)

    record = asyncio.run(store.update_status("SN1", False))

    assert record.is_working is False
    assert record.maintenance_history[0].description == "Machine is not working"
    store.collection.find_one_and_update.assert_awaited_once_with(
        {"serialNumber": "SN1"},
        {
            "$set": {"isWorking": False},
            "$push": {
                "maintenanceHistory": {"date": FIXED_NOW, "description": "Machine is not working"}
            },
        },
        return_document=ReturnDocument.AFTER,
    )


def test_update_status_unknown_returns_none(store: MongoMachineStore) -> None:
    store.collection.find_one_and_update = AsyncMock(return_value=None)

    assert asyncio.run(store.update_status("NOPE", True)) is None


def test_delete_by_key(store: MongoMachineStore) -> None:
    store.collection.find_one_and_delete = AsyncMock(side_effect=[_document(), None])

    assert asyncio.run(store.delete_by_key("SN1")) is True
    assert asyncio.run(store.delete_by_key("SN1")) is False


@pytest.mark.parametrize(
    ("method", "args", "collection_method"),
    [
        ("find_by_key", ("SN1",), "find_one"),
        ("update_status", ("SN1", True), "find_one_and_update"),
        ("delete_by_key", ("SN1",), "find_one_and_delete"),
    ],
)
def test_driver_errors_become_store_errors(
    store: MongoMachineStore,
    method: str,
    args: tuple,
    collection_method: str,
) -> None:
    setattr(
        store.collection,
        collection_method,
        AsyncMock(side_effect=ServerSelectionTimeoutError("no servers available")),
    )

    with pytest.raises(StoreAppError) as exc_info:
        asyncio.run(getattr(store, method)(*args))

    assert exc_info.value.code == "store_operation_failed"
    assert exc_info.value.details["operation"] == collection_method


def test_ensure_indexes_creates_unique_serial_number_index(store: MongoMachineStore) -> None:
    store.collection.create_index = AsyncMock(return_value="serialNumber_unique")

    asyncio.run(store.ensure_indexes())

    _, kwargs = store.collection.create_index.await_args
    assert kwargs["unique"] is True


def test_ping(store: MongoMachineStore) -> None:
    store.client.admin.command = AsyncMock(return_value={"ok": 1})
    assert asyncio.run(store.ping()) is True

    store.client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("down"))
    assert asyncio.run(store.ping()) is False


def test_close_closes_client(store: MongoMachineStore) -> None:
    store.client.close = AsyncMock()

    asyncio.run(store.close())

    store.client.close.assert_awaited_once()
