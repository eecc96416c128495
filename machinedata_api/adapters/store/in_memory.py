"""Process-local machine store.

Each coroutine runs without awaiting, so every operation is atomic with
respect to the event loop. Contents are lost on restart.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from bson import ObjectId

from machinedata_api.adapters.store.base import AbstractMachineStore
from machinedata_api.core.errors import DuplicateMachineError
from machinedata_api.schemas.machine import MachineRecord, MaintenanceEntry


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryMachineStore(AbstractMachineStore):
    """Dictionary-backed store keyed by serial number.

    Records are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._records: dict[str, MachineRecord] = {}

    async def list_all(self) -> list[MachineRecord]:
        return [record.model_copy(deep=True) for record in self._records.values()]

    async def find_by_key(self, serial_number: str) -> MachineRecord | None:
        record = self._records.get(serial_number)
        return record.model_copy(deep=True) if record else None

    async def insert(self, record: MachineRecord) -> MachineRecord:
        if record.serial_number in self._records:
            raise DuplicateMachineError(
                code="duplicate_serial_number",
                message="Machine data with this serial number already exists",
                details={"serial_number": record.serial_number, "operation": "insert"},
            )
        stored = record.model_copy(deep=True, update={"id": str(ObjectId())})
        self._records[stored.serial_number] = stored
        return stored.model_copy(deep=True)

    async def update_status(self, serial_number: str, is_working: bool) -> MachineRecord | None:
        record = self._records.get(serial_number)
        if record is None:
            return None
        record.is_working = is_working
        record.maintenance_history.append(MaintenanceEntry.for_status(is_working, self._clock()))
        return record.model_copy(deep=True)

    async def delete_by_key(self, serial_number: str) -> bool:
        return self._records.pop(serial_number, None) is not None
