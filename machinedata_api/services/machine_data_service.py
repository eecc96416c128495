"""Machine data service coordinating validation, persistence and logging.

The service owns the business rules that sit above the store:
- Serial numbers are unique; creating a duplicate is a conflict.
- Lookup, status update and delete address machines by serial number and
  report unknown serial numbers as not found.
- Every mutation is logged with the serial number it touched.

No state is held between calls; each operation reads the store afresh.
"""

from __future__ import annotations

import logging

from machinedata_api.adapters.store.base import AbstractMachineStore
from machinedata_api.core.errors import (
    ConflictAppError,
    DuplicateMachineError,
    NotFoundAppError,
)
from machinedata_api.schemas.machine import MachineCreateRequest, MachineRecord

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Machine data not found"
DUPLICATE_MESSAGE = "Machine data with this serial number already exists"


def _not_found(serial_number: str, operation: str) -> NotFoundAppError:
    return NotFoundAppError(
        code="machine_not_found",
        message=NOT_FOUND_MESSAGE,
        details={"serial_number": serial_number, "operation": operation},
    )


class MachineDataService:
    """Use cases for the machine data resource."""

    def __init__(self, store: AbstractMachineStore) -> None:
        self.store = store

    async def list_machines(self) -> list[MachineRecord]:
        records = await self.store.list_all()
        logger.debug("machine_data.listed", extra={"count": len(records)})
        return records

    async def get_machine(self, serial_number: str) -> MachineRecord:
        record = await self.store.find_by_key(serial_number)
        if record is None:
            raise _not_found(serial_number, "get")
        return record

    async def create_machine(self, payload: MachineCreateRequest) -> MachineRecord:
        """Persist a new machine.

        Args:
            payload: Validated creation body.

        Returns:
            MachineRecord: The stored record, including its store identifier.

        Raises:
            ConflictAppError: If the serial number is already taken.
            StoreAppError: If the store fails.
        """
        if await self.store.find_by_key(payload.serial_number) is not None:
            logger.warning(
                "machine_data.duplicate",
                extra={"serial_number": payload.serial_number},
            )
            raise ConflictAppError(
                code="duplicate_serial_number",
                message=DUPLICATE_MESSAGE,
                details={"serial_number": payload.serial_number, "operation": "create"},
            )

        try:
            record = await self.store.insert(payload.to_record())
        except DuplicateMachineError as exc:
            # Lost a race with a concurrent create of the same serial number.
            raise ConflictAppError(
                code=exc.code,
                message=DUPLICATE_MESSAGE,
                details=exc.details,
            ) from exc

        logger.info(
            "machine_data.created",
            extra={"serial_number": record.serial_number, "machine_id": record.id},
        )
        return record

    async def update_status(self, serial_number: str, is_working: bool) -> MachineRecord:
        """Set a machine's working status and log it in its maintenance history.

        Raises:
            NotFoundAppError: If no machine has this serial number.
            StoreAppError: If the store fails.
        """
        record = await self.store.update_status(serial_number, is_working)
        if record is None:
            raise _not_found(serial_number, "update_status")

        logger.info(
            "machine_data.status_updated",
            extra={
                "serial_number": serial_number,
                "is_working": is_working,
                "history_length": len(record.maintenance_history),
            },
        )
        return record

    async def delete_machine(self, serial_number: str) -> None:
        if not await self.store.delete_by_key(serial_number):
            raise _not_found(serial_number, "delete")
        logger.info("machine_data.deleted", extra={"serial_number": serial_number})
