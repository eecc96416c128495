from __future__ import annotations

from abc import ABC, abstractmethod

from machinedata_api.schemas.machine import MachineRecord


class AbstractMachineStore(ABC):
	"""Interface for the single collection of machine records.

	Records are addressed by serial number, not by the store identifier.
	Implementations raise ``StoreAppError`` when the backend fails.
	"""

	@abstractmethod
	async def list_all(self) -> list[MachineRecord]:
		"""Return every record, in insertion order."""
		...

	@abstractmethod
	async def find_by_key(self, serial_number: str) -> MachineRecord | None:
		"""Return the record with the given serial number, if any."""
		...

	@abstractmethod
	async def insert(self, record: MachineRecord) -> MachineRecord:
		"""Persist a new record and return it with its store identifier.

		Raises:
			DuplicateMachineError: If the serial number is already stored.
		"""
		...

	@abstractmethod
	async def update_status(self, serial_number: str, is_working: bool) -> MachineRecord | None:
		"""Set the working status and append one maintenance entry atomically.

		Returns:
			The updated record, or None when no record matches.
		"""
		...

	@abstractmethod
	async def delete_by_key(self, serial_number: str) -> bool:
		"""Remove at most one matching record. Returns whether one was removed."""
		...

	async def ensure_indexes(self) -> None:
		"""Create backend indexes. No-op unless the backend needs them."""

	async def ping(self) -> bool:
		"""Return whether the backend is reachable."""
		return True

	async def close(self) -> None:
		"""Release backend resources."""
