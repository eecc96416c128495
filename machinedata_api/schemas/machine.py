"""Pydantic schemas for machine data requests, responses and stored records.

JSON field names are camelCase (``serialNumber``, ``isWorking``, ...) to match
the documents kept in the store; Python attributes stay snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

WORKING_DESCRIPTION = "Machine is now Working"
NOT_WORKING_DESCRIPTION = "Machine is not working"


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases and accepting either naming."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Specifications(CamelModel):
    """Free-form physical specifications of a machine."""

    weight: float | None = Field(default=None, description="Weight of the machine.")
    dimensions: str | None = Field(default=None, description="Dimensions, e.g. '2x1x1.5 m'.")


class MaintenanceEntry(CamelModel):
    """One line of a machine's maintenance log. Never edited once appended.

    Both fields are optional: entries written by older clients may lack either.
    """

    date: datetime | None = Field(default=None, description="When the entry was recorded.")
    description: str | None = Field(default=None, description="What happened.")

    @classmethod
    def for_status(cls, is_working: bool, at: datetime) -> "MaintenanceEntry":
        """Build the entry recorded when a machine's working status is set."""
        description = WORKING_DESCRIPTION if is_working else NOT_WORKING_DESCRIPTION
        return cls(date=at, description=description)


class MachineRecord(CamelModel):
    """A machine as persisted in the document store."""

    id: str | None = Field(
        default=None,
        alias="_id",
        description="Store-assigned identifier.",
    )
    serial_number: str = Field(..., description="Business key used for lookup, update and delete.")
    name: str = Field(..., description="Display label.")
    is_working: bool = Field(..., description="Current operational status.")
    specifications: Specifications | None = Field(default=None)
    maintenance_history: list[MaintenanceEntry] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        # Mongo hands back bson ObjectId instances.
        return None if value is None else str(value)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "MachineRecord":
        """Build a record from a raw store document."""
        return cls.model_validate(document)

    def to_document(self) -> dict[str, Any]:
        """Serialize to a store document (without the store id)."""
        document = self.model_dump(by_alias=True, exclude={"id"})
        if document.get("specifications") is None:
            document.pop("specifications", None)
        document["maintenanceHistory"] = [
            {k: v for k, v in entry.items() if v is not None} for entry in document["maintenanceHistory"]
        ]
        return document


class MachineCreateRequest(CamelModel):
    """Body of ``POST /machinedata``."""

    serial_number: str = Field(..., min_length=1, description="Unique serial number.")
    name: str = Field(..., min_length=1, description="Display label.")
    is_working: bool = Field(..., description="Current operational status.")
    specifications: Specifications | None = Field(default=None)
    maintenance_history: list[MaintenanceEntry] = Field(default_factory=list)

    def to_record(self) -> MachineRecord:
        return MachineRecord(
            serial_number=self.serial_number,
            name=self.name,
            is_working=self.is_working,
            specifications=self.specifications,
            maintenance_history=self.maintenance_history,
        )


class MachineStatusUpdateRequest(CamelModel):
    """Body of ``PUT /machinedata/{serialNumber}``."""

    is_working: bool = Field(..., description="New operational status.")


class MachineListResponse(CamelModel):
    machine_data: list[MachineRecord]


class MachineCreatedResponse(CamelModel):
    message: str
    machine_data: MachineRecord


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
