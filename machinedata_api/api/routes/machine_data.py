"""Machine data CRUD endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Request

from machinedata_api.schemas.machine import (
    ErrorResponse,
    MachineCreatedResponse,
    MachineCreateRequest,
    MachineListResponse,
    MachineRecord,
    MachineStatusUpdateRequest,
    MessageResponse,
)
from machinedata_api.services.machine_data_service import MachineDataService

router = APIRouter(prefix="/machinedata", tags=["Machine Data"])

SerialNumber = Annotated[str, Path(description="Serial number of the machine.")]

_error_responses = {
    400: {"model": ErrorResponse, "description": "Missing or invalid fields"},
    500: {"model": ErrorResponse, "description": "Store failure"},
}
_not_found_responses = {
    404: {"model": ErrorResponse, "description": "Machine data not found"},
    **_error_responses,
}


def get_machine_data_service(request: Request) -> MachineDataService:
    """Build the service over the store attached to the application."""
    return MachineDataService(request.app.state.store)


Service = Annotated[MachineDataService, Depends(get_machine_data_service)]


@router.get("", response_model=MachineListResponse, responses=_error_responses)
@router.get("/", response_model=MachineListResponse, include_in_schema=False)
async def list_machine_data(service: Service) -> MachineListResponse:
    """Return every machine record. No filtering, no pagination."""
    return MachineListResponse(machine_data=await service.list_machines())


@router.post(
    "",
    response_model=MachineCreatedResponse,
    responses={409: {"model": ErrorResponse, "description": "Serial number already exists"}, **_error_responses},
)
@router.post("/", response_model=MachineCreatedResponse, include_in_schema=False)
async def create_machine_data(payload: MachineCreateRequest, service: Service) -> MachineCreatedResponse:
    """Create a machine record.

    ``serialNumber``, ``name`` and ``isWorking`` are required; a missing one
    yields 400 and nothing is stored.
    """
    record = await service.create_machine(payload)
    return MachineCreatedResponse(message="Machine data created successfully", machine_data=record)


@router.get("/{serial_number}", response_model=MachineRecord, responses=_not_found_responses)
async def get_machine_data(serial_number: SerialNumber, service: Service) -> MachineRecord:
    return await service.get_machine(serial_number)


@router.put("/{serial_number}", response_model=MachineRecord, responses=_not_found_responses)
async def update_machine_status(
    serial_number: SerialNumber,
    payload: MachineStatusUpdateRequest,
    service: Service,
) -> MachineRecord:
    """Set the working status and append the matching maintenance entry.

    Returns the updated record itself, not wrapped.
    """
    return await service.update_status(serial_number, payload.is_working)


@router.delete("/{serial_number}", response_model=MessageResponse, responses=_not_found_responses)
async def delete_machine_data(serial_number: SerialNumber, service: Service) -> MessageResponse:
    await service.delete_machine(serial_number)
    return MessageResponse(message="Machine data deleted successfully")
