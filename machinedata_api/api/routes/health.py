from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

router = APIRouter(tags=["Health"])

WELCOME_MESSAGE = "Welcome to the Machine Data API"


@router.get("/", response_class=PlainTextResponse)
def welcome() -> str:
    return WELCOME_MESSAGE


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Returns a simple status response to verify the API is operational.
    Used by load balancers and monitoring systems to determine service health.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness check: 200 when the machine store answers a ping, else 503."""

    if await request.app.state.store.ping():
        return JSONResponse({"status": "ok"})
    return JSONResponse({"status": "unavailable"}, status_code=503)
