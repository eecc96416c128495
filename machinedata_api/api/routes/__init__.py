from __future__ import annotations

from machinedata_api.api.routes.health import router as health_router
from machinedata_api.api.routes.machine_data import router as machine_data_router

__all__ = ["health_router", "machine_data_router"]
