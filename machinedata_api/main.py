import uvicorn

from machinedata_api.core.app_factory import create_app
from machinedata_api.core.config import settings

app = create_app()


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    uvicorn.run(
        "machinedata_api.main:app",
        host=settings.app.host,
        port=settings.app.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
