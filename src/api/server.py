"""Run the API with uvicorn."""

import uvicorn

from src.api.app import create_app
from src.config import get_settings


def run() -> None:
    """Entry point for `subtrack-api` and `python -m src.api`."""
    settings = get_settings()
    uvicorn.run(
        create_app(),
        host=settings.api.host,
        port=settings.api.port,
        log_level=settings.app.log_level.lower(),
    )


if __name__ == "__main__":
    run()
