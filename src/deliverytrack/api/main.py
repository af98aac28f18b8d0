"""Delivery Tracker API entry point.

This module provides the application instance for ASGI servers (uvicorn)
and a run() function for direct execution.
"""

import logging

from deliverytrack.api import create_app
from deliverytrack.core.settings import get_settings

logger = logging.getLogger(__name__)

# What uvicorn references: deliverytrack.api.main:app
app = create_app()


def run() -> None:
    """Run the API server using uvicorn.

    Called by the deliverytrack-api console script defined in pyproject.toml.
    """
    import uvicorn

    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger.info("Starting %s API on %s:%d", settings.app_name, settings.api_host, settings.api_port)

    uvicorn.run(
        "deliverytrack.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


if __name__ == "__main__":
    run()
