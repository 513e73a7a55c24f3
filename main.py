"""
Blog content gateway entrypoint.
Serves the health, metrics and cache-clear surfaces and runs background monitoring.
"""

import uvicorn
from loguru import logger

from blog_gateway.api import create_app
from blog_gateway.context import GatewayContext
from blog_gateway.settings import load_settings
from blog_gateway.utils import setup_logging


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)

    logger.info("Starting blog content gateway...")
    context = GatewayContext.create(settings)
    app = create_app(context)

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    logger.info("Blog content gateway stopped")


if __name__ == "__main__":
    main()
