#!/usr/bin/env python3
"""
Startup script for the LabWise API
"""
import logging
import sys

import uvicorn

from labwise.config import get_settings
from labwise.logging_config import setup_logging

logger = logging.getLogger("labwise.run")


def main():
    """Start the FastAPI application."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)

    logger.info(f"Starting {settings.app_name} Server")
    logger.info(f"Starting server on {settings.host}:{settings.port}")

    try:
        uvicorn.run(
            "labwise.main:app",
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
            access_log=True,
        )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
