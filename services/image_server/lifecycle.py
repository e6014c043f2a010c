"""
Where: services/image_server/lifecycle.py
What: Startup/shutdown orchestration for shared components.
Why: Keep main.py focused on app assembly while preserving lifecycle behavior.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from .bootstrap import build_components_from_config
from .config import ImageServerConfig

logger = logging.getLogger("image_server.main")


@asynccontextmanager
async def manage_lifespan(app: FastAPI, server_config: ImageServerConfig) -> AsyncIterator[None]:
    """
    Build components from configuration unless the app was created with them.

    Raises:
        ConfigurationError: invalid generator, storage or key configuration
    """
    if getattr(app.state, "components", None) is None:
        app.state.components = build_components_from_config(server_config)
        logger.info("Image server initialized from configuration.")

    try:
        yield
    finally:
        logger.info("Image server shutting down.")
