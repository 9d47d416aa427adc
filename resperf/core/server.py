#!/usr/bin/env python3
"""
resperf FastAPI application factory
"""

import logging
from typing import Optional

from fastapi import FastAPI

from .. import __version__
from ..api.performance_client import InventoryClient, PerformanceClient
from ..api.routes import create_graph_routes
from ..dashboard import DashboardController
from .config import ServerConfig

logger = logging.getLogger("resperf.server")


def create_app(config: ServerConfig, controller: Optional[DashboardController] = None) -> FastAPI:
    """Create the FastAPI app; `controller` replaces the backend-wired one (tests)."""
    if controller is None:
        performance = PerformanceClient(config.performance_manager_url, timeout=config.request_timeout)
        inventory = InventoryClient(config.configuration_manager_url, timeout=config.request_timeout)
        controller = DashboardController(performance, inventory, config)
        logger.info(
            f"Backends: performance={config.performance_manager_url} "
            f"configuration={config.configuration_manager_url}"
        )

    app = FastAPI(title="resperf", version=__version__)
    app.include_router(create_graph_routes(controller))
    return app
