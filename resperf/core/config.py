#!/usr/bin/env python3
"""
resperf Server Configuration Management

All settings have defaults so the server starts with an empty or missing
YAML file. Backend URLs point at the performance manager (Prometheus-like
query API) and the configuration manager (resource inventory REST API).
"""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel

logger = logging.getLogger("resperf.server")


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    # Backends
    performance_manager_url: str = "http://localhost:9090/api/v1"
    configuration_manager_url: str = "http://localhost:8080/cdim/api/v1"
    request_timeout: int = 10
    # Graph rendering
    default_locale: str = "en"
    display_timezone: str = "UTC"


def load_config_from(path: Optional[str]) -> ServerConfig:
    """Load server configuration from YAML file, falling back to defaults if it does not exist."""
    if not path or not Path(path).exists():
        logger.info("Using default configuration")
        return ServerConfig()

    logger.info(f"Loading configuration from: {path}")
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    return ServerConfig(**data)
