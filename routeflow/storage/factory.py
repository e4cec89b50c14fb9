"""
Backend Factory for ROUTEFLOW.

Creates the route storage backend named in the application config.
"""

import logging
from typing import TYPE_CHECKING

from routeflow.config import AppConfig
from routeflow.storage.json_backend import JsonRouteBackend
from routeflow.storage.memory_backend import MemoryRouteBackend

if TYPE_CHECKING:
    from routeflow.storage.protocol import RouteStorage

logger = logging.getLogger(__name__)

BACKEND_TYPES = ("json", "memory")


def create_backend(config: AppConfig) -> "RouteStorage":
    """
    Create a storage backend instance for the configured project.
    
    Args:
        config: Application config (storage_backend, data_dir, project)
        
    Returns:
        RouteStorage instance (JsonRouteBackend or MemoryRouteBackend)
    """
    backend_type = config.storage_backend
    
    if backend_type == "memory":
        return MemoryRouteBackend()
    if backend_type != "json":
        logger.warning(f"Unknown storage backend '{backend_type}', falling back to json")
    
    return JsonRouteBackend(config.project_path)
