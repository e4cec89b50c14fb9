"""
Route storage for ROUTEFLOW.

Supports multiple storage backends:
- JsonRouteBackend: One JSON file per route (default)
- MemoryRouteBackend: In-process dict, nothing persisted
"""

from routeflow.storage.protocol import RouteStorage, RouteNotFoundError, StorageError
from routeflow.storage.json_backend import JsonRouteBackend
from routeflow.storage.memory_backend import MemoryRouteBackend
from routeflow.storage.factory import create_backend

__all__ = [
    'RouteStorage',
    'RouteNotFoundError',
    'StorageError',
    'JsonRouteBackend',
    'MemoryRouteBackend',
    'create_backend',
]
