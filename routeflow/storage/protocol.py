"""
RouteStorage Protocol Definition.

This module defines the interface the persistence synchronizer writes
through. Both JsonRouteBackend (local files) and MemoryRouteBackend conform
to this protocol.
"""

from typing import List, Protocol, runtime_checkable

from routeflow.models import Route


class StorageError(Exception):
    """A route record exists but could not be read or written."""


class RouteNotFoundError(KeyError):
    """No route with the requested id."""

    def __init__(self, route_id: str):
        super().__init__(route_id)
        self.route_id = route_id

    def __str__(self) -> str:
        return f"Route not found: {self.route_id}"


@runtime_checkable
class RouteStorage(Protocol):
    """
    Abstract protocol for route storage backends.
    
    Routes are written wholesale: update_route replaces the stored record,
    including its flow data. There is no partial or delta write.
    """
    
    @property
    def backend_type(self) -> str:
        """Return the backend type identifier ('json' or 'memory')."""
        ...
    
    def get_route(self, route_id: str) -> Route:
        """
        Load one route.
        
        Raises:
            RouteNotFoundError: if no route has this id
        """
        ...
    
    def update_route(self, route: Route) -> None:
        """
        Insert or replace a route, keyed by route.id.
        
        Calling it twice with the same route leaves storage unchanged.
        """
        ...
    
    def list_routes(self) -> List[Route]:
        """All stored routes, in display order."""
        ...
    
    def delete_route(self, route_id: str) -> bool:
        """Delete a route. Returns False if it did not exist."""
        ...
    
    def set_order(self, route_ids: List[str]) -> None:
        """Persist the display order of routes (ids not listed keep their relative order after)."""
        ...
