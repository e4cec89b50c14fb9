"""
In-memory route storage.

Used for tests and for throwaway sessions (storage_backend = "memory").
Stored routes are deep-copied in and out so callers can never alias them.
"""

import copy
import logging
from typing import Dict, List

from routeflow.models import Route
from routeflow.storage.protocol import RouteNotFoundError

logger = logging.getLogger(__name__)


class MemoryRouteBackend:
    
    def __init__(self):
        self._routes: Dict[str, Route] = {}
        self.write_count = 0
    
    @property
    def backend_type(self) -> str:
        return "memory"
    
    def get_route(self, route_id: str) -> Route:
        route = self._routes.get(route_id)
        if route is None:
            raise RouteNotFoundError(route_id)
        return copy.deepcopy(route)
    
    def update_route(self, route: Route) -> None:
        self._routes[route.id] = copy.deepcopy(route)
        self.write_count += 1
    
    def list_routes(self) -> List[Route]:
        return [copy.deepcopy(r) for r in self._routes.values()]
    
    def delete_route(self, route_id: str) -> bool:
        return self._routes.pop(route_id, None) is not None
    
    def set_order(self, route_ids: List[str]) -> None:
        ordered = {rid: self._routes[rid] for rid in route_ids if rid in self._routes}
        for rid, route in self._routes.items():
            ordered.setdefault(rid, route)
        self._routes = ordered
