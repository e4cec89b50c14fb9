"""
JSON file Storage Backend for ROUTEFLOW.

Implements the RouteStorage protocol using one JSON file per route.

Structure:
- {project}/routes/{route_id}.json: Route record (flowData included)
- {project}/routes/_order.json: Display order of route ids
"""

import json
import logging
import re
from pathlib import Path
from typing import Dict, List, Union

from routeflow.models import Route
from routeflow.storage.protocol import RouteNotFoundError, StorageError

logger = logging.getLogger(__name__)

ORDER_FILENAME = "_order.json"

_SAFE_ID = re.compile(r'^[A-Za-z0-9_.-]+$')


class JsonRouteBackend:
    """Local file-based route storage."""
    
    def __init__(self, project_path: Union[str, Path]):
        """
        Initialize JsonRouteBackend for a project.
        
        Args:
            project_path: Path to the project folder
        """
        self.project_path = Path(project_path)
        self.routes_dir = self.project_path / "routes"
        self.routes_dir.mkdir(parents=True, exist_ok=True)
    
    @property
    def backend_type(self) -> str:
        return "json"
    
    def _route_path(self, route_id: str) -> Path:
        if not route_id or not _SAFE_ID.match(route_id) or route_id.startswith('_'):
            raise ValueError(f"Invalid route id for file storage: {route_id!r}")
        return self.routes_dir / f"{route_id}.json"
    
    def _read(self, path: Path) -> Route:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return Route.from_dict(json.load(f))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            # ValueError covers both bad JSON and bad UTF-8
            raise StorageError(f"Corrupt route file {path}: {e}") from e
    
    def get_route(self, route_id: str) -> Route:
        path = self._route_path(route_id)
        if not path.exists():
            raise RouteNotFoundError(route_id)
        return self._read(path)
    
    def update_route(self, route: Route) -> None:
        """Write the whole route record. Written to a temp file first, then renamed."""
        path = self._route_path(route.id)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(route.to_dict(), f, indent=2, ensure_ascii=False)
        tmp_path.replace(path)
        logger.info(f"Saved route {route.id} ({route.method} {route.url})")
    
    def _load_order(self) -> List[str]:
        order_path = self.routes_dir / ORDER_FILENAME
        if not order_path.exists():
            return []
        try:
            with open(order_path, "r", encoding="utf-8") as f:
                order = json.load(f)
            return [rid for rid in order if isinstance(rid, str)]
        except (ValueError, TypeError) as e:
            logger.warning(f"Ignoring unreadable route order file {order_path}: {e}")
            return []
    
    def list_routes(self) -> List[Route]:
        """Load all routes; ordered by _order.json, unlisted routes after, by name."""
        routes: Dict[str, Route] = {}
        for route_file in self.routes_dir.glob("*.json"):
            if route_file.name.startswith('_'):
                continue
            try:
                route = self._read(route_file)
                routes[route.id] = route
            except StorageError as e:
                logger.warning(f"Failed to load route file {route_file}: {e}")
        
        ordered = [routes.pop(rid) for rid in self._load_order() if rid in routes]
        ordered.extend(sorted(routes.values(), key=lambda r: (r.name, r.id)))
        return ordered
    
    def delete_route(self, route_id: str) -> bool:
        path = self._route_path(route_id)
        if not path.exists():
            return False
        path.unlink()
        return True
    
    def set_order(self, route_ids: List[str]) -> None:
        order_path = self.routes_dir / ORDER_FILENAME
        with open(order_path, "w", encoding="utf-8") as f:
            json.dump(list(route_ids), f, indent=2)
