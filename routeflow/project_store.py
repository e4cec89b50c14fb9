"""
Project store: models, roles, routes and settings of one project.

Constructed once at application start and passed to whoever needs it. The
route editor core only READS models (db-* nodes pick a model by name);
everything else here belongs to the surrounding pages.

Structure on disk (alongside the route files of the json backend):
- {project}/project.json: {"models": [...], "roles": [...], "defaultTablesShown": bool}
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Union

from routeflow.config import Settings
from routeflow.models import Model, Role, Route
from routeflow.reorder import DragSession, move
from routeflow.storage.protocol import RouteStorage

logger = logging.getLogger(__name__)

PROJECT_FILENAME = "project.json"


class ProjectStore:

    def __init__(self, storage: RouteStorage, settings: Optional[Settings] = None,
                 project_path: Optional[Union[str, Path]] = None):
        self.storage = storage
        self.settings = settings or Settings()
        self.project_path = Path(project_path) if project_path else None
        self._models: List[Model] = []
        self._roles: List[Role] = []
        self.default_tables_shown = False

    # --- File I/O ---

    def _project_file(self) -> Optional[Path]:
        if self.project_path is None:
            return None
        return self.project_path / PROJECT_FILENAME

    def load(self) -> None:
        """Load models and roles from project.json, if there is one."""
        path = self._project_file()
        if path is None or not path.exists():
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as e:
            logger.warning(f"Failed to load project file {path}: {e}")
            return
        self._models = [Model.from_dict(m) for m in data.get("models", [])]
        self._roles = [Role.from_dict(r) for r in data.get("roles", [])]
        self.default_tables_shown = bool(data.get("defaultTablesShown", False))

    def save(self) -> None:
        path = self._project_file()
        if path is None:
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "models": [m.to_dict() for m in self._models],
            "roles": [r.to_dict() for r in self._roles],
            "defaultTablesShown": self.default_tables_shown,
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    # --- Models ---

    @property
    def models(self) -> List[Model]:
        return list(self._models)

    def model_names(self) -> List[str]:
        """Names offered by the model select of db-* nodes."""
        return [m.name for m in self._models]

    def add_model(self, model: Model) -> None:
        self._models.append(model)
        self.save()

    def update_model(self, model: Model) -> bool:
        for i, existing in enumerate(self._models):
            if existing.id == model.id:
                self._models[i] = model
                self.save()
                return True
        return False

    # --- Roles ---

    @property
    def roles(self) -> List[Role]:
        return list(self._roles)

    def add_role(self, role: Role) -> None:
        self._roles.append(role)
        self.save()

    def update_role(self, role: Role) -> bool:
        for i, existing in enumerate(self._roles):
            if existing.id == role.id:
                self._roles[i] = role
                self.save()
                return True
        return False

    def delete_role(self, role_id: str) -> bool:
        before = len(self._roles)
        self._roles = [r for r in self._roles if r.id != role_id]
        if len(self._roles) == before:
            return False
        self.save()
        return True

    # --- Routes ---

    def list_routes(self) -> List[Route]:
        return self.storage.list_routes()

    def add_route(self, name: str, method: str, url: str) -> Route:
        """Create a route without flow data; the editor seeds it on first open."""
        route = Route(id=f"route_{uuid.uuid4().hex[:12]}", name=name, method=method.upper(), url=url)
        self.storage.update_route(route)
        logger.info(f"Created route {route.id}: {route.method} {route.url}")
        return route

    def update_route(self, route: Route) -> None:
        self.storage.update_route(route)

    def delete_route(self, route_id: str) -> bool:
        return self.storage.delete_route(route_id)

    def move_route(self, from_index: int, to_index: int) -> List[Route]:
        """Drag-reorder the route list and persist the new order."""
        routes = move(self.storage.list_routes(), from_index, to_index)
        self.storage.set_order([r.id for r in routes])
        return routes

    def start_route_drag(self, index: int) -> DragSession:
        """Begin dragging the route row at `index` over the current route order."""
        return DragSession(self.storage.list_routes(), index)

    def finish_route_drag(self, drag: DragSession) -> List[Route]:
        """Persist the order a row drag ended in. An unmoved drop writes nothing."""
        routes = drag.finish()
        if drag.origin_index != drag.drag_index:
            self.storage.set_order([r.id for r in routes])
            logger.info(f"Route order changed by drag: {drag.origin_index} -> {drag.drag_index}")
        return routes

    # --- Settings ---

    def update_settings(self, settings: Settings) -> None:
        self.settings = settings

    def set_default_tables_shown(self, shown: bool) -> None:
        self.default_tables_shown = shown
        self.save()

    def to_dict(self) -> Dict:
        return {
            "models": [m.to_dict() for m in self._models],
            "roles": [r.to_dict() for r in self._roles],
            "settings": self.settings.to_dict(),
            "defaultTablesShown": self.default_tables_shown,
        }
