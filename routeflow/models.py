"""
Data model for ROUTEFLOW.

Plain dataclasses with to_dict()/from_dict() converters. The dict form keeps
the key names of stored flow records (flowData, position {x, y}, source,
target, defaultValue, ...) so route files stay interchangeable with the
editor front-end.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "Position":
        raw = raw or {}
        return cls(x=raw.get("x", 0.0), y=raw.get("y", 0.0))


@dataclass
class Node:
    """One typed step of a route pipeline. `position` is presentational only."""
    id: str
    type: str
    position: Position = field(default_factory=Position)
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "position": self.position.to_dict(),
            "data": copy.deepcopy(self.data),
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Node":
        return cls(
            id=raw["id"],
            type=raw.get("type", ""),
            position=Position.from_dict(raw.get("position")),
            data=copy.deepcopy(raw.get("data") or {}),
        )


@dataclass
class Edge:
    """Directed link source -> target. No acyclicity or type rules at this layer."""
    id: str
    source: str
    target: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "source": self.source, "target": self.target}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Edge":
        source = raw["source"]
        target = raw["target"]
        edge_id = raw.get("id") or f"edge_{source}-{target}"
        return cls(id=edge_id, source=source, target=target)


@dataclass
class FlowData:
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.edges

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "FlowData":
        return cls(
            nodes=[Node.from_dict(n) for n in raw.get("nodes", [])],
            edges=[Edge.from_dict(e) for e in raw.get("edges", [])],
        )


@dataclass
class Route:
    """The persisted unit: an HTTP method/url pair plus an optional flow snapshot."""
    id: str
    name: str
    method: str = "GET"
    url: str = "/"
    flow_data: Optional[FlowData] = None

    def with_flow(self, flow: FlowData) -> "Route":
        """Copy of this route with flow_data replaced wholesale."""
        return Route(id=self.id, name=self.name, method=self.method, url=self.url,
                     flow_data=copy.deepcopy(flow))

    def to_dict(self) -> Dict[str, Any]:
        out = {"id": self.id, "name": self.name, "method": self.method, "url": self.url}
        if self.flow_data is not None:
            out["flowData"] = self.flow_data.to_dict()
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Route":
        flow = raw.get("flowData")
        return cls(
            id=raw["id"],
            name=raw.get("name", ""),
            method=raw.get("method", "GET"),
            url=raw.get("url", "/"),
            flow_data=FlowData.from_dict(flow) if flow is not None else None,
        )


# --- Project-level configuration objects (read by node config, not mutated by the core) ---

@dataclass
class ModelField:
    name: str
    type: str = "string"
    default_value: str = ""
    validation: str = ""
    mapping: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "name": self.name,
            "type": self.type,
            "defaultValue": self.default_value,
            "validation": self.validation,
        }
        if self.mapping is not None:
            out["mapping"] = self.mapping
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ModelField":
        return cls(
            name=raw["name"],
            type=raw.get("type", "string"),
            default_value=raw.get("defaultValue", ""),
            validation=raw.get("validation", ""),
            mapping=raw.get("mapping"),
        )


@dataclass
class Model:
    """A database schema model; db-* nodes reference it by name."""
    id: str
    name: str
    fields: List[ModelField] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "fields": [f.to_dict() for f in self.fields]}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Model":
        return cls(
            id=raw["id"],
            name=raw["name"],
            fields=[ModelField.from_dict(f) for f in raw.get("fields", [])],
        )


@dataclass
class RolePermissions:
    auth_required: bool = False
    routes: List[str] = field(default_factory=list)
    can_create_users: bool = False
    can_edit_users: bool = False
    can_delete_users: bool = False
    can_manage_roles: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "authRequired": self.auth_required,
            "routes": list(self.routes),
            "canCreateUsers": self.can_create_users,
            "canEditUsers": self.can_edit_users,
            "canDeleteUsers": self.can_delete_users,
            "canManageRoles": self.can_manage_roles,
        }

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "RolePermissions":
        raw = raw or {}
        return cls(
            auth_required=bool(raw.get("authRequired", False)),
            routes=list(raw.get("routes", [])),
            can_create_users=bool(raw.get("canCreateUsers", False)),
            can_edit_users=bool(raw.get("canEditUsers", False)),
            can_delete_users=bool(raw.get("canDeleteUsers", False)),
            can_manage_roles=bool(raw.get("canManageRoles", False)),
        )


@dataclass
class Role:
    id: str
    name: str
    slug: str
    permissions: RolePermissions = field(default_factory=RolePermissions)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "slug": self.slug,
                "permissions": self.permissions.to_dict()}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Role":
        return cls(
            id=raw["id"],
            name=raw["name"],
            slug=raw.get("slug", ""),
            permissions=RolePermissions.from_dict(raw.get("permissions")),
        )
