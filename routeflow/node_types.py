"""
Node type registry for ROUTEFLOW.

Every node in a route flow carries a `type` tag and an open `data` mapping.
The tag decides which keys `data` must contain; this module owns that schema.

Each known tag maps to a typed dataclass variant (UrlData, AuthData, ...).
Tags we don't know degrade to UnknownNodeData, which only guarantees a label
and carries everything else untouched. The registry is built once and maps a
tag to a NodeTypeSpec bundling the behaviour for that tag:
  - defaults(): canonical data for a freshly created node
  - validate(): values outside the choices the config panel offers
  - parse() / dump(): convert between the wire mapping and the variant

Wire keys keep the camelCase names used in stored flows (queryFields,
tokenVar, ...); the dataclass attributes are snake_case and carry their wire
key in field metadata.
"""

import copy
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type


def wire(key: str, default: Any = None, factory=None):
    """Dataclass field bound to a wire key."""
    if factory is not None:
        return field(default_factory=factory, metadata={"key": key})
    return field(default=default, metadata={"key": key})


def label_for(tag: str) -> str:
    """'db-find' -> 'Db find'. Capitalize the first letter, hyphens become spaces."""
    return tag[:1].upper() + tag[1:].replace("-", " ")


@dataclass
class NodeData:
    """Common base: every node has a label, and may carry user-added keys."""
    label: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class VariableData(NodeData):
    name: str = wire("name", "")
    var_type: str = wire("type", "string")
    default_value: str = wire("defaultValue", "")


@dataclass
class UrlData(NodeData):
    method: str = wire("method", "GET")
    path: str = wire("path", "")
    fields: List[Dict[str, Any]] = wire("fields", factory=list)
    query_fields: List[Dict[str, Any]] = wire("queryFields", factory=list)


@dataclass
class AuthData(NodeData):
    auth_type: str = wire("authType", "bearer")
    token_var: str = wire("tokenVar", "")


@dataclass
class OutputData(NodeData):
    output_type: str = wire("outputType", "definition")
    status_code: Any = wire("statusCode", 200)
    fields: List[Dict[str, Any]] = wire("fields", factory=list)
    response_raw: str = wire("responseRaw", "")


@dataclass
class LogicData(NodeData):
    code: str = wire("code", "")


@dataclass
class DbFindData(NodeData):
    """Used by both db-find and db-query."""
    model: str = wire("model", "")
    operation: str = wire("operation", "findMany")
    query: str = wire("query", "")
    result_var: str = wire("resultVar", "result")


@dataclass
class DbInsertData(NodeData):
    model: str = wire("model", "")
    variables: str = wire("variables", "")
    result_var: str = wire("resultVar", "result")


@dataclass
class DbUpdateData(NodeData):
    """Used by both db-update and db-delete."""
    model: str = wire("model", "")
    id_field: str = wire("idField", "id")
    variables: str = wire("variables", "")
    result_var: str = wire("resultVar", "result")


@dataclass
class UnknownNodeData(NodeData):
    """Fallback for tags the registry doesn't know."""


HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
AUTH_TYPES = ("bearer", "basic", "jwt")
OUTPUT_TYPES = ("definition", "mockup")
DB_OPERATIONS = ("findMany", "findOne", "findFirst")
VARIABLE_TYPES = ("string", "number", "boolean", "object", "array")
FIELD_TYPES = ("string", "number", "boolean", "date", "object", "array")

# Keys holding lists of {name, type, validation?} items
ARRAY_KEYS = ("fields", "queryFields")


def _wire_fields(variant: Type[NodeData]):
    return [f for f in fields(variant) if "key" in f.metadata]


@dataclass(frozen=True)
class NodeTypeSpec:
    """Behaviour bundle for one node type tag."""
    tag: str
    variant: Type[NodeData]
    choices: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    @property
    def is_known(self) -> bool:
        return self.variant is not UnknownNodeData

    @property
    def required_keys(self) -> Tuple[str, ...]:
        return ("label",) + tuple(f.metadata["key"] for f in _wire_fields(self.variant))

    def defaults(self) -> Dict[str, Any]:
        """Canonical data for a new node of this type (a fresh copy every call)."""
        return self.dump(self.variant(label=label_for(self.tag)))

    def parse(self, data: Mapping[str, Any]) -> NodeData:
        """Build the typed variant from a wire mapping; unknown keys go to `extra`."""
        known = {}
        consumed = {"label"}
        for f in _wire_fields(self.variant):
            key = f.metadata["key"]
            consumed.add(key)
            if key in data:
                known[f.name] = copy.deepcopy(data[key])
        extra = {k: copy.deepcopy(v) for k, v in data.items() if k not in consumed}
        return self.variant(label=data.get("label", label_for(self.tag)), extra=extra, **known)

    def dump(self, node_data: NodeData) -> Dict[str, Any]:
        out: Dict[str, Any] = {"label": node_data.label}
        for f in _wire_fields(type(node_data)):
            out[f.metadata["key"]] = copy.deepcopy(getattr(node_data, f.name))
        for key, value in node_data.extra.items():
            out.setdefault(key, copy.deepcopy(value))
        return out

    def validate(self, data: Mapping[str, Any]) -> List[str]:
        """
        Report values the configuration panel would not offer.

        Never raises; an empty list means the data is acceptable. Missing
        keys are reported too, since resolve() should have filled them.
        """
        errors = []
        for key in self.required_keys:
            if key not in data:
                errors.append(f"{self.tag}: missing required key '{key}'")

        for key, allowed in self.choices.items():
            value = data.get(key)
            if value in (None, ""):
                continue
            if value not in allowed:
                errors.append(f"{self.tag}: '{key}' must be one of {', '.join(allowed)} (got {value!r})")

        if "statusCode" in self.required_keys and "statusCode" in data:
            if not _is_status_code(data["statusCode"]):
                errors.append(f"{self.tag}: 'statusCode' must be an HTTP status between 100 and 599")

        for key in ARRAY_KEYS:
            if key not in self.required_keys or key not in data:
                continue
            items = data[key]
            if not isinstance(items, list):
                errors.append(f"{self.tag}: '{key}' must be a list")
                continue
            for i, item in enumerate(items):
                if not isinstance(item, dict) or not str(item.get("name", "")).strip():
                    errors.append(f"{self.tag}: {key}[{i}] needs a name")
                elif item.get("type", "string") not in FIELD_TYPES:
                    errors.append(f"{self.tag}: {key}[{i}] has unknown type {item.get('type')!r}")
        return errors


def _is_status_code(value: Any) -> bool:
    # The panel writes raw input text back, so "404" is as valid as 404.
    try:
        code = int(value)
    except (TypeError, ValueError):
        return False
    return 100 <= code <= 599


class NodeTypeRegistry:
    """Immutable tag -> NodeTypeSpec lookup, built once at start-up."""

    def __init__(self, specs: Iterable[NodeTypeSpec]):
        self._specs = MappingProxyType({spec.tag: spec for spec in specs})

    def tags(self) -> List[str]:
        return list(self._specs.keys())

    def is_known(self, tag: str) -> bool:
        return tag in self._specs

    def get(self, tag: str) -> NodeTypeSpec:
        """Spec for `tag`; unknown tags get a label-only fallback spec."""
        spec = self._specs.get(tag)
        if spec is None:
            return NodeTypeSpec(tag=tag, variant=UnknownNodeData)
        return spec

    def defaults_for(self, tag: str) -> Dict[str, Any]:
        return self.get(tag).defaults()

    def parse(self, tag: str, data: Mapping[str, Any]) -> NodeData:
        return self.get(tag).parse(data)

    def validate(self, tag: str, data: Mapping[str, Any]) -> List[str]:
        return self.get(tag).validate(data)


def build_default_registry() -> NodeTypeRegistry:
    db_choices = {"operation": DB_OPERATIONS}
    return NodeTypeRegistry([
        NodeTypeSpec("auth", AuthData, {"authType": AUTH_TYPES}),
        NodeTypeSpec("url", UrlData, {"method": HTTP_METHODS}),
        NodeTypeSpec("output", OutputData, {"outputType": OUTPUT_TYPES}),
        NodeTypeSpec("logic", LogicData),
        NodeTypeSpec("variable", VariableData, {"type": VARIABLE_TYPES}),
        NodeTypeSpec("db-find", DbFindData, db_choices),
        NodeTypeSpec("db-insert", DbInsertData),
        NodeTypeSpec("db-update", DbUpdateData),
        NodeTypeSpec("db-delete", DbUpdateData),
        NodeTypeSpec("db-query", DbFindData, db_choices),
    ])


DEFAULT_REGISTRY = build_default_registry()

NODE_TYPES = tuple(DEFAULT_REGISTRY.tags())


def defaults_for(tag: str, registry: Optional[NodeTypeRegistry] = None) -> Dict[str, Any]:
    """Canonical default data for a new node of type `tag`. Pure and total."""
    return (registry or DEFAULT_REGISTRY).defaults_for(tag)
