"""
Configuration resolver.

Keeps a node's data consistent with its type schema without discarding edits.

Two kinds of update exist and must not be mixed:
  - resolve(): defaults merged UNDER the existing data. Runs when a node is
    opened for configuration or its type changes.
  - set_field() and the array helpers: a plain shallow merge of one key.
    Field edits never re-derive defaults, or sibling fields being edited
    would be reset.

All helpers are pure: they return a new dict and copy any list they touch.
"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from routeflow.models import Node
from routeflow.node_types import DEFAULT_REGISTRY, NodeTypeRegistry

logger = logging.getLogger(__name__)


def resolve(node: Node, registry: Optional[NodeTypeRegistry] = None) -> Dict[str, Any]:
    """Type defaults overlaid with the node's current data. Existing values win."""
    defaults = (registry or DEFAULT_REGISTRY).defaults_for(node.type)
    return {**defaults, **node.data}


def needs_update(node: Node, registry: Optional[NodeTypeRegistry] = None) -> bool:
    return resolve(node, registry) != node.data


def set_field(data: Dict[str, Any], key: str, value: Any) -> Dict[str, Any]:
    return {**data, key: value}


def append_item(data: Dict[str, Any], key: str, item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Append `item` to the list at `key`.

    Items without a usable name are not a complete action yet; the data is
    returned unchanged.
    """
    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        return data
    items = list(data.get(key) or [])
    items.append(dict(item))
    return {**data, key: items}


def remove_at(data: Dict[str, Any], key: str, index: int) -> Dict[str, Any]:
    items = list(data.get(key) or [])
    if not 0 <= index < len(items):
        return data
    del items[index]
    return {**data, key: items}


def set_item_field(data: Dict[str, Any], key: str, index: int,
                   item_field: str, value: Any) -> Dict[str, Any]:
    """Edit one field of one list item (e.g. rename a body field)."""
    items = list(data.get(key) or [])
    if not 0 <= index < len(items):
        return data
    items[index] = {**items[index], item_field: value}
    return {**data, key: items}


class ConfigurationResolver:
    """
    Applies resolve() to the node being configured, at most once per
    (node id, node type) and only when the result actually differs.

    Without the equality guard every update would trigger another
    resolution of the same node, forever.
    """

    def __init__(self, on_update: Callable[[str, Dict[str, Any]], None],
                 registry: Optional[NodeTypeRegistry] = None):
        self._on_update = on_update
        self._registry = registry or DEFAULT_REGISTRY
        self._last_key: Optional[Tuple[str, str]] = None
        self.updates_issued = 0

    def reset(self) -> None:
        self._last_key = None

    def sync(self, node: Optional[Node]) -> bool:
        """Run resolution for `node` if its identity or type changed. True if an update was issued."""
        if node is None:
            self._last_key = None
            return False

        key = (node.id, node.type)
        if key == self._last_key:
            return False
        self._last_key = key

        resolved = resolve(node, self._registry)
        if resolved == node.data:
            return False

        logger.debug(f"Filling defaults for node {node.id} ({node.type})")
        self._on_update(node.id, resolved)
        self.updates_issued += 1
        return True
