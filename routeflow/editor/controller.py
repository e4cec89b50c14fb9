"""
Editor Session - single source of truth for the route editor.

Coordinates, for the one route currently checked out:
- GraphStore: the working nodes/edges and the selection
- ConfigurationResolver: fills type defaults when a node is opened
- PersistenceSynchronizer: debounced autosave and flush on exit
- DragSession: live reordering while something is being dragged

The UI (canvas, config panel, route list) only talks to this class.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from routeflow.graph_analysis import FlowReport, analyze
from routeflow.graph_store import GraphStore
from routeflow.models import Edge, Node, Position, Route
from routeflow.node_types import DEFAULT_REGISTRY, NodeTypeRegistry
from routeflow.reorder import (
    MOVE_NODE,
    NEW_NODE,
    REORDER_COLUMN,
    REORDER_ITEM,
    DragPayload,
    DragSession,
)
from routeflow.resolver import ConfigurationResolver, append_item, remove_at, set_field, set_item_field
from routeflow.storage.protocol import RouteStorage
from routeflow.sync import DEFAULT_DELAY, PersistenceSynchronizer, SyncState

logger = logging.getLogger(__name__)


@dataclass
class EditorState:
    """Immutable snapshot of the editor for rendering."""
    route_id: Optional[str] = None
    selected_node_id: Optional[str] = None
    sync_state: SyncState = SyncState.IDLE
    node_count: int = 0
    edge_count: int = 0
    drag_kind: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


class EditorSession:
    """One open route in the editor."""

    def __init__(self, storage: RouteStorage, delay: float = DEFAULT_DELAY,
                 scheduler: Any = None, registry: Optional[NodeTypeRegistry] = None,
                 model_names: Optional[Callable[[], List[str]]] = None):
        self.registry = registry or DEFAULT_REGISTRY
        self.store = GraphStore(self.registry)
        self.sync = PersistenceSynchronizer(storage, self.store, delay=delay, scheduler=scheduler)
        self.resolver = ConfigurationResolver(self.store.update_node_data, self.registry)
        self._model_names = model_names or (lambda: [])
        self._drag: Optional[DragSession] = None
        self._drag_payload: Optional[DragPayload] = None
        self._drag_on_nodes = False

    # --- Session ---

    @property
    def route(self) -> Optional[Route]:
        return self.sync.route

    @property
    def is_open(self) -> bool:
        return self.sync.route is not None

    def open(self, route_id: str) -> Route:
        """Check out a route. Any previously open route is flushed first."""
        self.resolver.reset()
        self._drag = None
        return self.sync.open_route(route_id)

    def save(self) -> bool:
        return self.sync.save()

    def close(self) -> bool:
        """Flush pending edits and release the route. Safe to call twice."""
        self.resolver.reset()
        self._drag = None
        return self.sync.close()

    def handle_disconnect(self) -> bool:
        """
        The browser connection dropped. It may come back within the reconnect
        grace period, so the route stays checked out; pending edits are
        written now in case it does not.
        """
        return self.sync.save()

    def attach(self, client: Any) -> None:
        """
        Tie the session to a NiceGUI client: a dropped connection only
        flushes, deleting the client (after the reconnect timeout) closes.
        """
        client.on_disconnect(self.handle_disconnect)
        client.on_delete(self.close)

    # --- Selection and configuration ---

    @property
    def selected_node(self) -> Optional[Node]:
        return self.store.selected_node

    def select(self, node_id: Optional[str]) -> Optional[Node]:
        """Select a node (None closes the config panel) and fill its type defaults."""
        self.store.select(node_id)
        node = self.store.selected_node
        self.resolver.sync(node)
        return self.store.selected_node

    def _update_selected(self, compute: Callable[[Dict[str, Any]], Dict[str, Any]]) -> bool:
        node = self.store.selected_node
        if node is None or not self.is_open:
            return False
        new_data = compute(node.data)
        if new_data is node.data or new_data == node.data:
            return False
        return self.store.update_node_data(node.id, new_data)

    def set_field(self, key: str, value: Any) -> bool:
        return self._update_selected(lambda data: set_field(data, key, value))

    def append_field_item(self, key: str, name: str, field_type: str = "string") -> bool:
        """Add a body/query field. Blank names are ignored."""
        return self._update_selected(lambda data: append_item(data, key, {"name": name, "type": field_type}))

    def remove_field_item(self, key: str, index: int) -> bool:
        return self._update_selected(lambda data: remove_at(data, key, index))

    def set_field_item(self, key: str, index: int, item_field: str, value: Any) -> bool:
        return self._update_selected(lambda data: set_item_field(data, key, index, item_field, value))

    def fields_json(self, key: str) -> str:
        """The selected node's `key` list as pretty JSON, for the clipboard."""
        node = self.store.selected_node
        items = node.data.get(key) if node else None
        return json.dumps(items or [], indent=2, ensure_ascii=False)

    def validate_selected(self) -> List[str]:
        node = self.store.selected_node
        if node is None:
            return []
        return self.registry.validate(node.type, node.data)

    def model_names(self) -> List[str]:
        return self._model_names()

    # --- Canvas events ---

    def _require_open(self) -> None:
        if not self.is_open:
            raise RuntimeError("No route is open; graph edits would not be saved")

    def add_node(self, node_type: str, position: Optional[Position] = None) -> Node:
        self._require_open()
        return self.store.add_node(node_type, position)

    def delete_node(self, node_id: str, with_edges: bool = False) -> bool:
        """Remove a node. Its edges stay unless with_edges is set."""
        self._require_open()
        removed = self.store.remove_node(node_id)
        if removed and with_edges:
            self.store.remove_edges_of(node_id)
        return removed

    def delete_edge(self, edge_id: str) -> bool:
        self._require_open()
        return self.store.remove_edge(edge_id)

    def connect(self, source_id: str, target_id: str) -> Edge:
        self._require_open()
        return self.store.connect(source_id, target_id)

    def handle_drop(self, payload: DragPayload, position: Position) -> Optional[Node]:
        """Canvas drop: a palette entry creates a node, an existing node moves."""
        if payload.kind == NEW_NODE:
            return self.add_node(payload.node_type, position)
        if payload.kind == MOVE_NODE:
            self._require_open()
            self.store.move_node(payload.node_id, position)
            return self.store.get_node(payload.node_id)
        raise ValueError(f"'{payload.kind}' payloads are not dropped on the canvas")

    # --- Reordering ---

    def start_drag(self, payload: DragPayload, items: Optional[Sequence[Any]] = None) -> DragSession:
        """
        Begin a reorder drag over `items` (rows, columns). Without items the
        drag reorders the graph's nodes.
        """
        if payload.kind not in (REORDER_ITEM, REORDER_COLUMN):
            raise ValueError(f"'{payload.kind}' is not a reorder payload")
        self._drag_on_nodes = items is None
        source = self.store.nodes if items is None else items
        self._drag = DragSession(source, payload.index)
        self._drag_payload = payload
        return self._drag

    def hover(self, hover_index: int, extent_start: float, extent_end: float, pointer: float) -> bool:
        if self._drag is None:
            return False
        return self._drag.hover(hover_index, extent_start, extent_end, pointer)

    def end_drag(self) -> Tuple[int, int, List[Any]]:
        """Finish the drag. Returns (origin index, final index, final order)."""
        if self._drag is None:
            raise RuntimeError("No drag in progress")
        drag = self._drag
        self._drag = None
        self._drag_payload = None
        if self._drag_on_nodes:
            self.store.reorder_nodes(drag.origin_index, drag.drag_index)
        return drag.origin_index, drag.drag_index, drag.finish()

    # --- Read model ---

    def report(self) -> FlowReport:
        return analyze(self.store.snapshot())

    @property
    def state(self) -> EditorState:
        route = self.sync.route
        return EditorState(
            route_id=route.id if route else None,
            selected_node_id=self.store.selected_id,
            sync_state=self.sync.state,
            node_count=len(self.store.nodes),
            edge_count=len(self.store.edges),
            drag_kind=self._drag_payload.kind if self._drag_payload else None,
            warnings=self.report().messages(),
        )
