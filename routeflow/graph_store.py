"""
Graph store: the working copy of ONE route's flow.

Owns the node/edge lists and the selection for the route currently open in
the editor. Exactly one route is checked out at a time; that rule lives in
the editor, not here.

Structural rules at this layer are deliberately loose:
- removing a node leaves its edges alone (callers remove them if they want)
- duplicate edges between the same pair are allowed
- any node may connect to any node
"""

import copy
import logging
import uuid
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from routeflow.models import Edge, FlowData, Node, Position
from routeflow.node_types import DEFAULT_REGISTRY, NodeTypeRegistry
from routeflow.reorder import move

logger = logging.getLogger(__name__)

Listener = Callable[["GraphStore"], None]


class SelectionState(Enum):
    NO_SELECTION = "no_selection"
    NODE_SELECTED = "node_selected"


def new_node_id() -> str:
    return f"node_{uuid.uuid4().hex}"


def new_edge_id() -> str:
    return f"edge_{uuid.uuid4().hex}"


class GraphStore:
    """Mutable node/edge collections plus single selection, with change listeners."""

    def __init__(self, registry: Optional[NodeTypeRegistry] = None):
        self._registry = registry or DEFAULT_REGISTRY
        self._nodes: List[Node] = []
        self._edges: List[Edge] = []
        self._selected_id: Optional[str] = None
        self._listeners: List[Listener] = []

    # --- Read access ---

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes)

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges)

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def selection_state(self) -> SelectionState:
        if self._selected_id is None:
            return SelectionState.NO_SELECTION
        return SelectionState.NODE_SELECTED

    @property
    def selected_node(self) -> Optional[Node]:
        if self._selected_id is None:
            return None
        return self.get_node(self._selected_id)

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        for edge in self._edges:
            if edge.id == edge_id:
                return edge
        return None

    def snapshot(self) -> FlowData:
        """Deep copy of the current graph, safe to hand to storage."""
        return FlowData(nodes=copy.deepcopy(self._nodes), edges=copy.deepcopy(self._edges))

    # --- Listeners ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # --- Mutations ---

    def load(self, flow: FlowData) -> None:
        """Replace the whole graph (route switch). Clears selection, does not notify."""
        self._nodes = copy.deepcopy(flow.nodes)
        self._edges = copy.deepcopy(flow.edges)
        self._selected_id = None

    def add_node(self, node_type: str, position: Optional[Position] = None) -> Node:
        node = Node(
            id=new_node_id(),
            type=node_type,
            position=position or Position(),
            data=self._registry.defaults_for(node_type),
        )
        self._nodes.append(node)
        logger.debug(f"Added {node_type} node {node.id}")
        self._notify()
        return node

    def remove_node(self, node_id: str) -> bool:
        """Remove a node. Incident edges are NOT removed."""
        before = len(self._nodes)
        self._nodes = [n for n in self._nodes if n.id != node_id]
        if len(self._nodes) == before:
            return False
        if self._selected_id == node_id:
            self._selected_id = None
        self._notify()
        return True

    def remove_edge(self, edge_id: str) -> bool:
        before = len(self._edges)
        self._edges = [e for e in self._edges if e.id != edge_id]
        if len(self._edges) == before:
            return False
        self._notify()
        return True

    def remove_edges_of(self, node_id: str) -> int:
        """Explicit cleanup of edges touching `node_id`. Returns how many were removed."""
        before = len(self._edges)
        self._edges = [e for e in self._edges if node_id not in (e.source, e.target)]
        removed = before - len(self._edges)
        if removed:
            self._notify()
        return removed

    def connect(self, source_id: str, target_id: str) -> Edge:
        edge = Edge(id=new_edge_id(), source=source_id, target=target_id)
        self._edges.append(edge)
        self._notify()
        return edge

    def update_node_data(self, node_id: str, partial: Dict[str, Any]) -> bool:
        """Shallow-merge `partial` into the node's data. No-op for unknown ids."""
        node = self.get_node(node_id)
        if node is None:
            return False
        node.data = {**node.data, **partial}
        self._notify()
        return True

    def move_node(self, node_id: str, position: Position) -> bool:
        """Position-only update from a canvas drag; data is untouched."""
        node = self.get_node(node_id)
        if node is None:
            return False
        node.position = Position(x=position.x, y=position.y)
        self._notify()
        return True

    def reorder_nodes(self, from_index: int, to_index: int) -> None:
        """Change z-order. Order carries no execution meaning."""
        if from_index == to_index:
            return
        self._nodes = move(self._nodes, from_index, to_index)
        self._notify()

    def select(self, node_id: Optional[str]) -> None:
        """Select a node, or pass None to clear. Selection is not graph data: no notify."""
        self._selected_id = node_id
