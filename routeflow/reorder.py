"""
Drag-to-reorder for ordered collections.

Used by every reorder interaction in the editor: route list rows, table
columns and the node z-order of a graph.

- move(): pure index mutation (remove at one index, reinsert at another)
- DragSession: live reordering during a drag with midpoint hysteresis
- DragPayload: the opaque payload carried by the drag transport
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Payload kinds understood by the editor
REORDER_ITEM = "reorder-item"
REORDER_COLUMN = "reorder-column"
NEW_NODE = "new-node"
MOVE_NODE = "move-node"

PAYLOAD_KINDS = frozenset([REORDER_ITEM, REORDER_COLUMN, NEW_NODE, MOVE_NODE])


def move(sequence: Sequence[T], from_index: int, to_index: int) -> List[T]:
    """
    Return a new list with the element at from_index reinserted at to_index.

    All other elements keep their relative order. Both indices must lie in
    0..len-1; moving an element onto itself returns an unchanged copy.
    """
    items = list(sequence)
    length = len(items)
    if not 0 <= from_index < length:
        raise IndexError(f"from_index {from_index} out of range for length {length}")
    if not 0 <= to_index < length:
        raise IndexError(f"to_index {to_index} out of range for length {length}")
    if from_index == to_index:
        return items

    item = items.pop(from_index)
    items.insert(to_index, item)
    return items


def crossed_midpoint(drag_index: int, hover_index: int,
                     extent_start: float, extent_end: float,
                     pointer: float) -> bool:
    """
    Midpoint rule for a hover over another element.

    The pointer is measured relative to the hovered element's start. Moving
    forward (drag_index < hover_index) only counts once the pointer is past
    the element's midpoint; moving backward only once it is before it.
    """
    if drag_index == hover_index:
        return False

    middle = (extent_end - extent_start) / 2
    offset = pointer - extent_start

    if drag_index < hover_index and offset < middle:
        return False
    if drag_index > hover_index and offset > middle:
        return False
    return True


@dataclass
class DragPayload:
    """What is being dragged. Only the fields relevant to `kind` are set."""
    kind: str
    index: Optional[int] = None
    node_type: Optional[str] = None
    node_id: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DragPayload":
        kind = raw.get("type")
        if kind not in PAYLOAD_KINDS:
            raise ValueError(f"Unknown drag payload type: {kind!r}")

        payload = cls(
            kind=kind,
            index=raw.get("index"),
            node_type=raw.get("nodeType"),
            node_id=raw.get("nodeId"),
        )
        if kind in (REORDER_ITEM, REORDER_COLUMN) and not isinstance(payload.index, int):
            raise ValueError(f"'{kind}' payload requires an integer index")
        if kind == NEW_NODE and not payload.node_type:
            raise ValueError("'new-node' payload requires nodeType")
        if kind == MOVE_NODE and not payload.node_id:
            raise ValueError("'move-node' payload requires nodeId")
        return payload

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.kind}
        if self.index is not None:
            out["index"] = self.index
        if self.node_type is not None:
            out["nodeType"] = self.node_type
        if self.node_id is not None:
            out["nodeId"] = self.node_id
        return out


class DragSession:
    """
    A drag in progress over one ordered collection.

    The collection is mutated live, once per qualifying hover event. After
    each accepted move the tracked index follows the dragged item so later
    hovers compare against its new position.
    """

    def __init__(self, items: Sequence[Any], drag_index: int):
        if not 0 <= drag_index < len(items):
            raise IndexError(f"drag_index {drag_index} out of range for length {len(items)}")
        self.items: List[Any] = list(items)
        self.drag_index = drag_index
        self.origin_index = drag_index
        self.moves = 0

    @property
    def dragged(self) -> Any:
        return self.items[self.drag_index]

    def hover(self, hover_index: int, extent_start: float, extent_end: float,
              pointer: float) -> bool:
        """Process one hover event. Returns True if the collection changed."""
        if not crossed_midpoint(self.drag_index, hover_index, extent_start, extent_end, pointer):
            return False

        self.items = move(self.items, self.drag_index, hover_index)
        logger.debug(f"Drag moved item {self.drag_index} -> {hover_index}")
        self.drag_index = hover_index
        self.moves += 1
        return True

    def finish(self) -> List[Any]:
        """End the drag and return the final order."""
        return list(self.items)
