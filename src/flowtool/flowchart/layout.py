"""Auto-layout for the process graph and the module grid."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .model import Edge, Node, NodeKind, Position, Side

GAP = 100

GRID_COLUMNS = 3
GRID_GAP_X = 400
GRID_GAP_Y = 320


@dataclass(frozen=True)
class NodeSize:
    width: float
    height: float


DEFAULT_SIZE = NodeSize(240, 100)

NODE_DIMENSIONS: Dict[str, NodeSize] = {
    NodeKind.SITUATION.value: NodeSize(240, 100),
    NodeKind.ACTION.value: NodeSize(240, 140),
    NodeKind.DECISION.value: NodeSize(220, 140),
    NodeKind.END.value: NodeSize(200, 100),
    NodeKind.MODULE.value: NodeSize(340, 250),
}


class FlowDirection(str, Enum):
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


_VERTICAL_SIDES = {Side.TOP.value, Side.BOTTOM.value}
_HORIZONTAL_SIDES = {Side.LEFT.value, Side.RIGHT.value}


def node_size(node: Node) -> NodeSize:
    return NODE_DIMENSIONS.get(node.type, DEFAULT_SIZE)


def detect_flow_direction(edges: Sequence[Edge]) -> FlowDirection:
    """Pick the direction the existing routing already suggests.

    An edge counts as vertical if either end uses a top/bottom handle and as
    horizontal if either end uses left/right (it can count as both).
    Vertical wins ties, including when there are no edges.
    """
    vertical = 0
    horizontal = 0
    for edge in edges:
        sides = {edge.source_handle or "", edge.target_handle or ""}
        if sides & _VERTICAL_SIDES:
            vertical += 1
        if sides & _HORIZONTAL_SIDES:
            horizontal += 1
    return FlowDirection.HORIZONTAL if horizontal > vertical else FlowDirection.VERTICAL


def _adjacency(
    nodes: Sequence[Node], edges: Sequence[Edge]
) -> Tuple[Dict[str, List[str]], Dict[str, List[str]]]:
    outgoing: Dict[str, List[str]] = {node.id: [] for node in nodes}
    incoming: Dict[str, List[str]] = {node.id: [] for node in nodes}
    for edge in edges:
        if edge.target not in incoming:
            continue
        # An edge from an unknown node still keeps its target from being a root.
        incoming[edge.target].append(edge.source)
        if edge.source in outgoing:
            outgoing[edge.source].append(edge.target)
    return outgoing, incoming


def _back_edges(roots: Sequence[str], outgoing: Dict[str, List[str]]) -> Set[Tuple[str, str]]:
    """Edges that close a cycle during a depth-first walk from the roots."""
    back: Set[Tuple[str, str]] = set()
    visited: Set[str] = set()
    on_stack: Set[str] = set()
    for root in roots:
        if root in visited:
            continue
        visited.add(root)
        on_stack.add(root)
        stack = [(root, iter(outgoing.get(root, [])))]
        while stack:
            node_id, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                on_stack.discard(node_id)
                continue
            if child in on_stack:
                back.add((node_id, child))
            elif child not in visited:
                visited.add(child)
                on_stack.add(child)
                stack.append((child, iter(outgoing.get(child, []))))
    return back


def assign_layers(nodes: Sequence[Node], edges: Sequence[Edge]) -> Dict[str, int]:
    """Rank nodes by longest path from the roots.

    Roots are nodes with no incoming edge, counting edges from unknown nodes.
    Layers are raised by breadth-first relaxation along outgoing edges. Edges
    that close a cycle are ignored, so the relaxation runs on an acyclic graph
    and terminates. Nodes that never receive a layer (unreachable from a root
    or on a rootless cycle) get 0.
    """
    outgoing, incoming = _adjacency(nodes, edges)
    roots = [node.id for node in nodes if not incoming[node.id]]
    skipped = _back_edges(roots, outgoing)

    layers: Dict[str, int] = {root: 0 for root in roots}
    queue = deque(roots)

    while queue:
        node_id = queue.popleft()
        current = layers.get(node_id, 0)
        for target in outgoing[node_id]:
            if (node_id, target) in skipped:
                continue
            existing = layers.get(target)
            if existing is None or existing < current + 1:
                layers[target] = current + 1
                queue.append(target)

    for node in nodes:
        layers.setdefault(node.id, 0)
    return layers


def layout_process_nodes(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    *,
    gap: float = GAP,
    direction: Optional[FlowDirection] = None,
) -> List[Node]:
    """Return copies of ``nodes`` arranged in layers.

    The primary axis advances between layers (x when horizontal, y when
    vertical); the secondary axis spreads nodes within a layer, centred on
    zero, in their original order.
    """
    if not nodes:
        return list(nodes)

    direction = direction or detect_flow_direction(edges)
    horizontal = direction == FlowDirection.HORIZONTAL
    layers = assign_layers(nodes, edges)

    grouped: Dict[int, List[Node]] = {}
    for node in nodes:
        grouped.setdefault(layers[node.id], []).append(node)

    positions: Dict[str, Position] = {}
    primary = 0.0
    for layer in sorted(grouped):
        members = grouped[layer]
        sizes = [node_size(node) for node in members]
        primary_sizes = [size.width if horizontal else size.height for size in sizes]
        secondary_sizes = [size.height if horizontal else size.width for size in sizes]

        total = sum(secondary_sizes) + gap * (len(members) - 1)
        secondary = -total / 2
        for node, extent in zip(members, secondary_sizes):
            if horizontal:
                positions[node.id] = Position(x=primary, y=secondary)
            else:
                positions[node.id] = Position(x=secondary, y=primary)
            secondary += extent + gap

        primary += max(primary_sizes) + gap

    return [
        node.model_copy(update={"position": positions.get(node.id, node.position)})
        for node in nodes
    ]


def layout_grid(
    nodes: Sequence[Node],
    *,
    columns: int = GRID_COLUMNS,
    gap_x: float = GRID_GAP_X,
    gap_y: float = GRID_GAP_Y,
) -> List[Node]:
    """Re-tile ``nodes`` row-major in their current order."""
    return [
        node.model_copy(
            update={"position": Position(x=(idx % columns) * gap_x, y=(idx // columns) * gap_y)}
        )
        for idx, node in enumerate(nodes)
    ]
