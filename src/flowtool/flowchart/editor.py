"""In-memory editing session for one flow document.

Every public mutation addresses entities by ID, changes the document in place
and then notifies subscribers once. :meth:`FlowEditor.replace` swaps all
collections at once (load, new, clear) and re-synchronizes the identifier
allocators from the new content.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.exceptions import EdgeNotFoundError, NodeNotFoundError, SubModuleNotFoundError
from ..core.ids import DocumentIds
from ..utils.logging import get_logger
from .index import SubModuleIndex
from .layout import layout_grid, layout_process_nodes
from .model import (
    PROCESS_KINDS,
    ActionData,
    Edge,
    EdgeData,
    FlowDocument,
    LabelData,
    ModuleData,
    Node,
    NodeKind,
    Position,
    Status,
    SubModule,
    data_model_for,
)

logger = get_logger(__name__)

ChangeListener = Callable[[FlowDocument], None]

DEFAULT_NODE_DATA: Dict[str, Dict[str, Any]] = {
    NodeKind.SITUATION.value: {"label": "New situation"},
    NodeKind.ACTION.value: {"description": ""},
    NodeKind.DECISION.value: {"label": "New decision"},
    NodeKind.END.value: {"label": "End"},
    NodeKind.MODULE.value: {"label": "New module", "description": "", "submodules": []},
}

NEW_SUBMODULE_LABEL = "New sub-module"


class View(str, Enum):
    PROCESS = "process"
    MODULES = "modules"


def edge_id_for(
    source: str, target: str, source_handle: Optional[str], target_handle: Optional[str]
) -> str:
    return f"xy-edge__{source}{source_handle or ''}-{target}{target_handle or ''}"


class FlowEditor:
    """Owns the current document and its identifier allocators."""

    def __init__(self, document: Optional[FlowDocument] = None):
        self.document = document or FlowDocument()
        self.ids = DocumentIds()
        self.ids.resync_from(self.document)
        self._listeners: List[ChangeListener] = []

    # -------------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener(self.document)

    # -------------------------------------------------------------------------
    # Whole-document operations
    # -------------------------------------------------------------------------

    def replace(self, document: FlowDocument) -> None:
        self.document = document
        self.ids.resync_from(document)
        self._changed()

    def clear(self) -> None:
        self.replace(FlowDocument())

    def arrange(self, view: View = View.PROCESS) -> None:
        if view == View.PROCESS:
            process = self.document.process
            process.nodes = layout_process_nodes(process.nodes, process.edges)
            logger.debug("Arranged process graph", extra={"nodes": len(process.nodes)})
        else:
            modules = self.document.modules
            modules.nodes = layout_grid(modules.nodes)
            logger.debug("Arranged module grid", extra={"nodes": len(modules.nodes)})
        self._changed()

    def submodule_index(self) -> SubModuleIndex:
        return SubModuleIndex.build(self.document.modules.nodes)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _locate(self, node_id: str) -> Tuple[List[Node], Node]:
        for collection in (self.document.process.nodes, self.document.modules.nodes):
            for node in collection:
                if node.id == node_id:
                    return collection, node
        raise NodeNotFoundError(f"Node not found: {node_id}", {"node_id": node_id})

    def get_node(self, node_id: str) -> Node:
        return self._locate(node_id)[1]

    def _module_data(self, node_id: str) -> ModuleData:
        node = self.get_node(node_id)
        if not isinstance(node.data, ModuleData):
            raise NodeNotFoundError(f"Not a module node: {node_id}", {"node_id": node_id})
        return node.data

    def _submodule(self, module_id: str, submodule_id: str) -> SubModule:
        for submodule in self._module_data(module_id).submodules:
            if submodule.id == submodule_id:
                return submodule
        raise SubModuleNotFoundError(
            f"Sub-module not found: {submodule_id}",
            {"module_id": module_id, "submodule_id": submodule_id},
        )

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    def add_node(self, kind: str, position: Optional[Position] = None) -> Node:
        """Create a node of ``kind`` with its default data.

        Module nodes go to the module graph, everything else to the process
        graph.
        """
        raw = DEFAULT_NODE_DATA.get(kind, {"label": kind})
        node = Node(
            id=self.ids.next_node_id(),
            type=kind,
            position=position or Position(),
            data=data_model_for(kind).model_validate(raw),
        )
        if kind == NodeKind.MODULE.value:
            self.document.modules.nodes.append(node)
        else:
            self.document.process.nodes.append(node)
        self._changed()
        return node

    def remove_node(self, node_id: str) -> None:
        collection, node = self._locate(node_id)
        collection.remove(node)
        process = self.document.process
        process.edges = [
            edge for edge in process.edges if edge.source != node_id and edge.target != node_id
        ]
        self._changed()

    def move_node(self, node_id: str, position: Position) -> None:
        self.get_node(node_id).position = position
        self._changed()

    def set_label(self, node_id: str, label: str) -> None:
        """Set a node label; blank input keeps the current label."""
        node = self.get_node(node_id)
        trimmed = label.strip()
        if trimmed and isinstance(node.data, (LabelData, ModuleData)):
            node.data.label = trimmed
        self._changed()

    def set_description(self, node_id: str, description: str) -> None:
        node = self.get_node(node_id)
        if isinstance(node.data, ModuleData):
            node.data.description = description.strip()
        elif isinstance(node.data, ActionData):
            node.data.description = description
        self._changed()

    def set_node_status(self, node_id: str, status: Status) -> None:
        node = self.get_node(node_id)
        if node.type not in PROCESS_KINDS:
            raise NodeNotFoundError(f"Not a process node: {node_id}", {"node_id": node_id})
        node.data.status = status
        self._changed()

    def link_submodule(self, node_id: str, submodule_id: Optional[str]) -> None:
        """Point an action node at a sub-module (None unlinks)."""
        node = self.get_node(node_id)
        if not isinstance(node.data, ActionData):
            raise NodeNotFoundError(f"Not an action node: {node_id}", {"node_id": node_id})
        node.data.sub_module_id = submodule_id or None
        self._changed()

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    def connect(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> Optional[Edge]:
        """Add an edge between two process nodes.

        Returns None when an identical connection already exists.
        """
        node_ids = {node.id for node in self.document.process.nodes}
        for endpoint in (source, target):
            if endpoint not in node_ids:
                raise NodeNotFoundError(f"Node not found: {endpoint}", {"node_id": endpoint})

        for edge in self.document.process.edges:
            if (
                edge.source == source
                and edge.target == target
                and (edge.source_handle or None) == (source_handle or None)
                and (edge.target_handle or None) == (target_handle or None)
            ):
                return None

        edge = Edge(
            id=edge_id_for(source, target, source_handle, target_handle),
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
        )
        self.document.process.edges.append(edge)
        self._changed()
        return edge

    def _edge(self, edge_id: str) -> Edge:
        for edge in self.document.process.edges:
            if edge.id == edge_id:
                return edge
        raise EdgeNotFoundError(f"Edge not found: {edge_id}", {"edge_id": edge_id})

    def remove_edge(self, edge_id: str) -> None:
        process = self.document.process
        process.edges = [edge for edge in process.edges if edge.id != edge_id]
        self._changed()

    def set_edge_label(self, edge_id: str, label: Optional[str]) -> None:
        """Set an edge label; an empty label removes it."""
        self._edge(edge_id).label = label or None
        self._changed()

    def set_edge_status(self, edge_id: str, status: Status) -> None:
        edge = self._edge(edge_id)
        if edge.data is None:
            edge.data = EdgeData()
        edge.data.status = status
        self._changed()

    # -------------------------------------------------------------------------
    # Modules
    # -------------------------------------------------------------------------

    def set_category(self, module_id: str, category: Optional[str]) -> None:
        """Set a module category; blank input clears it."""
        self._module_data(module_id).category = (category or "").strip() or None
        self._changed()

    def toggle_deprecated(self, module_id: str) -> bool:
        """Flip the manual deprecated override; returns the new state."""
        data = self._module_data(module_id)
        deprecated = data.status != Status.DEPRECATED
        data.status = Status.DEPRECATED if deprecated else None
        self._changed()
        return deprecated

    def add_submodule(self, module_id: str) -> SubModule:
        data = self._module_data(module_id)
        submodule = SubModule(id=self.ids.next_submodule_id(), label=NEW_SUBMODULE_LABEL)
        data.submodules.append(submodule)
        self._changed()
        return submodule

    def update_submodule(
        self,
        module_id: str,
        submodule_id: str,
        *,
        label: Optional[str] = None,
        description: Optional[str] = None,
        status: Optional[Status] = None,
    ) -> SubModule:
        submodule = self._submodule(module_id, submodule_id)
        if label is not None and label.strip():
            submodule.label = label.strip()
        if description is not None:
            submodule.description = description.strip()
        if status is not None:
            submodule.status = status
        self._changed()
        return submodule

    def delete_submodule(self, module_id: str, submodule_id: str) -> None:
        data = self._module_data(module_id)
        data.submodules = [sm for sm in data.submodules if sm.id != submodule_id]
        self._changed()

    def add_step(self, module_id: str, submodule_id: str, text: str = "") -> int:
        """Append a step and return its index."""
        submodule = self._submodule(module_id, submodule_id)
        submodule.steps.append(text.strip())
        self._changed()
        return len(submodule.steps) - 1

    def edit_step(self, module_id: str, submodule_id: str, index: int, text: str) -> None:
        """Replace a step; blank text removes it."""
        submodule = self._submodule(module_id, submodule_id)
        trimmed = text.strip()
        if trimmed:
            submodule.steps[index] = trimmed
        else:
            del submodule.steps[index]
        self._changed()

    def remove_step(self, module_id: str, submodule_id: str, index: int) -> None:
        del self._submodule(module_id, submodule_id).steps[index]
        self._changed()
