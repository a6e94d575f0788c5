"""Flow document models and the backward-compatible parser.

A saved flow holds two graphs:
- the process graph: situation/action/decision/end nodes joined by edges
- the module graph: module nodes, each owning an ordered list of sub-modules

Unknown keys written by the editing surface (``selected``, ``measured``,
edge ``type`` and so on) are preserved on every model so a load/save cycle
does not drop them.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..core.exceptions import DocumentUnreadableError
from ..utils.logging import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class Status(str, Enum):
    """Lifecycle status shared by nodes, edges, modules and sub-modules."""
    NEW = "new"
    IMPLEMENTED = "implemented"
    DEPRECATED = "deprecated"


class NodeKind(str, Enum):
    SITUATION = "situation"
    ACTION = "action"
    DECISION = "decision"
    END = "end"
    MODULE = "module"


PROCESS_KINDS = frozenset(
    {NodeKind.SITUATION.value, NodeKind.ACTION.value, NodeKind.DECISION.value, NodeKind.END.value}
)


class Side(str, Enum):
    """Handle sides an edge can attach to."""
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


def _coerce_status(value: Any) -> Optional[Status]:
    if value is None or isinstance(value, Status):
        return value
    try:
        return Status(str(value))
    except ValueError:
        return None


# -----------------------------------------------------------------------------
# Node data
# -----------------------------------------------------------------------------


class Position(BaseModel):
    """2D position of a node on the canvas."""
    x: float = 0.0
    y: float = 0.0


class NodeData(BaseModel):
    """Base for the kind-specific ``data`` payload of a node."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    status: Optional[Status] = None

    @field_validator("status", mode="before")
    @classmethod
    def _lenient_status(cls, value: Any) -> Optional[Status]:
        return _coerce_status(value)


class LabelData(NodeData):
    """Data for situation, decision and end nodes."""
    label: str = ""


class ActionData(NodeData):
    """Data for action nodes.

    ``sub_module_id`` is a weak reference into the module graph; it is
    resolved through :class:`flowtool.flowchart.index.SubModuleIndex` and may
    point at a sub-module that no longer exists.
    """
    description: str = ""
    sub_module_id: Optional[str] = Field(default=None, alias="subModuleId")


class SubModule(BaseModel):
    """A unit of work owned by exactly one module."""

    model_config = ConfigDict(extra="allow")

    id: str
    label: str = ""
    description: str = ""
    steps: List[str] = Field(default_factory=list)
    status: Optional[Status] = None

    @field_validator("status", mode="before")
    @classmethod
    def _lenient_status(cls, value: Any) -> Optional[Status]:
        return _coerce_status(value)


class ModuleData(NodeData):
    """Data for module nodes.

    ``status`` is only meaningful as the manual deprecated override; the
    effective status is computed from the sub-modules on every read.
    """
    label: str = ""
    description: str = ""
    category: Optional[str] = None
    submodules: List[SubModule] = Field(default_factory=list)

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("submodules", mode="before")
    @classmethod
    def _default_submodules(cls, value: Any) -> Any:
        return value or []


NodeDataType = Union[ModuleData, ActionData, LabelData]

_DATA_MODELS: Dict[str, type] = {
    NodeKind.SITUATION.value: LabelData,
    NodeKind.ACTION.value: ActionData,
    NodeKind.DECISION.value: LabelData,
    NodeKind.END.value: LabelData,
    NodeKind.MODULE.value: ModuleData,
}


def data_model_for(kind: Optional[str]) -> type:
    """Return the data model class for a node kind (LabelData if unknown)."""
    return _DATA_MODELS.get(kind or "", LabelData)


# -----------------------------------------------------------------------------
# Nodes and edges
# -----------------------------------------------------------------------------


class Node(BaseModel):
    """A node in either graph. ``id`` and ``type`` never change after creation."""

    model_config = ConfigDict(extra="allow")

    id: str
    type: str = NodeKind.SITUATION.value
    position: Position = Field(default_factory=Position)
    data: NodeDataType = Field(default_factory=LabelData)

    @model_validator(mode="before")
    @classmethod
    def _typed_data(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        values = dict(values)
        if values.get("type") is None:
            values.pop("type", None)
        if values.get("position") is None:
            values.pop("position", None)
        raw = values.get("data")
        model = data_model_for(values.get("type"))
        if raw is None:
            values["data"] = model()
        elif isinstance(raw, dict):
            values["data"] = model.model_validate(raw)
        return values

    @property
    def is_module(self) -> bool:
        return self.type == NodeKind.MODULE.value

    def submodules(self) -> List[SubModule]:
        if isinstance(self.data, ModuleData):
            return self.data.submodules
        return []


class EdgeData(BaseModel):
    model_config = ConfigDict(extra="allow")

    status: Optional[Status] = None

    @field_validator("status", mode="before")
    @classmethod
    def _lenient_status(cls, value: Any) -> Optional[Status]:
        return _coerce_status(value)


class Edge(BaseModel):
    """A directed, optionally labeled edge in the process graph."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    source: str
    target: str
    source_handle: Optional[str] = Field(default=None, alias="sourceHandle")
    target_handle: Optional[str] = Field(default=None, alias="targetHandle")
    label: Optional[str] = None
    data: Optional[EdgeData] = None

    @field_validator("label", mode="before")
    @classmethod
    def _label_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value)

    @property
    def status(self) -> Status:
        if self.data and self.data.status:
            return self.data.status
        return Status.NEW


# -----------------------------------------------------------------------------
# Document
# -----------------------------------------------------------------------------


class ProcessGraph(BaseModel):
    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)


class ModuleGraph(BaseModel):
    nodes: List[Node] = Field(default_factory=list)


class FlowDocument(BaseModel):
    """The persisted unit: one process graph and one module graph."""

    process: ProcessGraph = Field(default_factory=ProcessGraph)
    modules: ModuleGraph = Field(default_factory=ModuleGraph)

    def all_nodes(self) -> Iterator[Node]:
        yield from self.process.nodes
        yield from self.modules.nodes

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_flow_document(raw: str) -> FlowDocument:
    """Decode saved flow text into a :class:`FlowDocument`.

    Accepts the current ``{process, modules}`` shape and the legacy
    ``{nodes, edges}`` shape (which implies an empty module graph). Missing
    collections default to empty. Edges whose source or target is not a
    process node are dropped.

    Raises:
        DocumentUnreadableError: If the text is not JSON or a collection
            entry cannot be read as a node or edge.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise DocumentUnreadableError("Flow document is not valid JSON", {"error": str(exc)}) from exc

    if not isinstance(data, dict):
        raise DocumentUnreadableError(
            "Flow document must be a JSON object", {"type": type(data).__name__}
        )

    if "nodes" in data and "process" not in data:
        process_raw = {"nodes": _as_list(data.get("nodes")), "edges": _as_list(data.get("edges"))}
        modules_raw: Dict[str, Any] = {"nodes": []}
    else:
        process = _as_dict(data.get("process"))
        modules = _as_dict(data.get("modules"))
        process_raw = {"nodes": _as_list(process.get("nodes")), "edges": _as_list(process.get("edges"))}
        modules_raw = {"nodes": _as_list(modules.get("nodes"))}

    try:
        document = FlowDocument.model_validate({"process": process_raw, "modules": modules_raw})
    except ValidationError as exc:
        raise DocumentUnreadableError(
            "Flow document has an unreadable node or edge",
            {"errors": exc.error_count()},
        ) from exc

    node_ids = {node.id for node in document.process.nodes}
    edges = [
        edge
        for edge in document.process.edges
        if edge.source in node_ids and edge.target in node_ids
    ]
    dropped = len(document.process.edges) - len(edges)
    if dropped:
        logger.warning("Dropped dangling edges on load", extra={"dropped_edges": dropped})
        document.process.edges = edges

    return document
