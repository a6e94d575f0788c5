"""Flow document models, layout and editing."""

from .model import (
    Edge,
    FlowDocument,
    ModuleData,
    Node,
    NodeKind,
    Position,
    Status,
    SubModule,
    parse_flow_document,
)
from .status import compute_module_status, effective_status
from .layout import (
    FlowDirection,
    assign_layers,
    detect_flow_direction,
    layout_grid,
    layout_process_nodes,
)
from .index import SubModuleIndex, SubModuleRef, filter_by_category, module_categories
from .editor import FlowEditor, View

__all__ = [
    "Edge",
    "FlowDocument",
    "ModuleData",
    "Node",
    "NodeKind",
    "Position",
    "Status",
    "SubModule",
    "parse_flow_document",
    "compute_module_status",
    "effective_status",
    "FlowDirection",
    "assign_layers",
    "detect_flow_direction",
    "layout_grid",
    "layout_process_nodes",
    "SubModuleIndex",
    "SubModuleRef",
    "filter_by_category",
    "module_categories",
    "FlowEditor",
    "View",
]
