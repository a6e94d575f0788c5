"""Status aggregation.

A module's effective status is derived from its sub-modules every time it is
read; only the manual deprecated override is stored on the module.
"""

from __future__ import annotations

from typing import Union

from .model import Edge, ModuleData, Node, Status


def compute_module_status(module: ModuleData) -> Status:
    """Return the effective status of a module.

    - deprecated override wins regardless of sub-modules
    - no sub-modules means new
    - implemented only when every sub-module is implemented
    - anything else is new
    """
    if module.status == Status.DEPRECATED:
        return Status.DEPRECATED
    if not module.submodules:
        return Status.NEW
    if all(submodule.status == Status.IMPLEMENTED for submodule in module.submodules):
        return Status.IMPLEMENTED
    return Status.NEW


def effective_status(item: Union[Node, Edge]) -> Status:
    """Status to display for a node or edge (computed for modules)."""
    if isinstance(item, Edge):
        return item.status
    if isinstance(item.data, ModuleData):
        return compute_module_status(item.data)
    return item.data.status or Status.NEW
