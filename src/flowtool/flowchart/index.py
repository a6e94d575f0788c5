"""Lookups across the module graph.

Action nodes refer to sub-modules by ID only. The index is rebuilt from the
current module nodes whenever it is needed, so a deleted sub-module simply
resolves to None.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence

from .model import ActionData, ModuleData, Node, SubModule


@dataclass(frozen=True)
class SubModuleRef:
    """A sub-module together with the module that owns it."""
    submodule: SubModule
    module_id: str
    module_label: str

    @property
    def id(self) -> str:
        return self.submodule.id

    @property
    def label(self) -> str:
        return self.submodule.label


class SubModuleIndex:
    """Ordered sub-modules of a module graph, addressable by ID."""

    def __init__(self, entries: Sequence[SubModuleRef]):
        self._entries = list(entries)
        self._by_id: Dict[str, SubModuleRef] = {}
        for entry in self._entries:
            self._by_id.setdefault(entry.id, entry)

    @classmethod
    def build(cls, module_nodes: Sequence[Node]) -> "SubModuleIndex":
        entries: List[SubModuleRef] = []
        for node in module_nodes:
            if not isinstance(node.data, ModuleData):
                continue
            for submodule in node.data.submodules:
                entries.append(
                    SubModuleRef(submodule=submodule, module_id=node.id, module_label=node.data.label)
                )
        return cls(entries)

    def __iter__(self) -> Iterator[SubModuleRef]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, submodule_id: object) -> bool:
        return submodule_id in self._by_id

    def resolve(self, submodule_id: Optional[str]) -> Optional[SubModuleRef]:
        if not submodule_id:
            return None
        return self._by_id.get(submodule_id)

    def linked(self, node: Node) -> Optional[SubModuleRef]:
        """Sub-module an action node links to, or None if unlinked or dangling."""
        if not isinstance(node.data, ActionData):
            return None
        return self.resolve(node.data.sub_module_id)


def module_categories(module_nodes: Sequence[Node]) -> List[str]:
    """Sorted unique categories used by the given module nodes."""
    categories = {
        node.data.category
        for node in module_nodes
        if isinstance(node.data, ModuleData) and node.data.category
    }
    return sorted(categories)


def filter_by_category(module_nodes: Sequence[Node], category: Optional[str]) -> List[Node]:
    """Module nodes in ``category``; None keeps every node."""
    if category is None:
        return list(module_nodes)
    return [
        node
        for node in module_nodes
        if isinstance(node.data, ModuleData) and node.data.category == category
    ]
