"""Identifier allocation for nodes and sub-modules.

Each open document owns a :class:`DocumentIds` holding two counters:
``node-N`` for nodes in both graphs and ``sm-N`` for sub-modules. After a
load the counters are moved up to the highest suffix found in the document
so new entities never collide with loaded ones.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from flowtool.flowchart.model import FlowDocument


NODE_PREFIX = "node-"
SUBMODULE_PREFIX = "sm-"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_suffix(identifier: str, prefix: str) -> Optional[int]:
    """Return the numeric suffix of ``identifier`` or None if there is none.

    The first occurrence of the prefix is stripped and leading digits are
    read, so ``"node-12abc"`` gives 12 and ``"custom"`` gives None.
    """
    match = _LEADING_INT.match(identifier.replace(prefix, "", 1))
    if not match:
        return None
    return int(match.group(1))


class IdAllocator:
    """Monotonic counter producing ``<prefix><n>`` identifiers."""

    def __init__(self, prefix: str, start: int = 0):
        self.prefix = prefix
        self._value = start

    @property
    def value(self) -> int:
        return self._value

    def next(self) -> str:
        self._value += 1
        return f"{self.prefix}{self._value}"

    def reset(self) -> None:
        self._value = 0

    def resync(self, identifiers: Iterable[str]) -> None:
        """Set the counter to the largest suffix in ``identifiers`` (or 0)."""
        highest = 0
        for identifier in identifiers:
            suffix = parse_suffix(str(identifier), self.prefix)
            if suffix is not None and suffix > highest:
                highest = suffix
        self._value = highest


class DocumentIds:
    """The pair of allocators owned by one editing session."""

    def __init__(self) -> None:
        self.nodes = IdAllocator(NODE_PREFIX)
        self.submodules = IdAllocator(SUBMODULE_PREFIX)

    def next_node_id(self) -> str:
        return self.nodes.next()

    def next_submodule_id(self) -> str:
        return self.submodules.next()

    def reset(self) -> None:
        self.nodes.reset()
        self.submodules.reset()

    def resync_from(self, document: "FlowDocument") -> None:
        # Process and module nodes share one counter.
        self.nodes.resync(node.id for node in document.all_nodes())
        self.submodules.resync(
            submodule.id
            for node in document.modules.nodes
            for submodule in node.submodules()
        )
