"""Test helpers: raw node/edge builders and instrumented repositories."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from flowtool.core.exceptions import StorageError
from flowtool.storage.repository import InMemoryFlowRepository


def node_dict(
    node_id: str,
    kind: str = "situation",
    data: Optional[Dict[str, Any]] = None,
    x: float = 0,
    y: float = 0,
) -> Dict[str, Any]:
    return {
        "id": node_id,
        "type": kind,
        "position": {"x": x, "y": y},
        "data": data if data is not None else {"label": node_id},
    }


def edge_dict(
    source: str,
    target: str,
    source_handle: Optional[str] = "bottom",
    target_handle: Optional[str] = "top",
    **extra: Any,
) -> Dict[str, Any]:
    edge: Dict[str, Any] = {"id": f"{source}->{target}", "source": source, "target": target}
    if source_handle:
        edge["sourceHandle"] = source_handle
    if target_handle:
        edge["targetHandle"] = target_handle
    edge.update(extra)
    return edge


class RecordingRepository(InMemoryFlowRepository):
    """In-memory repository that remembers every write."""

    def __init__(self) -> None:
        super().__init__()
        self.writes: List[Tuple[str, str]] = []

    def write(self, name: str, text: str) -> None:
        self.writes.append((name, text))
        super().write(name, text)


class FailingRepository(InMemoryFlowRepository):
    """Repository whose calls fail with StorageError while `broken` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.broken = False

    def _check(self) -> None:
        if self.broken:
            raise StorageError("backend unavailable")

    def list(self) -> List[str]:
        self._check()
        return super().list()

    def read(self, name: str) -> str:
        self._check()
        return super().read(name)

    def write(self, name: str, text: str) -> None:
        self._check()
        super().write(name, text)

    def delete(self, name: str) -> None:
        self._check()
        super().delete(name)
