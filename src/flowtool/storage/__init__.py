"""Storage layer for flowtool."""

from flowtool.storage.repository import FileFlowRepository, InMemoryFlowRepository, normalize_flow_name
from flowtool.storage.bridge import PersistenceBridge, ThreadingScheduler

__all__ = [
    "FileFlowRepository",
    "InMemoryFlowRepository",
    "normalize_flow_name",
    "PersistenceBridge",
    "ThreadingScheduler",
]
