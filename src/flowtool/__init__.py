"""flowtool - process flow and module catalog editor core."""

from typing import TYPE_CHECKING

__all__ = ["Settings", "FlowDocument", "FlowEditor", "PersistenceBridge"]

if TYPE_CHECKING:
    from .config.settings import Settings
    from .flowchart.editor import FlowEditor
    from .flowchart.model import FlowDocument
    from .storage.bridge import PersistenceBridge


def __getattr__(name: str):
    if name == "Settings":
        from .config.settings import Settings

        return Settings
    if name == "FlowDocument":
        from .flowchart.model import FlowDocument

        return FlowDocument
    if name == "FlowEditor":
        from .flowchart.editor import FlowEditor

        return FlowEditor
    if name == "PersistenceBridge":
        from .storage.bridge import PersistenceBridge

        return PersistenceBridge
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
