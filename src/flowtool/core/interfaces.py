"""Interfaces (Protocols) for flowtool collaborators.

The storage backend and the autosave timer are external to the core, so
they are described here as Protocols. Tests swap in in-memory stores and a
manually driven scheduler.
"""

from __future__ import annotations

from typing import Callable, List, Protocol, runtime_checkable


# -----------------------------------------------------------------------------
# Storage backend
# -----------------------------------------------------------------------------


@runtime_checkable
class FlowRepository(Protocol):
    """Opaque key-value store of named flow documents.

    Implementations:
    - FileFlowRepository: one JSON file per flow
    - InMemoryFlowRepository: for testing
    """

    def list(self) -> List[str]:
        """Names of all stored flows, sorted."""
        ...

    def read(self, name: str) -> str:
        """Raw document text. Raises FlowNotFoundError if absent."""
        ...

    def write(self, name: str, text: str) -> None:
        """Replace the whole document under ``name``."""
        ...

    def delete(self, name: str) -> None:
        """Remove ``name``; absent flows are ignored."""
        ...


# -----------------------------------------------------------------------------
# Scheduling
# -----------------------------------------------------------------------------


class Cancellable(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Runs a callback once after a delay (in seconds)."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        ...
