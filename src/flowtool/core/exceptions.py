"""Custom exception hierarchy for flowtool."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class FlowtoolError(Exception):
    """Base exception type for all flowtool errors."""

    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        if not self.context:
            return self.message
        return f"{self.message} | context={self.context}"


class DocumentUnreadableError(FlowtoolError):
    """Raised when a saved flow document cannot be decoded."""


# -----------------------------------------------------------------------------
# Storage
# -----------------------------------------------------------------------------


class StorageError(FlowtoolError):
    """Raised when the storage backend fails."""


class FlowNotFoundError(StorageError):
    """Raised when a named flow does not exist in the store."""


class InvalidFlowNameError(StorageError):
    """Raised when a flow name is empty after normalization."""


# -----------------------------------------------------------------------------
# Editing
# -----------------------------------------------------------------------------


class NodeNotFoundError(FlowtoolError):
    """Raised when an editing operation addresses a missing node."""


class SubModuleNotFoundError(FlowtoolError):
    """Raised when an editing operation addresses a missing sub-module."""


class EdgeNotFoundError(FlowtoolError):
    """Raised when an editing operation addresses a missing edge."""
