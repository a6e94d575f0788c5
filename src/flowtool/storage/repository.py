"""Flow repository implementations.

This module provides storage backends for flow documents:
- FileFlowRepository: one ``<name>.json`` file per flow in a directory
- InMemoryFlowRepository: in-memory storage for testing
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Dict, List, Union

from flowtool.core.exceptions import FlowNotFoundError, InvalidFlowNameError, StorageError

FLOW_SUFFIX = ".json"

_DISALLOWED_NAME_CHARS = re.compile(r"[^a-z0-9_-]")


def normalize_flow_name(raw: str) -> str:
    """Turn user input into a flow name: lowercase, ``[a-z0-9_-]`` only."""
    name = _DISALLOWED_NAME_CHARS.sub("-", raw.strip().lower())
    if not name:
        raise InvalidFlowNameError("Flow name is empty", {"raw": raw})
    return name


def _check_name(name: str) -> str:
    if not name or name.startswith(".") or "/" in name or "\\" in name:
        raise InvalidFlowNameError(f"Invalid flow name: {name!r}", {"name": name})
    return name


# -----------------------------------------------------------------------------
# File Repository
# -----------------------------------------------------------------------------


class FileFlowRepository:
    """Directory of JSON flow documents.

    Usage:
        repo = FileFlowRepository(".flowtool")
        repo.write("checkout", text)
        text = repo.read("checkout")
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        return self.directory / f"{_check_name(name)}{FLOW_SUFFIX}"

    def list(self) -> List[str]:
        if not self.directory.exists():
            return []
        try:
            names = [
                path.name[: -len(FLOW_SUFFIX)]
                for path in self.directory.iterdir()
                if path.name.endswith(FLOW_SUFFIX)
            ]
        except OSError as exc:
            raise StorageError("Failed to list flows", {"directory": str(self.directory), "error": str(exc)}) from exc
        return sorted(names)

    def read(self, name: str) -> str:
        path = self._path(name)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise FlowNotFoundError(f"Flow not found: {name}", {"path": str(path)}) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Failed to read flow: {name}", {"path": str(path), "error": str(exc)}) from exc

    def write(self, name: str, text: str) -> None:
        """Write via a temporary file so readers never see a partial document."""
        path = self._path(name)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(text)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write flow: {name}", {"path": str(path), "error": str(exc)}) from exc

    def delete(self, name: str) -> None:
        path = self._path(name)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete flow: {name}", {"path": str(path), "error": str(exc)}) from exc


# -----------------------------------------------------------------------------
# In-Memory Repository (for testing)
# -----------------------------------------------------------------------------


class InMemoryFlowRepository:
    """In-memory flow repository for testing.

    Not thread-safe; intended for unit tests only.
    """

    def __init__(self) -> None:
        self._flows: Dict[str, str] = {}

    def list(self) -> List[str]:
        return sorted(self._flows)

    def read(self, name: str) -> str:
        if name not in self._flows:
            raise FlowNotFoundError(f"Flow not found: {name}", {"name": name})
        return self._flows[name]

    def write(self, name: str, text: str) -> None:
        self._flows[_check_name(name)] = text

    def delete(self, name: str) -> None:
        self._flows.pop(name, None)
