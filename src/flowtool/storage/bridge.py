"""Persistence bridge between the editing session and a flow repository.

Responsibilities:
- list/load/create/delete named flows
- debounced autosave: every change restarts the timer and only the last
  change in a burst is written
- skip the autosave that a programmatic replace (load, create, delete)
  would otherwise trigger

Storage failures never reach the caller. Reads fall back to an empty list
or leave the current document untouched; writes and deletes are best
effort and get retried implicitly by the next autosave.
"""

from __future__ import annotations

import threading
from typing import Callable, List, Optional, Tuple

from ..core.exceptions import DocumentUnreadableError, StorageError
from ..core.interfaces import Cancellable, FlowRepository, Scheduler
from ..flowchart.editor import FlowEditor
from ..flowchart.model import FlowDocument, parse_flow_document
from ..utils.logging import get_logger
from .repository import normalize_flow_name

logger = get_logger(__name__)

DEFAULT_AUTOSAVE_DELAY = 0.5


class ThreadingScheduler:
    """Scheduler backed by daemon ``threading.Timer`` objects."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class PersistenceBridge:
    """Keeps the current flow of a :class:`FlowEditor` in sync with storage.

    Usage:
        bridge = PersistenceBridge(FileFlowRepository(".flowtool"), FlowEditor())
        bridge.load_flow("checkout")
        bridge.editor.add_node("situation")   # autosaved after the delay
        bridge.close()
    """

    def __init__(
        self,
        repository: FlowRepository,
        editor: Optional[FlowEditor] = None,
        *,
        scheduler: Optional[Scheduler] = None,
        autosave_delay: float = DEFAULT_AUTOSAVE_DELAY,
    ):
        self.repository = repository
        self.editor = editor or FlowEditor()
        self.scheduler = scheduler or ThreadingScheduler()
        self.autosave_delay = autosave_delay
        self.current_flow: Optional[str] = None
        self.flow_list: List[str] = []
        self._skip_next_save = False
        self._pending: Optional[Cancellable] = None
        self._pending_save: Optional[Tuple[str, str]] = None
        self._lock = threading.Lock()
        self._unsubscribe = self.editor.subscribe(self._on_change)

    # -------------------------------------------------------------------------
    # Flow operations
    # -------------------------------------------------------------------------

    def refresh_list(self) -> List[str]:
        try:
            self.flow_list = self.repository.list()
        except StorageError as exc:
            logger.warning("Failed to list flows", extra={"error": str(exc)})
            self.flow_list = []
        return self.flow_list

    def load_flow(self, name: str) -> bool:
        """Make ``name`` the current flow.

        Returns False and leaves the current document untouched if the flow
        cannot be read or decoded.
        """
        # Save pending edits first so reloading the current flow reads them back.
        self.flush()
        try:
            document = parse_flow_document(self.repository.read(name))
        except (StorageError, DocumentUnreadableError) as exc:
            logger.warning("Failed to load flow", extra={"flow": name, "error": str(exc)})
            return False

        self._replace(name, document)
        logger.info(
            "Loaded flow",
            extra={
                "flow": name,
                "process_nodes": len(document.process.nodes),
                "module_nodes": len(document.modules.nodes),
            },
        )
        return True

    def create_flow(self, raw_name: str) -> str:
        """Create an empty flow, make it current and return its name.

        Raises:
            InvalidFlowNameError: If ``raw_name`` normalizes to nothing.
        """
        name = normalize_flow_name(raw_name)
        document = FlowDocument()
        self.flush()
        self._write(name, document.to_json())
        self._replace(name, document)
        self.refresh_list()
        logger.info("Created flow", extra={"flow": name})
        return name

    def delete_flow(self, name: str) -> None:
        try:
            self.repository.delete(name)
        except StorageError as exc:
            logger.warning("Failed to delete flow", extra={"flow": name, "error": str(exc)})
        else:
            logger.info("Deleted flow", extra={"flow": name})
        if self.current_flow == name:
            # A pending autosave would bring the deleted flow back.
            self._cancel_pending()
            self._replace(None, FlowDocument())
        self.refresh_list()

    # -------------------------------------------------------------------------
    # Autosave
    # -------------------------------------------------------------------------

    @property
    def has_pending_save(self) -> bool:
        return self._pending is not None

    def flush(self) -> None:
        """Write a pending autosave immediately."""
        with self._lock:
            save = self._pending_save
            self._drop_pending()
        if save is not None:
            self._write(*save)

    def close(self) -> None:
        """Stop observing the editor and drop any pending autosave."""
        self._cancel_pending()
        self._unsubscribe()

    def _replace(self, name: Optional[str], document: FlowDocument) -> None:
        self.current_flow = name
        self._skip_next_save = True
        self.editor.replace(document)

    def _on_change(self, document: FlowDocument) -> None:
        with self._lock:
            self._drop_pending()
            if self.current_flow is None or self._skip_next_save:
                self._skip_next_save = False
                return

            # Snapshot now; later edits must not leak into this write.
            save = (self.current_flow, document.to_json())
            self._pending_save = save
            self._pending = self.scheduler.call_later(
                self.autosave_delay, lambda: self._autosave(save)
            )

    def _autosave(self, save: Tuple[str, str]) -> None:
        """Timer callback; runs on the scheduler's thread."""
        with self._lock:
            if self._pending_save is not save:
                # No longer the pending save.
                return
            self._pending = None
            self._pending_save = None
        self._write(*save)

    def _cancel_pending(self) -> None:
        with self._lock:
            self._drop_pending()

    def _drop_pending(self) -> None:
        # Caller holds self._lock.
        if self._pending is not None:
            self._pending.cancel()
        self._pending = None
        self._pending_save = None

    def _write(self, name: str, text: str) -> None:
        try:
            self.repository.write(name, text)
        except StorageError as exc:
            logger.warning("Failed to save flow", extra={"flow": name, "error": str(exc)})
            return
        logger.debug("Saved flow", extra={"flow": name, "bytes": len(text)})
