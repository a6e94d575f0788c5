"""Shared test fixtures.

The manual scheduler stands in for real timers so autosave debouncing can be
driven step by step.
"""

from __future__ import annotations

from typing import Callable, List

import pytest

from flowtool.flowchart.editor import FlowEditor
from flowtool.flowchart.model import FlowDocument
from flowtool.storage.bridge import PersistenceBridge
from tests.helpers import RecordingRepository, edge_dict, node_dict


class ManualTimer:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test calls `advance()`."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: List[ManualTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> List[ManualTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in sorted(self.pending, key=lambda t: t.due):
            if timer.due <= self.now and not timer.cancelled:
                timer.fired = True
                timer.callback()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def repository() -> RecordingRepository:
    return RecordingRepository()


@pytest.fixture
def editor() -> FlowEditor:
    return FlowEditor()


@pytest.fixture
def bridge(repository, editor, scheduler):
    bridge = PersistenceBridge(repository, editor, scheduler=scheduler, autosave_delay=0.5)
    yield bridge
    bridge.close()


@pytest.fixture
def sample_document() -> FlowDocument:
    """A small flow with a linked action and one module holding two sub-modules."""
    return FlowDocument.model_validate(
        {
            "process": {
                "nodes": [
                    node_dict("node-1", "situation", {"label": "Customer arrives"}),
                    node_dict("node-2", "action", {"description": "Take order", "subModuleId": "sm-2"}),
                    node_dict("node-3", "end", {"label": "Done"}),
                ],
                "edges": [edge_dict("node-1", "node-2"), edge_dict("node-2", "node-3")],
            },
            "modules": {
                "nodes": [
                    node_dict(
                        "node-4",
                        "module",
                        {
                            "label": "Ordering",
                            "description": "",
                            "category": "Front office",
                            "submodules": [
                                {"id": "sm-1", "label": "Menu", "description": "", "steps": ["List items"], "status": "implemented"},
                                {"id": "sm-2", "label": "Checkout", "description": "", "steps": [], "status": "new"},
                            ],
                        },
                    )
                ]
            },
        }
    )
