"""Tests for the persistence bridge: load/create/delete and debounced autosave."""

import json

from flowtool.flowchart.editor import FlowEditor
from flowtool.flowchart.model import FlowDocument
from flowtool.storage.bridge import PersistenceBridge
from tests.helpers import FailingRepository


def _store(repository, name, document):
    repository.write(name, document.to_json())
    repository.writes.clear()


class TestLoad:
    def test_load_replaces_document_without_saving(self, bridge, repository, scheduler, sample_document):
        _store(repository, "cafe", sample_document)

        assert bridge.load_flow("cafe") is True
        scheduler.advance(5)

        assert bridge.current_flow == "cafe"
        assert len(bridge.editor.document.process.nodes) == 3
        assert repository.writes == []
        assert scheduler.pending == []

    def test_load_resyncs_identifiers(self, bridge, repository, sample_document):
        _store(repository, "cafe", sample_document)
        bridge.load_flow("cafe")

        assert bridge.editor.add_node("action").id == "node-5"

    def test_loaded_watermark_beats_in_memory_counter(self, bridge, repository):
        for _ in range(3):
            bridge.editor.add_node("situation")
        repository.write("old", json.dumps({"nodes": [{"id": "node-41", "type": "end"}]}))

        bridge.load_flow("old")

        assert bridge.editor.add_node("end").id == "node-42"

    def test_missing_flow_leaves_state_untouched(self, bridge, repository, sample_document):
        _store(repository, "cafe", sample_document)
        bridge.load_flow("cafe")
        before = bridge.editor.document

        assert bridge.load_flow("missing") is False
        assert bridge.current_flow == "cafe"
        assert bridge.editor.document is before

    def test_corrupt_flow_leaves_state_untouched(self, bridge, repository):
        repository.write("broken", "{not json")
        before = bridge.editor.document

        assert bridge.load_flow("broken") is False
        assert bridge.current_flow is None
        assert bridge.editor.document is before

    def test_legacy_flow_loads(self, bridge, repository):
        repository.write(
            "legacy",
            json.dumps({"nodes": [{"id": "node-1", "type": "situation", "position": {"x": 0, "y": 0}, "data": {"label": "A"}}], "edges": []}),
        )

        assert bridge.load_flow("legacy") is True
        assert len(bridge.editor.document.process.nodes) == 1
        assert bridge.editor.document.modules.nodes == []


class TestAutosave:
    def test_edit_is_saved_after_delay(self, bridge, repository, scheduler, sample_document):
        _store(repository, "cafe", sample_document)
        bridge.load_flow("cafe")

        bridge.editor.add_node("end")
        scheduler.advance(0.4)
        assert repository.writes == []

        scheduler.advance(0.2)
        assert len(repository.writes) == 1
        name, text = repository.writes[0]
        assert name == "cafe"
        assert len(json.loads(text)["process"]["nodes"]) == 4

    def test_burst_of_edits_writes_once_with_last_state(self, bridge, repository, scheduler):
        bridge.create_flow("burst")
        repository.writes.clear()

        node = bridge.editor.add_node("situation")
        scheduler.advance(0.3)
        bridge.editor.set_label(node.id, "Second")
        scheduler.advance(0.3)
        bridge.editor.set_label(node.id, "Third")
        scheduler.advance(0.5)

        assert len(repository.writes) == 1
        saved = json.loads(repository.writes[0][1])
        assert saved["process"]["nodes"][0]["data"]["label"] == "Third"

    def test_written_text_is_a_snapshot(self, bridge, repository, scheduler):
        bridge.create_flow("snap")
        repository.writes.clear()

        node = bridge.editor.add_node("situation")
        # Direct mutation without notification does not leak into the pending write.
        node.data.label = "sneaky"
        scheduler.advance(0.5)

        saved = json.loads(repository.writes[0][1])
        assert saved["process"]["nodes"][0]["data"]["label"] == "New situation"

    def test_no_current_flow_means_no_autosave(self, bridge, repository, scheduler):
        bridge.editor.add_node("situation")
        scheduler.advance(1)

        assert repository.writes == []
        assert scheduler.pending == []

    def test_skip_applies_to_one_cycle_only(self, bridge, repository, scheduler, sample_document):
        _store(repository, "cafe", sample_document)
        bridge.load_flow("cafe")

        bridge.editor.move_node("node-1", bridge.editor.get_node("node-1").position)
        scheduler.advance(0.5)

        assert len(repository.writes) == 1

    def test_flush_writes_immediately(self, bridge, repository, scheduler):
        bridge.create_flow("now")
        repository.writes.clear()
        bridge.editor.add_node("end")
        assert bridge.has_pending_save

        bridge.flush()

        assert len(repository.writes) == 1
        assert not bridge.has_pending_save
        scheduler.advance(1)
        assert len(repository.writes) == 1

    def test_switching_flows_saves_pending_edit_first(self, bridge, repository, scheduler, sample_document):
        _store(repository, "cafe", sample_document)
        bridge.create_flow("draft")
        repository.writes.clear()
        bridge.editor.add_node("situation")

        bridge.load_flow("cafe")
        scheduler.advance(1)

        assert [name for name, _ in repository.writes] == ["draft"]
        assert len(json.loads(repository.read("draft"))["process"]["nodes"]) == 1

    def test_reloading_current_flow_keeps_pending_edit(self, bridge, repository, scheduler):
        bridge.create_flow("cafe")
        bridge.editor.add_node("situation")

        assert bridge.load_flow("cafe") is True
        scheduler.advance(1)

        saved = json.loads(repository.read("cafe"))
        assert len(saved["process"]["nodes"]) == 1
        assert len(bridge.editor.document.process.nodes) == 1
        assert not bridge.has_pending_save

    def test_superseded_timer_firing_late_is_ignored(self, bridge, repository, scheduler):
        bridge.create_flow("late")
        repository.writes.clear()
        node = bridge.editor.add_node("situation")
        stale = scheduler.pending[0]
        bridge.editor.set_label(node.id, "Latest")

        # A timer thread that fired just before its cancel took effect.
        stale.callback()

        assert repository.writes == []
        assert bridge.has_pending_save
        scheduler.advance(0.5)
        assert len(repository.writes) == 1
        saved = json.loads(repository.writes[0][1])
        assert saved["process"]["nodes"][0]["data"]["label"] == "Latest"

    def test_timer_firing_after_flush_does_not_write_again(self, bridge, repository, scheduler):
        bridge.create_flow("flushed")
        repository.writes.clear()
        bridge.editor.add_node("end")
        timer = scheduler.pending[0]

        bridge.flush()
        timer.callback()

        assert len(repository.writes) == 1

    def test_close_cancels_pending_save(self, repository, scheduler):
        bridge = PersistenceBridge(repository, FlowEditor(), scheduler=scheduler)
        bridge.create_flow("closing")
        repository.writes.clear()
        bridge.editor.add_node("end")

        bridge.close()
        scheduler.advance(1)
        bridge.editor.add_node("end")
        scheduler.advance(1)

        assert repository.writes == []


class TestCreateAndDelete:
    def test_create_writes_empty_document_and_lists_it(self, bridge, repository):
        name = bridge.create_flow("  New Flow ")

        assert name == "new-flow"
        assert bridge.current_flow == "new-flow"
        assert bridge.flow_list == ["new-flow"]
        assert json.loads(repository.read("new-flow")) == FlowDocument().to_dict()
        assert len(repository.writes) == 1

    def test_create_resets_identifiers(self, bridge, repository, sample_document):
        _store(repository, "cafe", sample_document)
        bridge.load_flow("cafe")

        bridge.create_flow("fresh")

        assert bridge.editor.document.process.nodes == []
        assert bridge.editor.add_node("situation").id == "node-1"

    def test_delete_current_flow_clears_editor(self, bridge, repository, scheduler):
        bridge.create_flow("doomed")
        bridge.editor.add_node("situation")

        bridge.delete_flow("doomed")
        scheduler.advance(1)

        assert bridge.current_flow is None
        assert bridge.editor.document.process.nodes == []
        assert repository.list() == []
        assert bridge.flow_list == []

    def test_delete_other_flow_keeps_current(self, bridge, repository):
        bridge.create_flow("keep")
        bridge.create_flow("other")
        bridge.load_flow("keep")

        bridge.delete_flow("other")

        assert bridge.current_flow == "keep"
        assert bridge.flow_list == ["keep"]


class TestStorageFailures:
    def test_failures_are_swallowed(self, scheduler, sample_document):
        repository = FailingRepository()
        repository.write("cafe", sample_document.to_json())
        bridge = PersistenceBridge(repository, FlowEditor(), scheduler=scheduler)
        bridge.load_flow("cafe")

        repository.broken = True
        bridge.editor.add_node("end")
        scheduler.advance(1)

        assert bridge.refresh_list() == []
        assert bridge.load_flow("cafe") is False
        bridge.delete_flow("cafe")
        assert bridge.current_flow is None

        repository.broken = False
        assert repository.list() == ["cafe"]
        bridge.close()

    def test_next_autosave_retries_after_failure(self, scheduler):
        repository = FailingRepository()
        bridge = PersistenceBridge(repository, FlowEditor(), scheduler=scheduler)
        bridge.create_flow("retry")

        repository.broken = True
        node = bridge.editor.add_node("situation")
        scheduler.advance(1)

        repository.broken = False
        bridge.editor.set_label(node.id, "Recovered")
        scheduler.advance(1)

        saved = json.loads(repository.read("retry"))
        assert saved["process"]["nodes"][0]["data"]["label"] == "Recovered"
        bridge.close()
