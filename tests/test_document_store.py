"""DocumentStore: commits, notifications, and the node merge rules."""

from datetime import timedelta

import pytest

from flowcanvas.workflow.document_store import StoreEventKind
from flowcanvas.workflow.merge_engine import NESTED_CONFIG_ERROR
from flowcanvas.workflow.workflow_model import FlowStatus, WorkflowDocument

from conftest import START, place_node


def _without_metadata(config):
    return {k: v for k, v in config.items() if k != "metadata"}


# ============================================================================
# Lifecycle
# ============================================================================

class TestInitialize:

    def test_creates_default_draft(self, store, events):
        document = store.initialize("wf-1")

        assert document.workflow_id == "wf-1"
        assert document.name == "New Workflow"
        assert document.flow_status == FlowStatus.DRAFT
        assert document.nodes == {}
        assert document.edges == {}
        assert document.metadata.created_by == "system"
        assert document.metadata.created_at == START
        assert [e.kind for e in events] == [StoreEventKind.INITIALIZED]

    def test_is_idempotent(self, store, events):
        store.initialize("wf-1")
        store.update("wf-1", {"name": "Renamed"})

        again = store.initialize("wf-1")

        assert again.name == "Renamed"
        assert len(store) == 1
        assert [e.kind for e in events] == [StoreEventKind.INITIALIZED, StoreEventKind.UPDATED]


class TestSetAndGet:

    def test_set_normalizes_node_list(self, store, events):
        stored = store.set("wf-2", {
            "workflowId": "wf-2",
            "name": "Loaded",
            "nodes": [
                {"id": "a", "type": "http", "data": {"label": "A"}},
                {"id": "b", "type": "http", "data": {"label": "B"}},
            ],
            "edges": [{"id": "e1", "source": "a", "target": "b"}],
        })

        assert list(stored.nodes) == ["a", "b"]
        assert list(stored.edges) == ["e1"]
        assert stored.metadata.node_count == 2
        assert events[-1].kind == StoreEventKind.SET
        assert events[-1].document.name == "Loaded"

    def test_set_rebinds_mismatched_id(self, store):
        stored = store.set("wf-key", WorkflowDocument(workflow_id="other"))
        assert stored.workflow_id == "wf-key"
        assert store.get("wf-key").workflow_id == "wf-key"

    def test_get_returns_a_copy(self, store, workflow):
        document = store.get(workflow)
        document.name = "mutated"
        document.nodes["n1"].data.config["query"] = "mutated"

        fresh = store.get(workflow)
        assert fresh.name == "New Workflow"
        assert fresh.nodes["n1"].data.config["query"] == "q1"

    def test_get_absent_is_none(self, store):
        assert store.get("nope") is None

    def test_snapshot_iterates_in_insertion_order(self, store):
        store.initialize("b")
        store.initialize("a")
        assert [wid for wid, _ in store.snapshot()] == ["b", "a"]


class TestDelete:

    def test_delete_existing(self, store, events):
        store.initialize("wf-1")
        assert store.delete("wf-1") is True
        assert "wf-1" not in store
        assert events[-1].kind == StoreEventKind.DELETED

    def test_delete_absent_is_noop(self, store, events):
        assert store.delete("wf-x") is False
        assert events == []

    def test_clear_is_silent(self, store, events):
        store.initialize("wf-1")
        events.clear()
        store.clear()
        assert len(store) == 0
        assert events == []


# ============================================================================
# Not-found handling never creates entries
# ============================================================================

class TestNoCreateOnUpdate:

    def test_update_node_on_missing_workflow(self, store, events):
        assert store.update_node("missing-wf", "n1", {}) is None
        assert events == []
        assert len(store) == 0

    def test_update_on_missing_workflow(self, store, events):
        assert store.update("missing-wf", {"name": "x"}) is None
        assert events == []
        assert store.get("missing-wf") is None

    def test_update_node_on_missing_node(self, store, workflow, events):
        assert store.update_node(workflow, "ghost", {"label": "x"}) is None
        assert events == []
        assert "ghost" not in store.get(workflow).nodes

    def test_update_edge_on_missing_edge(self, store, workflow, events):
        assert store.update_edge(workflow, "ghost", {"label": "x"}) is None
        assert events == []


# ============================================================================
# Node updates
# ============================================================================

class TestUpdateNode:

    def test_config_merge_is_non_destructive(self, store, workflow):
        store.update_node(workflow, "n1", {"config": {"query": "q2"}})

        config = store.get(workflow).nodes["n1"].data.config
        assert config["connectionId"] == "c1"
        assert config["query"] == "q2"

    def test_publishes_updated_with_node_id(self, store, workflow, events):
        store.update_node(workflow, "n1", {"label": "Orders"})
        assert events[-1].kind == StoreEventKind.UPDATED
        assert events[-1].node_id == "n1"
        assert events[-1].workflow_id == workflow

    def test_returned_record_matches_store(self, store, workflow):
        record = store.update_node(workflow, "n1", {"config": {"query": "q3"}})
        assert record == store.get(workflow).nodes["n1"]

    def test_wrapped_config_is_flattened(self, store, workflow):
        store.update_node(workflow, "n1", {"config": {"config": {"query": "q9"}}})

        config = store.get(workflow).nodes["n1"].data.config
        assert "config" not in config
        assert config["query"] == "q9"
        assert config["connectionId"] == "c1"

    def test_doubly_wrapped_config_is_stripped_and_flagged(self, store, workflow):
        record = store.update_node(
            workflow, "n1", {"config": {"config": {"config": {"query": "deep"}}}},
        )

        assert "config" not in record.data.config
        assert record.data.metadata.is_valid is False
        assert NESTED_CONFIG_ERROR in record.data.metadata.errors

    def test_config_metadata_is_stamped(self, store, workflow):
        record = store.update_node(workflow, "n1", {"config": {"query": "q2"}})
        meta = record.data.config["metadata"]
        assert meta["version"] == "1.0.0"
        assert meta["lastModified"] >= meta["created"]

    def test_label_is_mirrored_into_config(self, store, workflow):
        record = store.update_node(workflow, "n1", {"label": "Orders", "description": "d"})

        assert record.data.label == "Orders"
        assert record.data.config["label"] == "Orders"
        assert record.data.config["description"] == "d"

    def test_config_label_is_not_mirrored_back(self, store, workflow):
        before = store.get(workflow).nodes["n1"].data.label
        record = store.update_node(workflow, "n1", {"config": {"label": "Inner"}})

        assert record.data.config["label"] == "Inner"
        assert record.data.label == before

    def test_camel_case_keys_are_accepted(self, store, workflow):
        record = store.update_node(workflow, "n1", {"nodeType": "postgres", "label": "X"})
        assert record.data.node_type == "postgres"

    def test_last_modified_never_decreases(self, store, workflow, clock):
        first = store.update_node(workflow, "n1", {"label": "A"})
        clock.set(START - timedelta(days=1))
        second = store.update_node(workflow, "n1", {"label": "B"})

        assert second.data.metadata.last_modified >= first.data.metadata.last_modified
        updated = store.get(workflow).metadata.updated_at
        assert updated >= first.data.metadata.last_modified

    def test_repeat_update_is_idempotent(self, store, workflow):
        partial = {"label": "Orders", "config": {"query": "select 1"}}
        first = store.update_node(workflow, "n1", partial)
        second = store.update_node(workflow, "n1", partial)

        assert _without_metadata(second.data.config) == _without_metadata(first.data.config)
        assert second.data.label == first.data.label
        assert second.data.metadata.errors == first.data.metadata.errors

    def test_validation_runs_on_every_merge(self, store, workflow):
        record = store.update_node(workflow, "n1", {"config": {"query": ""}})
        assert record.data.metadata.is_valid is False
        assert "Query is required" in record.data.metadata.errors

        record = store.update_node(workflow, "n1", {"config": {"query": "select 1"}})
        assert record.data.metadata.is_valid is True
        assert record.data.metadata.errors == []

    def test_non_object_options_are_flagged(self, store, workflow):
        record = store.update_node(workflow, "n1", {"config": {"options": ["oops"]}})

        assert record.data.metadata.is_valid is False
        assert "Options must be an object" in record.data.metadata.errors
        assert store.get(workflow).nodes["n1"].data.config["options"] == ["oops"]

    def test_malformed_switch_conditions_are_flagged(self, store, workflow):
        place_node(store, workflow, "switch", node_id="s1")
        place_node(store, workflow, "http", node_id="n2")
        store.update(workflow, {"edges": [{"id": "e1", "source": "s1", "target": "n2"}]})

        record = store.update_node(workflow, "s1", {"config": {"conditions": 5}})
        edge = store.update_edge(workflow, "e1", {"sourceHandle": "default"})

        assert "Conditions must be a list" in record.data.metadata.errors
        assert edge.metadata.is_valid is True

    def test_empty_label_is_flagged(self, store, workflow):
        record = store.update_node(workflow, "n1", {"label": ""})
        assert "Node label is required" in record.data.metadata.errors

    def test_other_nodes_are_untouched(self, store, workflow):
        place_node(store, workflow, "http", config={"url": "https://a"}, node_id="n2")
        before = store.get(workflow).nodes["n2"]

        store.update_node(workflow, "n1", {"label": "Changed"})

        assert store.get(workflow).nodes["n2"] == before


# ============================================================================
# Document and edge updates
# ============================================================================

class TestUpdateDocument:

    def test_scalars_and_tags(self, store):
        store.initialize("wf-1")
        document = store.update("wf-1", {
            "name": "Billing",
            "flowStatus": "active",
            "metadata": {"tags": ["a", "b", "a"]},
        })

        assert document.name == "Billing"
        assert document.flow_status == FlowStatus.ACTIVE
        assert document.metadata.tags == ["a", "b"]

    def test_workflow_id_cannot_change(self, store):
        store.initialize("wf-1")
        document = store.update("wf-1", {"workflowId": "other"})
        assert document.workflow_id == "wf-1"
        assert "other" not in store

    def test_node_count_tracks_nodes(self, store, workflow):
        place_node(store, workflow, "http", node_id="n2")
        assert store.get(workflow).metadata.node_count == 2

    def test_execution_passes_through(self, store):
        store.initialize("wf-1")
        document = store.update("wf-1", {
            "execution": {"mode": "parallel", "enabled": False, "timeoutMs": 500},
        })
        assert document.execution.mode == "parallel"
        assert document.to_wire()["execution"]["timeoutMs"] == 500


class TestUpdateEdge:

    @pytest.fixture
    def edge_id(self, store, workflow):
        place_node(store, workflow, "http", node_id="n2")
        store.update(workflow, {"edges": [{"id": "e1", "source": "n1", "target": "n2"}]})
        return "e1"

    def test_merges_fields(self, store, workflow, edge_id, events):
        edge = store.update_edge(workflow, edge_id, {"label": "on success"})
        assert edge.label == "on success"
        assert edge.metadata.is_valid is True
        assert events[-1].edge_id == edge_id

    def test_unknown_handle_is_flagged(self, store, workflow, edge_id):
        edge = store.update_edge(workflow, edge_id, {"sourceHandle": "nowhere"})
        assert edge.metadata.is_valid is False
        assert any("nowhere" in e for e in edge.metadata.errors)

    def test_known_handle_is_valid(self, store, workflow, edge_id):
        edge = store.update_edge(workflow, edge_id, {"sourceHandle": "rows"})
        assert edge.metadata.is_valid is True
