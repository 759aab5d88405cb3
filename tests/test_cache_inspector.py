"""Debug views over the document store."""

from flowcanvas.workflow.cache_inspector import (
    CacheMonitor,
    inspect_store,
    inspect_workflow_nodes,
)
from flowcanvas.workflow.document_store import StoreEventKind

from conftest import place_node


def test_inspect_store_rows(store, workflow):
    store.initialize("wf-2")
    place_node(store, workflow, "http", node_id="bad")  # no url: invalid

    rows = inspect_store(store)

    assert [r["workflow_id"] for r in rows] == ["wf-1", "wf-2"]
    first = rows[0]
    assert first["node_count"] == 2
    assert first["edge_count"] == 0
    assert first["flow_status"] == "draft"
    assert first["invalid_nodes"] == ["bad"]


def test_inspect_workflow_nodes(store, workflow):
    rows = inspect_workflow_nodes(store, workflow)

    assert len(rows) == 1
    row = rows[0]
    assert row["id"] == "n1"
    assert row["type"] == "postgres"
    assert row["valid"] is True
    assert row["errors"] == []
    assert row["incoming"] == row["outgoing"] == 0


def test_inspect_missing_workflow(store):
    assert inspect_workflow_nodes(store, "nope") is None


def test_inspect_does_not_publish(store, workflow, events):
    inspect_store(store)
    inspect_workflow_nodes(store, workflow)
    assert events == []


class TestCacheMonitor:

    def test_counts_updates(self, store):
        monitor = CacheMonitor(store)
        store.initialize("wf-1")
        store.update("wf-1", {"name": "x"})
        store.delete("wf-1")

        assert monitor.update_count == 3
        assert monitor.count(StoreEventKind.UPDATED) == 1
        assert monitor.last_event.kind == StoreEventKind.DELETED
        assert monitor.last_update is not None
        assert monitor.summary()["by_kind"]["initialized"] == 1

    def test_reset_and_close(self, store):
        monitor = CacheMonitor(store)
        store.initialize("wf-1")
        monitor.reset()
        assert monitor.update_count == 0

        monitor.close()
        store.update("wf-1", {"name": "x"})
        assert monitor.update_count == 0
