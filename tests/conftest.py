"""
Pytest fixtures for the workflow state cache tests.

- Controllable clock
- Isolated DocumentStore per test
- Store event recorder
- Helpers for placing nodes into a stored workflow
"""

from datetime import datetime, timedelta, timezone
from typing import List

import pytest

from flowcanvas.config import EditorConfig, reset_configs
from flowcanvas.workflow import merge_engine
from flowcanvas.workflow.document_store import DocumentStore, StoreEvent
from flowcanvas.workflow.nodes import get_node_registry

START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Returns ``now`` and then advances it by ``step``."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.now
        self.now = self.now + self.step
        return value

    def set(self, value: datetime) -> None:
        self.now = value


# ============================================================================
# CORE FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def _fresh_configs():
    reset_configs()
    yield
    reset_configs()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    return get_node_registry()


@pytest.fixture
def store(clock, registry):
    """An isolated store; never the process singleton."""
    return DocumentStore(clock=clock, registry=registry, config=EditorConfig())


@pytest.fixture
def events(store) -> List[StoreEvent]:
    """Every event the store publishes, in order."""
    recorded: List[StoreEvent] = []
    store.subscribe(recorded.append)
    return recorded


# ============================================================================
# WORKFLOW FIXTURES
# ============================================================================

def place_node(store, workflow_id, node_type, config=None, node_id=None, position=None):
    """Add a node of ``node_type`` to a stored workflow; returns its id."""
    record = merge_engine.new_node_record(
        node_type,
        position or {"x": 0, "y": 0},
        store.registry.get(node_type),
        {"config": config or {}},
        now=store.now(),
        node_id=node_id,
    )
    document = store.get(workflow_id)
    nodes = dict(document.nodes)
    nodes[record.id] = record
    store.update(workflow_id, {"nodes": nodes})
    return record.id


@pytest.fixture
def workflow(store):
    """Workflow 'wf-1' holding one postgres node 'n1'."""
    store.initialize("wf-1")
    place_node(
        store, "wf-1", "postgres",
        config={"connectionId": "c1", "query": "q1"},
        node_id="n1",
    )
    return "wf-1"
