"""
Cache Inspector — read-only views of the document store for debug panels.

* ``inspect_store``          : one summary row per open workflow
* ``inspect_workflow_nodes`` : one row per node of a workflow
* ``CacheMonitor``           : counts commits and remembers the last one

Nothing here mutates the store.
"""

from __future__ import annotations

from datetime import datetime
from logging import getLogger
from typing import Any, Dict, List, Optional

from flowcanvas.workflow.document_store import DocumentStore, StoreEvent, StoreEventKind

logger = getLogger(__name__)


# ====================================================================
# Public API
# ====================================================================


def inspect_store(store: DocumentStore) -> List[Dict[str, Any]]:
    """Summary rows for every workflow in the store, in insertion order."""
    rows: List[Dict[str, Any]] = []
    for workflow_id, document in store.snapshot():
        invalid = [n.id for n in document.node_list() if not n.data.metadata.is_valid]
        rows.append({
            "workflow_id": workflow_id,
            "name": document.name,
            "flow_status": document.flow_status.value,
            "node_count": len(document.nodes),
            "edge_count": len(document.edges),
            "invalid_nodes": invalid,
            "updated_at": document.metadata.updated_at.isoformat(),
        })
    return rows


def inspect_workflow_nodes(
    store: DocumentStore,
    workflow_id: str,
) -> Optional[List[Dict[str, Any]]]:
    """Per-node rows for one workflow; ``None`` if it is not open."""
    document = store.get(workflow_id)
    if document is None:
        logger.debug(f"inspect_workflow_nodes: workflow not found: {workflow_id}")
        return None
    return [
        {
            "id": node.id,
            "type": node.type,
            "label": node.data.label,
            "position": {"x": node.position.x, "y": node.position.y},
            "valid": node.data.metadata.is_valid,
            "errors": list(node.data.metadata.errors),
            "last_modified": node.data.metadata.last_modified.isoformat(),
            "incoming": len(document.get_edges_to(node.id)),
            "outgoing": len(document.get_edges_from(node.id)),
        }
        for node in document.node_list()
    ]


class CacheMonitor:
    """Subscribes to a store and tracks how often it changes."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self.update_count = 0
        self.last_update: Optional[datetime] = None
        self.last_event: Optional[StoreEvent] = None
        self._counts: Dict[StoreEventKind, int] = {kind: 0 for kind in StoreEventKind}
        self._subscription = store.subscribe(self._on_event)

    def _on_event(self, event: StoreEvent) -> None:
        self.update_count += 1
        self.last_update = self._store.now()
        self.last_event = event
        self._counts[event.kind] += 1

    def count(self, kind: StoreEventKind) -> int:
        return self._counts[kind]

    def summary(self) -> Dict[str, Any]:
        return {
            "workflows": len(self._store),
            "update_count": self.update_count,
            "last_update": self.last_update.isoformat() if self.last_update else None,
            "by_kind": {kind.value: n for kind, n in self._counts.items()},
        }

    def reset(self) -> None:
        self.update_count = 0
        self.last_update = None
        self.last_event = None
        self._counts = {kind: 0 for kind in StoreEventKind}

    def close(self) -> None:
        self._subscription.close()
