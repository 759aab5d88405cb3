"""
Document Store — the in-memory, keyed table of open workflow documents.

Holds one ``WorkflowDocument`` per workflow id for the lifetime of the
process (or of the store instance, in tests). All mutations go through
the merge engine and each commit is announced on the store's event
channel before the mutating call returns.

Absent ids are never created implicitly: ``update``, ``update_node`` and
``update_edge`` return ``None`` and publish nothing when the target does
not exist.

Readers always receive copies. A document returned by ``get`` does not
change when later commits happen; re-read to observe them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from logging import getLogger
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from flowcanvas.config import EditorConfig, get_editor_config
from flowcanvas.workflow import merge_engine
from flowcanvas.workflow.event_channel import EventChannel, Subscription
from flowcanvas.workflow.nodes.base import NodeRegistry
from flowcanvas.workflow.workflow_model import (
    EdgeRecord,
    NodeRecord,
    WorkflowDocument,
    WorkflowMetadata,
    utcnow,
)

logger = getLogger(__name__)


class StoreEventKind(str, Enum):
    INITIALIZED = "initialized"
    SET = "set"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class StoreEvent:
    """Mutation notification.

    Only ``set`` carries the full document. Other events carry ids and
    subscribers re-read the store; ``deleted`` has no document.
    """

    kind: StoreEventKind
    workflow_id: str
    node_id: Optional[str] = None
    edge_id: Optional[str] = None
    document: Optional[WorkflowDocument] = None


StoreCallback = Callable[[StoreEvent], None]


class DocumentStore:
    """Keyed store of workflow documents with change notification."""

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        registry: Optional[NodeRegistry] = None,
        config: Optional[EditorConfig] = None,
    ) -> None:
        self._clock = clock or utcnow
        self._registry = registry
        self._config = config or get_editor_config()
        self._documents: Dict[str, WorkflowDocument] = {}
        self._events: EventChannel[StoreEvent] = EventChannel("document-store")

    @property
    def registry(self) -> Optional[NodeRegistry]:
        return self._registry

    @property
    def config(self) -> EditorConfig:
        return self._config

    def now(self) -> datetime:
        return self._clock()

    # ── Observation ──

    def subscribe(self, callback: StoreCallback) -> Subscription:
        return self._events.subscribe(callback)

    def snapshot(self) -> Iterator[Tuple[str, WorkflowDocument]]:
        """Iterate ``(workflow_id, copy)`` over all entries, in insertion order."""
        for workflow_id, document in list(self._documents.items()):
            yield workflow_id, document.model_copy(deep=True)

    def __contains__(self, workflow_id: object) -> bool:
        return workflow_id in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    # ── CRUD ──

    def initialize(self, workflow_id: str) -> WorkflowDocument:
        """Create the default draft document unless one already exists."""
        existing = self._documents.get(workflow_id)
        if existing is not None:
            return existing.model_copy(deep=True)

        now = self.now()
        document = WorkflowDocument(
            workflow_id=workflow_id,
            name=self._config.default_workflow_name,
            flow_type=self._config.default_flow_type,
            metadata=WorkflowMetadata(
                created_at=now,
                updated_at=now,
                created_by=self._config.default_created_by,
            ),
        )
        self._documents[workflow_id] = document
        logger.info(f"Workflow document initialized: {workflow_id}")
        self._events.publish(StoreEvent(StoreEventKind.INITIALIZED, workflow_id))
        return document.model_copy(deep=True)

    def get(self, workflow_id: str) -> Optional[WorkflowDocument]:
        document = self._documents.get(workflow_id)
        return document.model_copy(deep=True) if document is not None else None

    def set(
        self,
        workflow_id: str,
        document: Union[WorkflowDocument, Mapping[str, Any]],
    ) -> WorkflowDocument:
        """Replace the entry unconditionally (used when loading)."""
        if isinstance(document, WorkflowDocument):
            stored = document.model_copy(deep=True)
        else:
            stored = WorkflowDocument.model_validate(document)
        if stored.workflow_id != workflow_id:
            logger.warning(
                f"Document id {stored.workflow_id} stored under key {workflow_id}; "
                f"rebinding to the key"
            )
            stored.workflow_id = workflow_id
        stored.metadata.node_count = len(stored.nodes)

        self._documents[workflow_id] = stored
        logger.debug(f"Workflow document set: {workflow_id} ({len(stored.nodes)} nodes)")
        self._events.publish(StoreEvent(
            StoreEventKind.SET, workflow_id, document=stored.model_copy(deep=True),
        ))
        return stored.model_copy(deep=True)

    def update(
        self,
        workflow_id: str,
        partial: Mapping[str, Any],
    ) -> Optional[WorkflowDocument]:
        """Merge ``partial`` into the document; ``None`` if it is absent."""
        existing = self._documents.get(workflow_id)
        if existing is None:
            logger.warning(f"update: workflow not found: {workflow_id}")
            return None
        updated = merge_engine.merge_document(existing, partial, self.now())
        self._commit(updated, StoreEvent(StoreEventKind.UPDATED, workflow_id))
        return updated.model_copy(deep=True)

    def update_node(
        self,
        workflow_id: str,
        node_id: str,
        partial: Mapping[str, Any],
    ) -> Optional[NodeRecord]:
        """Merge a partial node-data update; ``None`` if workflow or node is absent."""
        existing = self._documents.get(workflow_id)
        if existing is None:
            logger.warning(f"update_node: workflow not found: {workflow_id}")
            return None
        record = existing.nodes.get(node_id)
        if record is None:
            logger.warning(f"update_node: node {node_id} not found in {workflow_id}")
            return None

        definition = self._registry.get(record.type) if self._registry else None
        now = self.now()
        merged = merge_engine.merge_node(record, partial, now, definition)
        if not merged.data.metadata.is_valid:
            logger.debug(f"Node {node_id} invalid: {merged.data.metadata.errors}")

        nodes = dict(existing.nodes)
        nodes[node_id] = merged
        updated = merge_engine.merge_document(existing, {"nodes": nodes}, now)
        self._commit(updated, StoreEvent(StoreEventKind.UPDATED, workflow_id, node_id=node_id))
        return updated.nodes[node_id].model_copy(deep=True)

    def update_edge(
        self,
        workflow_id: str,
        edge_id: str,
        partial: Mapping[str, Any],
    ) -> Optional[EdgeRecord]:
        """Merge a partial edge update; ``None`` if workflow or edge is absent."""
        existing = self._documents.get(workflow_id)
        if existing is None:
            logger.warning(f"update_edge: workflow not found: {workflow_id}")
            return None
        edge = existing.edges.get(edge_id)
        if edge is None:
            logger.warning(f"update_edge: edge {edge_id} not found in {workflow_id}")
            return None

        now = self.now()
        merged = merge_engine.merge_edge(edge, partial, now)
        errors = merge_engine.validate_edge(merged, existing, self._registry)
        merged = merge_engine.mark_edge_validation(merged, errors, now)

        edges = dict(existing.edges)
        edges[edge_id] = merged
        updated = merge_engine.merge_document(existing, {"edges": edges}, now)
        self._commit(updated, StoreEvent(StoreEventKind.UPDATED, workflow_id, edge_id=edge_id))
        return updated.edges[edge_id].model_copy(deep=True)

    def delete(self, workflow_id: str) -> bool:
        """Remove the entry. Returns False (and publishes nothing) if absent."""
        if self._documents.pop(workflow_id, None) is None:
            logger.warning(f"delete: workflow not found: {workflow_id}")
            return False
        logger.info(f"Workflow document deleted: {workflow_id}")
        self._events.publish(StoreEvent(StoreEventKind.DELETED, workflow_id))
        return True

    def clear(self) -> None:
        """Drop every entry without notifying (process shutdown, tests)."""
        self._documents.clear()

    # ── Internals ──

    def _commit(self, document: WorkflowDocument, event: StoreEvent) -> None:
        self._documents[event.workflow_id] = document
        logger.debug(
            f"Commit {event.workflow_id}: {len(document.nodes)} nodes, "
            f"{len(document.edges)} edges"
        )
        self._events.publish(event)


# ── Singleton ──

_store_instance: Optional[DocumentStore] = None


def get_document_store() -> DocumentStore:
    """Return the process-wide DocumentStore."""
    global _store_instance
    if _store_instance is None:
        from flowcanvas.workflow.nodes import get_node_registry
        _store_instance = DocumentStore(registry=get_node_registry())
    return _store_instance
