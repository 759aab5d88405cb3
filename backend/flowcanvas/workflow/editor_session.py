"""
Editor Session — per-open-workflow view state reconciled with the store.

An ``EditorSession`` holds what the canvas renders for one workflow: the
ordered node and edge lists, the selected node, and the unsaved-changes
flag. Local edits are pushed to the ``DocumentStore`` immediately, except
node drags: those update the local list at once and reach the store in a
single commit after a short debounce window.

The session subscribes to the store. Whenever its workflow is committed,
by this session or anyone else, it re-reads the document and rebuilds its
lists in document order. Positions of nodes with a drag still pending
are kept from the local list so the debounce does not make nodes jump.

Usage::

    session = EditorSession("wf-1", store=store)
    session.initialize_workflow()
    node = session.add_node("postgres", {"x": 0, "y": 0})
    session.apply_node_edit(node.id, {"config": {"query": "select 1"}})
    session.move_node(node.id, {"x": 40, "y": 80})   # needs a running loop
"""

from __future__ import annotations

import asyncio
import uuid
from logging import getLogger
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from flowcanvas.logging import SessionLogger, get_session_logger, remove_session_logger
from flowcanvas.workflow import merge_engine
from flowcanvas.workflow.document_store import (
    DocumentStore,
    StoreEvent,
    StoreEventKind,
    get_document_store,
)
from flowcanvas.workflow.nodes import NodeRegistry, get_node_registry
from flowcanvas.workflow.workflow_model import (
    EdgeRecord,
    FlowStatus,
    NodeRecord,
    Position,
    WorkflowDocument,
)

logger = getLogger(__name__)


# ============================================================================
# Debounce timer
# ============================================================================


class Debouncer:
    """Single-slot cancellable timer on an asyncio event loop.

    ``schedule`` cancels any pending call and starts a new window; the
    callback runs once, ``delay`` seconds after the last ``schedule``.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.delay = delay
        self._callback = callback
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self) -> None:
        """Restart the window. Raises RuntimeError with no loop available."""
        loop = self._loop or asyncio.get_running_loop()
        self.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def flush(self) -> bool:
        """Run the pending callback now. Returns False if nothing was pending."""
        if not self.cancel():
            return False
        self._callback()
        return True

    def _fire(self) -> None:
        self._handle = None
        self._callback()


# ============================================================================
# Editor Session
# ============================================================================


class EditorSession:
    """View state of one open workflow editor."""

    def __init__(
        self,
        workflow_id: Optional[str] = None,
        store: Optional[DocumentStore] = None,
        registry: Optional[NodeRegistry] = None,
        is_new: bool = False,
        debounce_seconds: Optional[float] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.workflow_id = workflow_id or str(uuid.uuid4())
        # An empty store is falsy (it has __len__).
        self._store = store if store is not None else get_document_store()
        self._registry = registry or self._store.registry or get_node_registry()
        self.is_new = is_new
        self.selected_node_id: Optional[str] = None
        self.dirty = False

        self._nodes: List[NodeRecord] = []
        self._edges: List[EdgeRecord] = []
        self._pending_moves: Dict[str, Position] = {}

        delay = (
            debounce_seconds
            if debounce_seconds is not None
            else self._store.config.debounce_seconds
        )
        self._debouncer = Debouncer(delay, self._commit_moves, loop)
        self._log: SessionLogger = get_session_logger(self.workflow_id)
        self._subscription = self._store.subscribe(self._on_store_event)

    # ── Views ──

    @property
    def nodes(self) -> List[NodeRecord]:
        return list(self._nodes)

    @property
    def edges(self) -> List[EdgeRecord]:
        return list(self._edges)

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def log(self) -> SessionLogger:
        return self._log

    @property
    def has_pending_moves(self) -> bool:
        return self._debouncer.pending

    def get_node(self, node_id: str) -> Optional[NodeRecord]:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    @property
    def selected_node(self) -> Optional[NodeRecord]:
        if self.selected_node_id is None:
            return None
        return self.get_node(self.selected_node_id)

    def canvas_state(self) -> Dict[str, Any]:
        """What the canvas renders: ordered nodes, ordered edges, selection."""
        return {
            "nodes": self.nodes,
            "edges": self.edges,
            "selected_node_id": self.selected_node_id,
        }

    # ── Lifecycle ──

    def initialize_workflow(self) -> WorkflowDocument:
        """Start a brand-new draft; it is deleted again if abandoned.

        An entry that already exists in the store is opened as is and is
        not owned by this session, so ``clear_session`` keeps it.
        """
        created = self.workflow_id not in self._store
        document = self._store.initialize(self.workflow_id)
        if created:
            self.is_new = True
            self._log.info("New workflow initialized")
        else:
            self._log.info("Workflow already open in the store; not marked new")
        self._materialize(document)
        return document

    def load_workflow(self, document: Union[WorkflowDocument, Mapping[str, Any]]) -> WorkflowDocument:
        """Show a persisted document; the session starts clean."""
        self._debouncer.cancel()
        self._pending_moves.clear()
        stored = self._store.set(self.workflow_id, document)
        self._materialize(stored)
        self.is_new = False
        self.dirty = False
        self._log.info(f"Workflow loaded: {len(stored.nodes)} nodes, {len(stored.edges)} edges")
        return stored

    def mark_saved(self) -> None:
        """Saved transition, owned by the persistence layer."""
        self.dirty = False
        self.is_new = False
        self._log.info("Workflow saved")

    def clear_session(self) -> None:
        """Drop local state; an unsaved new workflow is removed from the store."""
        self._debouncer.cancel()
        self._pending_moves.clear()
        self._nodes = []
        self._edges = []
        self.selected_node_id = None
        if self.is_new and self.workflow_id in self._store:
            self._log.info("Discarding unsaved new workflow")
            self._store.delete(self.workflow_id)

    def close(self) -> None:
        """Stop observing the store. Pending drags are dropped."""
        self._debouncer.cancel()
        self._pending_moves.clear()
        self._subscription.close()
        remove_session_logger(self.workflow_id)

    # ── Selection ──

    def select_node(self, node_id: Optional[str]) -> bool:
        """Select one node (or none). Session-local; the store is untouched."""
        if node_id is not None and self.get_node(node_id) is None:
            self._log.warning(f"select_node: unknown node {node_id}")
            return False
        self.selected_node_id = node_id
        return True

    # ── Node edits ──

    def add_node(
        self,
        node_type: str,
        position: Any,
        initial_data: Optional[Mapping[str, Any]] = None,
    ) -> NodeRecord:
        """Place a new node of ``node_type`` built from registry defaults."""
        definition = self._registry.get(node_type)
        if definition is None:
            self._log.warning(f"No node definition found for type: {node_type}")

        record = merge_engine.new_node_record(
            node_type, position, definition, initial_data, now=self._store.now(),
        )
        self._nodes.append(record)
        self.dirty = True
        self._log.debug(f"Node added: {record.id}")

        document = self._store.get(self.workflow_id)
        if document is None:
            self._log.warning("add_node: workflow not in store; node kept locally only")
            return record

        nodes = dict(document.nodes)
        nodes[record.id] = record
        self._store.update(self.workflow_id, {"nodes": nodes})
        return self.get_node(record.id) or record

    def apply_node_edit(
        self,
        node_id: str,
        partial: Mapping[str, Any],
    ) -> Optional[NodeRecord]:
        """Forward a panel edit to the store and adopt the merged record."""
        record = self._store.update_node(self.workflow_id, node_id, partial)
        if record is None:
            self._log.warning(f"apply_node_edit: node {node_id} not found")
            return None
        self._replace_node(record)
        self.dirty = True
        return self.get_node(node_id)

    def move_node(self, node_id: str, position: Any) -> bool:
        """Move locally now; commit to the store after the debounce window."""
        index = self._index_of(node_id)
        if index is None:
            self._log.warning(f"move_node: unknown node {node_id}")
            return False
        new_position = Position.model_validate(position)
        # Raises without a running loop; nothing local may change before it.
        self._debouncer.schedule()
        self._nodes[index] = self._nodes[index].model_copy(update={"position": new_position})
        self._pending_moves[node_id] = new_position
        self.dirty = True
        return True

    def flush_pending(self) -> bool:
        """Commit pending drags now instead of waiting for the timer."""
        return self._debouncer.flush()

    def cancel_pending(self) -> None:
        """Forget pending drags and snap back to the stored positions."""
        self._debouncer.cancel()
        self._pending_moves.clear()
        self.reconcile()

    def delete_node(self, node_id: str) -> bool:
        """Remove a node and every edge touching it."""
        if self._index_of(node_id) is None:
            self._log.warning(f"delete_node: unknown node {node_id}")
            return False
        self._nodes = [n for n in self._nodes if n.id != node_id]
        self._edges = [e for e in self._edges if node_id not in (e.source, e.target)]
        self._pending_moves.pop(node_id, None)
        if self.selected_node_id == node_id:
            self.selected_node_id = None
        self.dirty = True

        document = self._store.get(self.workflow_id)
        if document is not None:
            nodes = {k: v for k, v in document.nodes.items() if k != node_id}
            edges = {
                k: v for k, v in document.edges.items()
                if node_id not in (v.source, v.target)
            }
            self._store.update(self.workflow_id, {"nodes": nodes, "edges": edges})
        self._log.debug(f"Node deleted: {node_id}")
        return True

    # ── Edge edits ──

    def connect(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
        edge_type: Optional[str] = None,
        label: str = "",
    ) -> EdgeRecord:
        """Add an edge. Bad endpoints or handles are flagged, not rejected."""
        now = self._store.now()
        edge = merge_engine.new_edge_record(
            source, target, source_handle, target_handle,
            now=now, edge_type=edge_type, label=label,
        )
        document = self._store.get(self.workflow_id)
        if document is not None:
            errors = merge_engine.validate_edge(edge, document, self._registry)
            edge = merge_engine.mark_edge_validation(edge, errors, now)
            if errors:
                self._log.warning(f"Edge {edge.id} invalid: {'; '.join(errors)}")

        self._edges.append(edge)
        self.dirty = True

        if document is None:
            self._log.warning("connect: workflow not in store; edge kept locally only")
            return edge
        edges = dict(document.edges)
        edges[edge.id] = edge
        self._store.update(self.workflow_id, {"edges": edges})
        return self._find_edge(edge.id) or edge

    def delete_edge(self, edge_id: str) -> bool:
        if self._find_edge(edge_id) is None:
            self._log.warning(f"delete_edge: unknown edge {edge_id}")
            return False
        self._edges = [e for e in self._edges if e.id != edge_id]
        self.dirty = True
        document = self._store.get(self.workflow_id)
        if document is not None:
            edges = {k: v for k, v in document.edges.items() if k != edge_id}
            self._store.update(self.workflow_id, {"edges": edges})
        return True

    # ── Workflow-level edits ──

    def update_workflow_metadata(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        flow_status: Optional[Union[FlowStatus, str]] = None,
        tenant_id: Optional[str] = None,
    ) -> Optional[WorkflowDocument]:
        partial: Dict[str, Any] = {
            "name": name,
            "description": description,
            "flow_status": flow_status,
            "tenant_id": tenant_id,
        }
        if tags is not None:
            partial["metadata"] = {"tags": list(tags)}
        document = self._store.update(self.workflow_id, partial)
        if document is not None:
            self.dirty = True
        return document

    # ── Canvas callbacks ──

    def on_node_move(self, node_id: str, position: Any) -> bool:
        return self.move_node(node_id, position)

    def on_connect(
        self,
        source: str,
        target: str,
        source_handle: Optional[str] = None,
        target_handle: Optional[str] = None,
    ) -> EdgeRecord:
        return self.connect(source, target, source_handle, target_handle)

    def on_select(self, node_id: Optional[str]) -> bool:
        return self.select_node(node_id)

    # ── Reconciliation ──

    def reconcile(self) -> None:
        """Rebuild the local lists from the store's current document."""
        document = self._store.get(self.workflow_id)
        if document is not None:
            self._materialize(document)

    def _on_store_event(self, event: StoreEvent) -> None:
        if event.workflow_id != self.workflow_id:
            return
        if event.kind == StoreEventKind.DELETED:
            self._debouncer.cancel()
            self._pending_moves.clear()
            self._nodes = []
            self._edges = []
            self.selected_node_id = None
            return
        if event.document is not None:
            self._materialize(event.document)
        else:
            self.reconcile()

    def _materialize(self, document: WorkflowDocument) -> None:
        nodes: List[NodeRecord] = []
        for record in document.nodes.values():
            pending = self._pending_moves.get(record.id)
            if pending is not None:
                record = record.model_copy(update={"position": pending})
            nodes.append(record)
        self._nodes = nodes
        self._edges = document.edge_list()
        if self.selected_node_id is not None and self.selected_node_id not in document.nodes:
            self.selected_node_id = None

    def _commit_moves(self) -> None:
        moves = self._pending_moves
        self._pending_moves = {}
        if not moves:
            return
        document = self._store.get(self.workflow_id)
        if document is None:
            self._log.warning("Position sync skipped: workflow not in store")
            return
        now = self._store.now()
        nodes = dict(document.nodes)
        for node_id, position in moves.items():
            if node_id in nodes:
                nodes[node_id] = merge_engine.move_node(nodes[node_id], position, now)
        self._store.update(self.workflow_id, {"nodes": nodes})
        self._log.debug(f"Position sync committed for {len(moves)} node(s)")

    def _replace_node(self, record: NodeRecord) -> None:
        index = self._index_of(record.id)
        pending = self._pending_moves.get(record.id)
        if pending is not None:
            record = record.model_copy(update={"position": pending})
        if index is None:
            self._nodes.append(record)
        else:
            self._nodes[index] = record

    def _index_of(self, node_id: str) -> Optional[int]:
        for i, node in enumerate(self._nodes):
            if node.id == node_id:
                return i
        return None

    def _find_edge(self, edge_id: str) -> Optional[EdgeRecord]:
        for edge in self._edges:
            if edge.id == edge_id:
                return edge
        return None
