"""
Workflow State Cache — in-memory state for the visual workflow editor.

Holds open workflow documents while they are edited on the canvas,
merges partial edits from config panels, and hands documents to a
persistence gateway on explicit save.

Architecture:
    nodes/           — NodeDefinition base + the registered node kinds
    workflow_model   — Documents, node records, edge records
    merge_engine     — The single merge algorithm for partial updates
    document_store   — Keyed in-memory store with change events
    editor_session   — Per-editor view state, debounced drags
    persistence      — Gateway boundary + JSON file gateway
    cache_inspector  — Read-only debug views of the store
"""

from flowcanvas.workflow.workflow_model import (
    EdgeRecord,
    ExecutionConfig,
    FlowStatus,
    NodeData,
    NodeRecord,
    PortDescriptor,
    Position,
    RecordMetadata,
    WorkflowDocument,
    WorkflowMetadata,
)
from flowcanvas.workflow.errors import (
    PersistenceError,
    WorkflowAlreadyExistsError,
    WorkflowError,
    WorkflowNotFoundError,
)
from flowcanvas.workflow.event_channel import EventChannel, Subscription
from flowcanvas.workflow.nodes import (
    NodeDefinition,
    NodeParameter,
    NodeRegistry,
    get_node_registry,
    register_all_nodes,
)
from flowcanvas.workflow.document_store import (
    DocumentStore,
    StoreEvent,
    StoreEventKind,
    get_document_store,
)
from flowcanvas.workflow.editor_session import Debouncer, EditorSession
from flowcanvas.workflow.persistence import (
    JsonFileGateway,
    PersistenceGateway,
    SaveMode,
    SaveResult,
    get_workflow_gateway,
    load_workflow_into_store,
    save_workflow_from_store,
)
from flowcanvas.workflow.cache_inspector import (
    CacheMonitor,
    inspect_store,
    inspect_workflow_nodes,
)

__all__ = [
    "EdgeRecord",
    "ExecutionConfig",
    "FlowStatus",
    "NodeData",
    "NodeRecord",
    "PortDescriptor",
    "Position",
    "RecordMetadata",
    "WorkflowDocument",
    "WorkflowMetadata",
    "PersistenceError",
    "WorkflowAlreadyExistsError",
    "WorkflowError",
    "WorkflowNotFoundError",
    "EventChannel",
    "Subscription",
    "NodeDefinition",
    "NodeParameter",
    "NodeRegistry",
    "get_node_registry",
    "register_all_nodes",
    "DocumentStore",
    "StoreEvent",
    "StoreEventKind",
    "get_document_store",
    "Debouncer",
    "EditorSession",
    "JsonFileGateway",
    "PersistenceGateway",
    "SaveMode",
    "SaveResult",
    "get_workflow_gateway",
    "load_workflow_into_store",
    "save_workflow_from_store",
    "CacheMonitor",
    "inspect_store",
    "inspect_workflow_nodes",
]
