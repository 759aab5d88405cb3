"""
Workflow Data Models — documents, node records, and edge records.

These are the serializable structures held by ``DocumentStore`` and
written by the persistence gateways. Attributes are snake_case in
Python; the wire shape is camelCase (``workflowId``, ``lastModified``)
so stored documents stay compatible with the canvas front end.

``nodes`` and ``edges`` are always insertion-ordered mappings keyed by
id. Lists are accepted on input and normalized once, at validation time.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FlowStatus(str, Enum):
    """Workflow publication status."""
    DRAFT = "draft"
    ACTIVE = "active"


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Node & edge parts
# ============================================================================


class Position(_WireModel):
    x: float = 0
    y: float = 0


PortType = Literal["string", "number", "boolean", "object", "array"]


class PortDescriptor(_WireModel):
    """A typed connection point on a node (input or output)."""

    id: str
    label: str = ""
    type: PortType = "object"
    required: bool = False
    default: Any = None


class RecordMetadata(_WireModel):
    """Bookkeeping and validation state shared by nodes and edges."""

    created: datetime = Field(default_factory=utcnow)
    last_modified: datetime = Field(default_factory=utcnow)
    version: str = "1.0.0"
    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    last_validated: Optional[datetime] = None
    last_tested: Optional[datetime] = None
    test_status: Optional[Literal["success", "failure"]] = None


class NodeData(_WireModel):
    """The editable payload of a node.

    ``config`` is owned by the node kind and opaque to the store. It must
    never contain a key named ``config``.
    """

    label: str = ""
    node_type: str = ""
    category: str = ""
    description: str = ""
    icon: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    metadata: RecordMetadata = Field(default_factory=RecordMetadata)
    inputs: List[PortDescriptor] = Field(default_factory=list)
    outputs: List[PortDescriptor] = Field(default_factory=list)


class NodeRecord(_WireModel):
    """A single node placed on the workflow canvas.

    ``type`` references a registered ``NodeDefinition.node_type``.
    """

    id: str
    type: str
    position: Position = Field(default_factory=Position)
    data: NodeData = Field(default_factory=NodeData)


class EdgeRecord(_WireModel):
    """A directed edge between two node records.

    ``source_handle`` names the output port on the source node; it is
    only needed for kinds with several outputs (switch, parallel, loop).
    """

    id: str = Field(default_factory=lambda: f"edge-{uuid.uuid4()}")
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    type: Optional[str] = None
    label: str = ""
    last_modified: datetime = Field(default_factory=utcnow)
    metadata: RecordMetadata = Field(default_factory=RecordMetadata)


# ============================================================================
# Document parts
# ============================================================================


class RetryPolicy(_WireModel):
    max_attempts: int = 3
    initial_interval: str = "1s"


class ExecutionConfig(_WireModel):
    """Execution settings. Passed through untouched by the editor."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow",
    )

    mode: Literal["sequential", "parallel"] = "sequential"
    enabled: bool = True
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)


class WorkflowMetadata(_WireModel):
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    created_by: str = "system"
    tags: List[str] = Field(default_factory=list)
    node_count: int = 0

    @field_validator("tags", mode="after")
    @classmethod
    def _dedupe_tags(cls, v: List[str]) -> List[str]:
        # Tags behave as a set; first occurrence keeps its position.
        return list(dict.fromkeys(v))


def _keyed_by_id(value: Any) -> Any:
    """Normalize a list or id-keyed mapping of records to an ordered dict."""
    if value is None:
        return {}
    if isinstance(value, dict):
        items = []
        for key, item in value.items():
            if isinstance(item, dict) and "id" not in item:
                item = {**item, "id": key}
            items.append(item)
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        return value
    keyed: Dict[str, Any] = {}
    for item in items:
        item_id = item.get("id") if isinstance(item, dict) else getattr(item, "id", None)
        if item_id is None:
            # Leave it for pydantic to reject with a proper error.
            return items
        keyed[item_id] = item
    return keyed


class WorkflowDocument(_WireModel):
    """A complete workflow graph document.

    Contains all node records, edges, and metadata for one workflow id.
    """

    workflow_id: str
    tenant_id: str = ""
    name: str = "New Workflow"
    description: str = ""
    version: str = "1.0.0"
    flow_type: str = "workflow"
    flow_status: FlowStatus = FlowStatus.DRAFT
    metadata: WorkflowMetadata = Field(default_factory=WorkflowMetadata)
    nodes: Dict[str, NodeRecord] = Field(default_factory=dict)
    edges: Dict[str, EdgeRecord] = Field(default_factory=dict)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)

    @field_validator("nodes", "edges", mode="before")
    @classmethod
    def _normalize_collection(cls, v: Any) -> Any:
        return _keyed_by_id(v)

    @model_validator(mode="after")
    def _sync_node_count(self) -> "WorkflowDocument":
        self.metadata.node_count = len(self.nodes)
        return self

    # ── Views ──

    def node_list(self) -> List[NodeRecord]:
        return list(self.nodes.values())

    def edge_list(self) -> List[EdgeRecord]:
        return list(self.edges.values())

    def get_node(self, node_id: str) -> Optional[NodeRecord]:
        return self.nodes.get(node_id)

    def get_edges_from(self, node_id: str) -> List[EdgeRecord]:
        """Get all edges originating from a node."""
        return [e for e in self.edges.values() if e.source == node_id]

    def get_edges_to(self, node_id: str) -> List[EdgeRecord]:
        """Get all edges pointing to a node."""
        return [e for e in self.edges.values() if e.target == node_id]

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready camelCase dict with nodes/edges as id-keyed mappings."""
        return self.model_dump(mode="json", by_alias=True)
