"""
Merge Engine — compute the next node, edge, or document value from
(current value, partial update).

This is the one place where partial edits are reconciled. Config panels,
the generic node panel, and the workflow form all produce partial dicts;
nothing else merges them. Every function here is pure: inputs are never
mutated and every result is a fresh object.

Node update rules:

* ``config`` is shallow-merged into the existing config. A caller that
  wrapped its update one level too deep (``{"config": {"config": {...}}}``)
  is unwrapped. Whatever ``config`` key survives the merge is removed and
  recorded as a validation error on the node.
* ``config["metadata"]`` is merged separately and its ``lastModified``
  stamped.
* ``label`` and ``description`` given at the top level are also written
  into ``config``. The reverse is not mirrored.
* ``data.metadata.last_modified`` is stamped on every merge and never
  moves backwards.
"""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from logging import getLogger
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel

from flowcanvas.workflow.workflow_model import (
    EdgeRecord,
    NodeData,
    NodeRecord,
    PortDescriptor,
    Position,
    RecordMetadata,
    WorkflowDocument,
    utcnow,
)

if TYPE_CHECKING:
    from flowcanvas.workflow.nodes.base import NodeDefinition, NodeRegistry

logger = getLogger(__name__)

NESTED_CONFIG_ERROR = "Nested 'config' key removed from node configuration"
LABEL_REQUIRED_ERROR = "Node label is required"

_MIRRORED_FIELDS = ("label", "description")
_NODE_SCALAR_FIELDS = ("label", "node_type", "category", "description", "icon")
_NODE_PORT_FIELDS = ("inputs", "outputs")
_EDGE_FIELDS = ("source", "target", "source_handle", "target_handle", "type", "label")
_DOCUMENT_SCALAR_FIELDS = (
    "tenant_id", "name", "description", "version", "flow_type", "flow_status",
)
_DOCUMENT_REPLACED_FIELDS = ("nodes", "edges", "execution")


# ============================================================================
# Helpers
# ============================================================================


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _monotonic(previous: Optional[datetime], now: datetime) -> datetime:
    """``now``, unless the clock went backwards past ``previous``."""
    now = _as_utc(now)
    if previous is None:
        return now
    previous = _as_utc(previous)
    return now if now >= previous else previous


def _monotonic_iso(previous: Any, now: datetime) -> str:
    prev_dt: Optional[datetime] = None
    if isinstance(previous, datetime):
        prev_dt = previous
    elif isinstance(previous, str):
        try:
            prev_dt = datetime.fromisoformat(previous.replace("Z", "+00:00"))
        except ValueError:
            prev_dt = None
    return _monotonic(prev_dt, now).isoformat()


def _field_names(partial: Mapping[str, Any], model: Type[BaseModel]) -> Dict[str, Any]:
    """Re-key ``partial`` from wire aliases (camelCase) to attribute names.

    Keys that are neither a field name nor an alias are dropped.
    """
    lookup: Dict[str, str] = {}
    for name, info in model.model_fields.items():
        lookup[name] = name
        if info.alias:
            lookup[info.alias] = name
    normalized: Dict[str, Any] = {}
    for key, value in partial.items():
        name = lookup.get(key)
        if name is None:
            logger.debug(f"Ignoring unknown {model.__name__} field in update: {key}")
            continue
        normalized[name] = value
    return normalized


def default_config_metadata(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Metadata block seeded into a config bag on its first merge."""
    stamp = _as_utc(now or utcnow()).isoformat()
    return {
        "created": stamp,
        "lastModified": stamp,
        "version": "1.0.0",
        "isValid": True,
        "errors": [],
    }


def default_node_metadata(now: Optional[datetime] = None) -> RecordMetadata:
    """Bookkeeping for a freshly created node or edge."""
    stamp = _as_utc(now or utcnow())
    return RecordMetadata(created=stamp, last_modified=stamp, version="1.0.0")


# ============================================================================
# Validation
# ============================================================================


def validate_node_data(
    data: NodeData,
    definition: Optional["NodeDefinition"] = None,
) -> List[str]:
    """Return human-readable problems with a node's data (empty = valid)."""
    errors: List[str] = []
    if not (data.label or "").strip():
        errors.append(LABEL_REQUIRED_ERROR)
    for port in data.inputs:
        if port.required and port.default is None:
            errors.append(f"Required input {port.id} is missing")
    if definition is not None:
        errors.extend(definition.validate_config(data.config))
    return errors


def validate_edge(
    edge: EdgeRecord,
    document: WorkflowDocument,
    registry: Optional["NodeRegistry"] = None,
) -> List[str]:
    """Check an edge against the nodes of ``document``."""
    errors: List[str] = []
    source = document.nodes.get(edge.source)
    if source is None:
        errors.append(f"Edge references unknown source node: {edge.source}")
    if edge.target not in document.nodes:
        errors.append(f"Edge references unknown target node: {edge.target}")
    if source is not None and registry is not None and edge.source_handle:
        definition = registry.get(source.type)
        if definition is not None:
            ports = {p.id for p in definition.resolve_output_ports(source.data.config)}
            if edge.source_handle not in ports:
                errors.append(
                    f"Unknown output '{edge.source_handle}' on node "
                    f"'{source.data.label or source.type}' ({source.id})"
                )
    return errors


def _apply_validation(
    metadata: RecordMetadata, errors: List[str], now: datetime,
) -> None:
    metadata.errors = errors
    metadata.is_valid = not errors
    metadata.last_validated = _as_utc(now)


# ============================================================================
# Node merge
# ============================================================================


def merge_config(
    existing: Mapping[str, Any],
    update: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Tuple[Dict[str, Any], List[str]]:
    """Merge a config update into an existing config bag.

    Returns the new config and the list of shape violations found.
    """
    now = now or utcnow()
    violations: List[str] = []

    incoming: Mapping[str, Any] = update
    nested = update.get("config")
    if isinstance(nested, Mapping):
        logger.warning("Config update was wrapped in an extra 'config' level; unwrapping")
        incoming = nested

    new_config: Dict[str, Any] = copy.deepcopy(dict(existing))
    new_config.update(copy.deepcopy(dict(incoming)))

    base_meta = existing.get("metadata")
    if not isinstance(base_meta, Mapping):
        base_meta = default_config_metadata(now)
    incoming_meta = incoming.get("metadata")
    if not isinstance(incoming_meta, Mapping):
        incoming_meta = {}
    metadata = {**copy.deepcopy(dict(base_meta)), **copy.deepcopy(dict(incoming_meta))}
    metadata["lastModified"] = _monotonic_iso(base_meta.get("lastModified"), now)
    new_config["metadata"] = metadata

    if "config" in new_config:
        del new_config["config"]
        violations.append(NESTED_CONFIG_ERROR)
        logger.warning("Nested 'config' key survived a config merge and was removed")

    return new_config, violations


def merge_node(
    record: NodeRecord,
    partial: Mapping[str, Any],
    now: Optional[datetime] = None,
    definition: Optional["NodeDefinition"] = None,
) -> NodeRecord:
    """Apply a partial ``NodeData`` update and return the new record."""
    now = now or utcnow()
    fields = _field_names(partial, NodeData)
    result = record.model_copy(deep=True)
    data = result.data
    violations: List[str] = []

    config_update = fields.get("config")
    if config_update is not None:
        if isinstance(config_update, Mapping):
            data.config, violations = merge_config(data.config, config_update, now)
        else:
            violations.append(f"Ignored non-object config update: {config_update!r}")

    for name in _NODE_SCALAR_FIELDS:
        if name not in fields:
            continue
        value = fields[name]
        setattr(data, name, value if value is not None else "")
        if name in _MIRRORED_FIELDS:
            data.config[name] = getattr(data, name)

    for name in _NODE_PORT_FIELDS:
        if fields.get(name) is not None:
            setattr(data, name, [PortDescriptor.model_validate(p) for p in fields[name]])

    if isinstance(fields.get("metadata"), Mapping):
        meta_update = _field_names(fields["metadata"], RecordMetadata)
        data.metadata = RecordMetadata.model_validate(
            {**data.metadata.model_dump(), **meta_update}
        )

    data.metadata.last_modified = _monotonic(record.data.metadata.last_modified, now)
    _apply_validation(data.metadata, validate_node_data(data, definition) + violations, now)
    return result


def new_node_record(
    node_type: str,
    position: Any,
    definition: Optional["NodeDefinition"] = None,
    initial_data: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
    node_id: Optional[str] = None,
) -> NodeRecord:
    """Build a fresh node record from a kind's registry defaults.

    Unknown kinds still produce a record (labelled with the raw type) so
    the user can see and fix it; it is flagged invalid.
    """
    now = _as_utc(now or utcnow())
    initial = _field_names(initial_data or {}, NodeData)

    if definition is not None:
        config = definition.default_config()
        data = NodeData(
            label=definition.label or node_type,
            node_type=node_type,
            category=definition.category,
            description=definition.description,
            icon=definition.icon or None,
            inputs=definition.default_inputs(),
            outputs=definition.default_outputs(),
        )
    else:
        config = {}
        data = NodeData(label=node_type, node_type=node_type, category=node_type)

    config.update(copy.deepcopy(dict(initial.get("config") or {})))
    config.pop("config", None)
    data.config = config
    for name in _NODE_PORT_FIELDS:
        if initial.get(name) is not None:
            setattr(data, name, [PortDescriptor.model_validate(p) for p in initial[name]])
    for name in _MIRRORED_FIELDS:
        if initial.get(name):
            setattr(data, name, initial[name])
            data.config[name] = initial[name]

    meta_update = _field_names(initial.get("metadata") or {}, RecordMetadata)
    data.metadata = RecordMetadata.model_validate({
        **default_node_metadata(now).model_dump(),
        **meta_update,
    })

    errors = validate_node_data(data, definition)
    if definition is None:
        errors.append(f"Unknown node type '{node_type}'")
    _apply_validation(data.metadata, errors, now)

    return NodeRecord(
        id=node_id or f"{node_type}-{uuid.uuid4()}",
        type=node_type,
        position=Position.model_validate(position),
        data=data,
    )


def move_node(record: NodeRecord, position: Any, now: Optional[datetime] = None) -> NodeRecord:
    """Return ``record`` at a new canvas position."""
    now = now or utcnow()
    result = record.model_copy(deep=True)
    result.position = Position.model_validate(position)
    result.data.metadata.last_modified = _monotonic(record.data.metadata.last_modified, now)
    return result


# ============================================================================
# Edge merge
# ============================================================================


def new_edge_record(
    source: str,
    target: str,
    source_handle: Optional[str] = None,
    target_handle: Optional[str] = None,
    now: Optional[datetime] = None,
    edge_id: Optional[str] = None,
    edge_type: Optional[str] = None,
    label: str = "",
) -> EdgeRecord:
    now = _as_utc(now or utcnow())
    return EdgeRecord(
        id=edge_id or f"edge-{uuid.uuid4()}",
        source=source,
        target=target,
        source_handle=source_handle,
        target_handle=target_handle,
        type=edge_type,
        label=label,
        last_modified=now,
        metadata=default_node_metadata(now),
    )


def merge_edge(
    edge: EdgeRecord,
    partial: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> EdgeRecord:
    """Apply a partial ``EdgeRecord`` update and return the new edge."""
    now = now or utcnow()
    fields = _field_names(partial, EdgeRecord)
    result = edge.model_copy(deep=True)
    if "id" in fields and fields["id"] != edge.id:
        logger.warning(f"Ignoring attempt to change edge id {edge.id} -> {fields['id']}")
    for name in _EDGE_FIELDS:
        if name in fields:
            setattr(result, name, fields[name])
    if isinstance(fields.get("metadata"), Mapping):
        meta_update = _field_names(fields["metadata"], RecordMetadata)
        result.metadata = RecordMetadata.model_validate(
            {**result.metadata.model_dump(), **meta_update}
        )
    stamp = _monotonic(edge.last_modified, now)
    result.last_modified = stamp
    result.metadata.last_modified = _monotonic(edge.metadata.last_modified, now)
    return result


def mark_edge_validation(edge: EdgeRecord, errors: List[str], now: Optional[datetime] = None) -> EdgeRecord:
    """Return ``edge`` with its validation state replaced by ``errors``."""
    result = edge.model_copy(deep=True)
    _apply_validation(result.metadata, list(errors), now or utcnow())
    return result


# ============================================================================
# Document merge
# ============================================================================


def merge_document(
    document: WorkflowDocument,
    partial: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> WorkflowDocument:
    """Apply a partial ``WorkflowDocument`` update and return the new document.

    Scalars are replaced when given and not None; ``metadata`` is merged
    key by key; ``nodes``, ``edges`` and ``execution`` are replaced
    wholesale. ``workflow_id`` never changes and ``updated_at`` is always
    stamped.
    """
    now = now or utcnow()
    fields = _field_names(partial, WorkflowDocument)
    current = document.model_dump()

    new_id = fields.get("workflow_id")
    if new_id is not None and new_id != document.workflow_id:
        logger.warning(
            f"Ignoring attempt to change workflow id {document.workflow_id} -> {new_id}"
        )

    for name in _DOCUMENT_SCALAR_FIELDS:
        if fields.get(name) is not None:
            current[name] = fields[name]

    if isinstance(fields.get("metadata"), Mapping):
        current["metadata"].update(
            copy.deepcopy(_field_names(fields["metadata"], type(document.metadata)))
        )

    for name in _DOCUMENT_REPLACED_FIELDS:
        if fields.get(name) is not None:
            value = fields[name]
            if isinstance(value, BaseModel):
                value = value.model_dump()
            current[name] = copy.deepcopy(value)

    result = WorkflowDocument.model_validate(current)
    result.metadata.updated_at = _monotonic(document.metadata.updated_at, now)
    return result
