"""
Flow Nodes — triggers, branching, fan-out, and loops.

Switch and parallel nodes have config-dependent output ports; edges
leaving them must name one of those ports as ``source_handle``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from flowcanvas.workflow.nodes.base import (
    NodeDefinition,
    NodeParameter,
    register_node,
)
from flowcanvas.workflow.workflow_model import PortDescriptor

MIN_BRANCHES = 2
MAX_BRANCHES = 10


def _branch_count(config: Dict[str, Any]) -> Optional[int]:
    raw = config.get("branches", MIN_BRANCHES)
    if isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


# ============================================================================
# Trigger
# ============================================================================


@register_node
class TriggerNode(NodeDefinition):
    """Entry point of a workflow: webhook or schedule."""

    node_type = "trigger"
    label = "Trigger"
    description = "Start the workflow from a webhook or a schedule"
    category = "trigger"
    icon = "zap"
    color = "#f59e0b"

    parameters = [
        NodeParameter(
            name="triggerType",
            label="Trigger Type",
            type="select",
            default="webhook",
            options=[
                {"value": "webhook", "label": "HTTP Webhook"},
                {"value": "schedule", "label": "Schedule Trigger"},
            ],
        ),
        NodeParameter(name="schedule", label="Cron Schedule", default="",
                      description="Cron expression, used when triggerType is 'schedule'."),
    ]

    input_ports = []

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        errors = super().validate_config(config)
        if config.get("triggerType") == "schedule" and not config.get("schedule"):
            errors.append("Cron Schedule is required for scheduled triggers")
        return errors


# ============================================================================
# Switch — condition routing
# ============================================================================


@register_node
class SwitchNode(NodeDefinition):
    """Route to the first matching condition, else to ``default``."""

    node_type = "switch"
    label = "Switch"
    description = "Route execution by evaluating conditions in order"
    category = "flow"
    icon = "git-branch"
    color = "#6366f1"

    parameters = [
        NodeParameter(
            name="conditions",
            label="Conditions",
            type="json",
            default=[],
            description='List of {"id", "label", "condition"} evaluated top to bottom.',
            group="routing",
        ),
    ]

    output_ports = [
        PortDescriptor(id="default", label="Default"),
    ]

    def get_dynamic_output_ports(
        self, config: Dict[str, Any],
    ) -> Optional[List[PortDescriptor]]:
        ports = []
        seen = set()
        conditions = config.get("conditions") or []
        if not isinstance(conditions, list):
            conditions = []
        for condition in conditions:
            port_id = condition.get("id") if isinstance(condition, dict) else None
            if not isinstance(port_id, str) or not port_id or port_id in seen:
                continue
            label = condition.get("label")
            ports.append(PortDescriptor(id=port_id, label=label if isinstance(label, str) and label else port_id))
            seen.add(port_id)
        if "default" not in seen:
            ports.append(PortDescriptor(id="default", label="Default"))
        return ports

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        errors = super().validate_config(config)
        conditions = config.get("conditions") or []
        if not isinstance(conditions, list):
            return errors + ["Conditions must be a list"]
        for i, condition in enumerate(conditions):
            if not isinstance(condition, dict) or not isinstance(condition.get("id"), str):
                errors.append(f"Condition {i + 1} needs a string id")
        return errors


# ============================================================================
# Parallel — fan-out
# ============================================================================


@register_node
class ParallelNode(NodeDefinition):
    """Run every outgoing branch concurrently."""

    node_type = "parallel"
    label = "Parallel"
    description = "Fan out to several branches at once"
    category = "flow"
    icon = "split"
    color = "#6366f1"

    parameters = [
        NodeParameter(
            name="branches",
            label="Branches",
            type="number",
            default=2,
            min=MIN_BRANCHES,
            max=MAX_BRANCHES,
            group="behavior",
        ),
    ]

    def get_dynamic_output_ports(
        self, config: Dict[str, Any],
    ) -> Optional[List[PortDescriptor]]:
        branches = _branch_count(config)
        if branches is None:
            branches = MIN_BRANCHES
        branches = min(max(branches, 1), MAX_BRANCHES)
        return [
            PortDescriptor(id=f"output-{i}", label=f"Branch {i + 1}")
            for i in range(branches)
        ]

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        errors = super().validate_config(config)
        branches = _branch_count(config)
        if branches is None or not MIN_BRANCHES <= branches <= MAX_BRANCHES:
            errors.append(f"Branches must be a number between {MIN_BRANCHES} and {MAX_BRANCHES}")
        return errors


# ============================================================================
# Loop
# ============================================================================


@register_node
class LoopNode(NodeDefinition):
    """Iterate over an array, a numeric range, or while a condition holds."""

    node_type = "loop"
    label = "Loop"
    description = "Repeat the downstream branch for each item"
    category = "flow"
    icon = "repeat"
    color = "#6366f1"

    parameters = [
        NodeParameter(
            name="iterationType",
            label="Iteration Type",
            type="select",
            default="array",
            options=[
                {"value": "array", "label": "Array"},
                {"value": "range", "label": "Range"},
                {"value": "condition", "label": "Condition"},
            ],
        ),
        NodeParameter(
            name="iterationConfig",
            label="Iteration Settings",
            type="json",
            default={"array": "", "start": 0, "end": 10, "step": 1, "condition": ""},
        ),
    ]

    output_ports = [
        PortDescriptor(id="next", label="Next Item"),
        PortDescriptor(id="complete", label="Complete"),
    ]

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        errors = super().validate_config(config)
        if not isinstance(config.get("iterationConfig") or {}, dict):
            errors.append("Iteration settings must be an object")
        return errors
