"""
Database Nodes — PostgreSQL and Snowflake query nodes.

The connection itself is referenced by id; credentials live with the
connection records, never in the node config.
"""

from __future__ import annotations

from typing import Any, Dict, List

from flowcanvas.workflow.nodes.base import (
    NodeDefinition,
    NodeParameter,
    register_node,
)
from flowcanvas.workflow.workflow_model import PortDescriptor

DEFAULT_MAX_RETRIES = 3
MAX_ALLOWED_RETRIES = 10

ERROR_ACTIONS = [
    {"value": "fail", "label": "Stop Execution"},
    {"value": "continue", "label": "Continue Execution"},
    {"value": "retry", "label": "Retry Operation"},
]

OPERATIONS = [
    {"value": "execute_query", "label": "Execute SQL Query"},
    {"value": "select_rows", "label": "Select Rows from Table"},
]

_QUERY_OUTPUTS = [
    PortDescriptor(id="rows", label="Rows", type="array"),
    PortDescriptor(id="error", label="Error", type="object"),
]


def _check_options(config: Dict[str, Any]) -> List[str]:
    options = config.get("options")
    if options is None:
        return []
    if not isinstance(options, dict):
        return ["Options must be an object"]
    errors = []
    if options.get("errorAction", "fail") not in [a["value"] for a in ERROR_ACTIONS]:
        errors.append(f"Unknown error action: {options.get('errorAction')}")
    retries = options.get("maxRetries", DEFAULT_MAX_RETRIES)
    valid_int = isinstance(retries, int) and not isinstance(retries, bool)
    if not valid_int or not 0 <= retries <= MAX_ALLOWED_RETRIES:
        errors.append(f"Max retries must be between 0 and {MAX_ALLOWED_RETRIES}")
    return errors


# ============================================================================
# PostgreSQL
# ============================================================================


@register_node
class PostgresNode(NodeDefinition):
    """Run a SQL statement against a saved PostgreSQL connection."""

    node_type = "postgres"
    label = "PostgreSQL"
    description = "Execute PostgreSQL queries and manage database operations"
    category = "database"
    icon = "database"
    color = "#336791"

    parameters = [
        NodeParameter(
            name="operation",
            label="Operation",
            type="select",
            default="execute_query",
            options=OPERATIONS,
            group="query",
        ),
        NodeParameter(
            name="connectionId",
            label="Connection",
            type="connection",
            default="",
            required=True,
            group="connection",
        ),
        NodeParameter(
            name="query",
            label="Query",
            type="sql",
            default="",
            required=True,
            description="SQL statement; use $1, $2 for bound parameters.",
            group="query",
        ),
        NodeParameter(
            name="options",
            label="Options",
            type="json",
            default={
                "errorAction": "fail",
                "maxRetries": DEFAULT_MAX_RETRIES,
                "parameters": {},
            },
            group="behavior",
        ),
    ]

    output_ports = _QUERY_OUTPUTS

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        errors = super().validate_config(config)
        if config.get("operation") not in [o["value"] for o in OPERATIONS]:
            errors.append(f"Unknown operation: {config.get('operation')}")
        return errors + _check_options(config)


# ============================================================================
# Snowflake
# ============================================================================


@register_node
class SnowflakeNode(NodeDefinition):
    """Run a SQL statement in a Snowflake warehouse."""

    node_type = "snowflake"
    label = "Snowflake"
    description = "Execute queries against a Snowflake warehouse"
    category = "database"
    icon = "snowflake"
    color = "#29b5e8"

    parameters = [
        NodeParameter(name="connectionId", label="Connection", type="connection",
                      default="", required=True, group="connection"),
        NodeParameter(name="warehouse", label="Warehouse", default="", group="connection"),
        NodeParameter(name="database", label="Database", default="", group="connection"),
        NodeParameter(name="schema", label="Schema", default="PUBLIC", group="connection"),
        NodeParameter(name="query", label="Query", type="sql", default="",
                      required=True, group="query"),
        NodeParameter(
            name="options",
            label="Options",
            type="json",
            default={"errorAction": "fail", "maxRetries": DEFAULT_MAX_RETRIES},
            group="behavior",
        ),
    ]

    output_ports = _QUERY_OUTPUTS

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        return super().validate_config(config) + _check_options(config)
