"""
HTTP Nodes — outbound API requests.
"""

from __future__ import annotations

from typing import Any, Dict, List

from flowcanvas.workflow.nodes.base import (
    NodeDefinition,
    NodeParameter,
    register_node,
)
from flowcanvas.workflow.workflow_model import PortDescriptor

HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


@register_node
class HttpRequestNode(NodeDefinition):
    """Call an HTTP endpoint and pass the response downstream."""

    node_type = "http"
    label = "HTTP Request"
    description = "Call an external HTTP API"
    category = "integration"
    icon = "globe"
    color = "#0ea5e9"

    parameters = [
        NodeParameter(name="url", label="URL", default="", required=True, group="request"),
        NodeParameter(
            name="method",
            label="Method",
            type="select",
            default="GET",
            options=[{"value": m, "label": m} for m in HTTP_METHODS],
            group="request",
        ),
        NodeParameter(name="headers", label="Headers", type="json", default={}, group="request"),
        NodeParameter(name="body", label="Body", type="json", default=None, group="request"),
        NodeParameter(
            name="timeout",
            label="Timeout (s)",
            type="number",
            default=30,
            min=1,
            max=300,
            group="behavior",
        ),
    ]

    output_ports = [
        PortDescriptor(id="response", label="Response"),
        PortDescriptor(id="error", label="Error"),
    ]

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        errors = super().validate_config(config)
        url = config.get("url") or ""
        if not isinstance(url, str):
            errors.append("URL must be a string")
        elif url and not url.startswith(("http://", "https://")):
            errors.append("URL must start with http:// or https://")
        if not isinstance(config.get("headers") or {}, dict):
            errors.append("Headers must be an object")
        if config.get("method") not in HTTP_METHODS:
            errors.append(f"Unsupported HTTP method: {config.get('method')}")
        return errors


@register_node
class ApiNode(HttpRequestNode):
    """Saved API connection call; same config bag as a raw HTTP request."""

    node_type = "api"
    label = "API"
    description = "Call an API through a saved connection"
    icon = "plug"

    parameters = HttpRequestNode.parameters + [
        NodeParameter(name="connectionId", label="Connection", type="connection",
                      default="", group="connection"),
    ]
