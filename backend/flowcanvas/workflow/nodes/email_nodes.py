"""
Email Nodes — SendGrid delivery.
"""

from __future__ import annotations

from typing import Any, Dict, List

from flowcanvas.workflow.nodes.base import (
    NodeDefinition,
    NodeParameter,
    register_node,
)
from flowcanvas.workflow.workflow_model import PortDescriptor


@register_node
class SendGridNode(NodeDefinition):
    """Send an email through SendGrid, either a raw body or a template."""

    node_type = "sendgrid"
    label = "SendGrid Email"
    description = "Send transactional email through SendGrid"
    category = "email"
    icon = "mail"
    color = "#1a82e2"

    parameters = [
        NodeParameter(
            name="email",
            label="Email",
            type="json",
            default={
                "type": "body",
                "to": "",
                "from": "",
                "subject": "",
                "body": {"html": "", "text": ""},
            },
            description="Recipient, sender, subject and either a body or a template.",
            group="email",
        ),
        NodeParameter(
            name="connection",
            label="Connection",
            type="json",
            default={"id": "", "apiKey": ""},
            group="connection",
        ),
    ]

    input_ports = [
        PortDescriptor(id="input", label="Input"),
        PortDescriptor(id="templateData", label="Template Data"),
    ]
    output_ports = [
        PortDescriptor(id="sent", label="Sent"),
        PortDescriptor(id="error", label="Error"),
    ]

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        errors = super().validate_config(config)
        email = config.get("email") or {}
        connection = config.get("connection") or {}
        if not isinstance(email, dict):
            errors.append("Email must be an object")
            email = {}
        if not isinstance(connection, dict):
            errors.append("Connection must be an object")
            connection = {}

        for key in ("to", "from", "subject"):
            if not email.get(key):
                errors.append(f"Email '{key}' is required")
        template = email.get("template") or {}
        if email.get("type") == "template" and not (isinstance(template, dict) and template.get("id")):
            errors.append("Template id is required for template emails")
        if not connection.get("id") and not connection.get("apiKey"):
            errors.append("A SendGrid connection or API key is required")
        return errors
