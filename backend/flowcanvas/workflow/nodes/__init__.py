"""
Workflow Nodes Package.

Auto-registers all node kinds into the global NodeRegistry.
Import this package to ensure all kinds are available.
"""

from flowcanvas.workflow.nodes.base import (
    NodeDefinition,
    NodeParameter,
    NodeRegistry,
    get_node_registry,
    register_node,
)

# Import all node modules to trigger registration
from flowcanvas.workflow.nodes import database_nodes  # noqa: F401
from flowcanvas.workflow.nodes import email_nodes     # noqa: F401
from flowcanvas.workflow.nodes import http_nodes      # noqa: F401
from flowcanvas.workflow.nodes import flow_nodes      # noqa: F401


def register_all_nodes() -> NodeRegistry:
    """Ensure all node kinds are registered.

    The module-level imports above trigger the ``@register_node``
    decorators; this function provides an explicit entry point.
    """
    registry = get_node_registry()
    count = len(registry.list_all())
    from logging import getLogger
    getLogger(__name__).info(f"Workflow node kinds registered: {count}")
    return registry


__all__ = [
    "NodeDefinition",
    "NodeParameter",
    "NodeRegistry",
    "get_node_registry",
    "register_all_nodes",
    "register_node",
]
