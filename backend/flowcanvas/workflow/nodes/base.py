"""
Node type base — NodeDefinition, parameters, and the NodeRegistry.

A node kind is a ``NodeDefinition`` subclass with class-level metadata
(label, category, icon), a list of ``NodeParameter`` describing its
config keys and their defaults, and its input/output ports. Decorating
the class with ``@register_node`` adds a singleton instance to the
global registry; the editor session reads it when a node is placed.

Definitions are read-only to the rest of the subsystem: every accessor
returns fresh copies so callers can mutate what they receive.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Dict, List, Optional, Type, TypeVar

from flowcanvas.workflow.workflow_model import PortDescriptor

logger = getLogger(__name__)


@dataclass
class NodeParameter:
    """One key of a node kind's ``config`` bag."""

    name: str
    label: str
    type: str = "string"
    default: Any = None
    required: bool = False
    description: str = ""
    options: List[Dict[str, Any]] = field(default_factory=list)
    min: Optional[float] = None
    max: Optional[float] = None
    group: str = "general"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "label": self.label,
            "type": self.type,
            "default": copy.deepcopy(self.default),
            "required": self.required,
            "description": self.description,
            "options": list(self.options),
            "min": self.min,
            "max": self.max,
            "group": self.group,
        }


class NodeDefinition:
    """Base class for every node kind available in the editor."""

    node_type: str = ""
    label: str = ""
    description: str = ""
    category: str = ""
    icon: str = ""
    color: str = "#64748b"

    parameters: List[NodeParameter] = []
    input_ports: List[PortDescriptor] = [
        PortDescriptor(id="input", label="Input"),
    ]
    output_ports: List[PortDescriptor] = [
        PortDescriptor(id="output", label="Output"),
    ]

    def default_config(self) -> Dict[str, Any]:
        """Fresh config bag for a newly placed node of this kind."""
        config: Dict[str, Any] = {
            "label": self.label,
            "description": self.description,
            "category": self.category,
        }
        for param in self.parameters:
            config[param.name] = copy.deepcopy(param.default)
        return config

    def default_inputs(self) -> List[PortDescriptor]:
        return [p.model_copy(deep=True) for p in self.input_ports]

    def default_outputs(self) -> List[PortDescriptor]:
        return [p.model_copy(deep=True) for p in self.output_ports]

    def get_dynamic_output_ports(
        self, config: Dict[str, Any],
    ) -> Optional[List[PortDescriptor]]:
        """Output ports derived from config, or None when they are static."""
        return None

    def resolve_output_ports(self, config: Dict[str, Any]) -> List[PortDescriptor]:
        dynamic = self.get_dynamic_output_ports(config)
        if dynamic is not None:
            return dynamic
        return self.default_outputs()

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        """Human-readable problems with ``config``; empty when usable."""
        errors: List[str] = []
        for param in self.parameters:
            if not param.required:
                continue
            value = config.get(param.name)
            if value is None or (isinstance(value, str) and not value.strip()):
                errors.append(f"{param.label} is required")
        return errors

    def describe(self) -> Dict[str, Any]:
        """Registry entry consumed by the editor and the node library panel."""
        return {
            "type": self.node_type,
            "label": self.label,
            "description": self.description,
            "category": self.category,
            "icon": self.icon,
            "color": self.color,
            "default_config": self.default_config(),
            "parameters": [p.to_dict() for p in self.parameters],
            "inputs": [p.model_dump() for p in self.default_inputs()],
            "outputs": [p.model_dump() for p in self.default_outputs()],
        }


# ============================================================================
# Registry
# ============================================================================


class NodeRegistry:
    """Lookup table of node kinds by ``node_type``."""

    def __init__(self) -> None:
        self._nodes: Dict[str, NodeDefinition] = {}

    def register(self, definition: NodeDefinition) -> None:
        if not definition.node_type:
            raise ValueError(f"{type(definition).__name__} has no node_type")
        if definition.node_type in self._nodes:
            logger.warning(
                f"Node type '{definition.node_type}' re-registered by "
                f"{type(definition).__name__}"
            )
        self._nodes[definition.node_type] = definition

    def get(self, node_type: str) -> Optional[NodeDefinition]:
        return self._nodes.get(node_type)

    def __contains__(self, node_type: str) -> bool:
        return node_type in self._nodes

    def list_all(self) -> List[NodeDefinition]:
        return list(self._nodes.values())

    def list_by_category(self) -> Dict[str, List[NodeDefinition]]:
        grouped: Dict[str, List[NodeDefinition]] = {}
        for definition in self._nodes.values():
            grouped.setdefault(definition.category, []).append(definition)
        return grouped


_registry = NodeRegistry()

N = TypeVar("N", bound=Type[NodeDefinition])


def register_node(cls: N) -> N:
    """Class decorator: instantiate and add to the global registry."""
    _registry.register(cls())
    return cls


def get_node_registry() -> NodeRegistry:
    """Return the global NodeRegistry."""
    return _registry
