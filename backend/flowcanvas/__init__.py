"""FlowCanvas — workflow editor state cache."""

__version__ = "0.1.0"
