"""
Configuration Module

Dataclass-based settings with environment overrides.
"""
from flowcanvas.config.base import (
    BaseConfig,
    get_config,
    list_configs,
    register_config,
    reset_configs,
)
from flowcanvas.config.editor_config import EditorConfig


def get_editor_config() -> EditorConfig:
    """Return the process-wide EditorConfig."""
    return get_config(EditorConfig)


__all__ = [
    'BaseConfig',
    'EditorConfig',
    'get_config',
    'get_editor_config',
    'list_configs',
    'register_config',
    'reset_configs',
]
