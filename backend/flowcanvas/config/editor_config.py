"""
Editor Configuration.

Controls the editor session's debounce window, the defaults stamped on
new workflow documents, and where the JSON persistence gateway writes.
"""

from __future__ import annotations

from dataclasses import dataclass

from flowcanvas.config.base import BaseConfig, register_config
from flowcanvas.config.env_utils import read_env_defaults


@register_config
@dataclass
class EditorConfig(BaseConfig):
    """Workflow editor and state-cache settings."""

    debounce_ms: int = 100
    storage_dir: str = "workflows"
    default_workflow_name: str = "New Workflow"
    default_flow_type: str = "workflow"
    default_created_by: str = "system"
    session_log_history: int = 200
    log_level: str = "INFO"

    _ENV_MAP = {
        "debounce_ms": "FLOWCANVAS_DEBOUNCE_MS",
        "storage_dir": "FLOWCANVAS_STORAGE_DIR",
        "default_created_by": "FLOWCANVAS_CREATED_BY",
        "session_log_history": "FLOWCANVAS_SESSION_LOG_HISTORY",
        "log_level": "FLOWCANVAS_LOG_LEVEL",
    }

    @classmethod
    def get_default_instance(cls) -> "EditorConfig":
        defaults = read_env_defaults(cls._ENV_MAP, cls.__dataclass_fields__)
        return cls(**defaults)

    @classmethod
    def get_config_name(cls) -> str:
        return "editor"

    @classmethod
    def get_display_name(cls) -> str:
        return "Workflow Editor"

    @classmethod
    def get_description(cls) -> str:
        return "Debounce window, new-workflow defaults, and workflow storage directory."

    @property
    def debounce_seconds(self) -> float:
        return max(self.debounce_ms, 0) / 1000.0
