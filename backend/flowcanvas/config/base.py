"""
Configuration base — dataclass configs with an env-variable overlay.

Every config is a ``@dataclass`` subclass of ``BaseConfig`` registered
through ``@register_config``. Defaults come from the dataclass fields and
can be overridden by the environment variables listed in ``_ENV_MAP``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from logging import getLogger
from typing import Any, Dict, List, Optional, Type, TypeVar

logger = getLogger(__name__)

C = TypeVar("C", bound="BaseConfig")


@dataclass
class BaseConfig:
    """Base class for all registered configs."""

    _ENV_MAP = {}

    @classmethod
    def get_default_instance(cls: Type[C]) -> C:
        return cls()

    @classmethod
    def get_config_name(cls) -> str:
        raise NotImplementedError

    @classmethod
    def get_display_name(cls) -> str:
        return cls.get_config_name().replace("_", " ").title()

    @classmethod
    def get_description(cls) -> str:
        return ""

    @classmethod
    def get_category(cls) -> str:
        return "general"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for diagnostics."""
        return asdict(self)


# ── Registry ──

_CONFIG_CLASSES: Dict[str, Type[BaseConfig]] = {}
_CONFIG_INSTANCES: Dict[str, BaseConfig] = {}


def register_config(cls: Type[C]) -> Type[C]:
    """Class decorator adding a config class to the registry."""
    name = cls.get_config_name()
    if name in _CONFIG_CLASSES:
        logger.warning(f"Config '{name}' registered twice; keeping {cls.__name__}")
    _CONFIG_CLASSES[name] = cls
    return cls


def get_config(cls: Type[C]) -> C:
    """Return the cached instance of a registered config class."""
    name = cls.get_config_name()
    instance = _CONFIG_INSTANCES.get(name)
    if instance is None:
        instance = cls.get_default_instance()
        _CONFIG_INSTANCES[name] = instance
    return instance  # type: ignore[return-value]


def reset_configs() -> None:
    """Drop cached instances so the next ``get_config`` re-reads the env."""
    _CONFIG_INSTANCES.clear()


def list_configs() -> List[Type[BaseConfig]]:
    return list(_CONFIG_CLASSES.values())


def find_config(name: str) -> Optional[Type[BaseConfig]]:
    return _CONFIG_CLASSES.get(name)
