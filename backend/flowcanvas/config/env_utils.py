"""Environment helpers for dataclass configs."""

from __future__ import annotations

import os
from dataclasses import MISSING, Field
from logging import getLogger
from typing import Any, Dict, Mapping, Optional

logger = getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _cast(raw: str, default: Any) -> Any:
    # Cast by the type of the field's default; strings pass through.
    if isinstance(default, bool):
        return raw.strip().lower() in _TRUE_VALUES
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def read_env_defaults(
    env_map: Mapping[str, str],
    fields: Mapping[str, Field],
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Collect constructor overrides for every mapped env var that is set.

    Values that fail to cast are logged and skipped so the dataclass
    default stays in effect.
    """
    env = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for field_name, env_name in env_map.items():
        raw = env.get(env_name)
        if raw is None or raw == "":
            continue
        field = fields.get(field_name)
        if field is None:
            logger.warning(f"Env map references unknown field '{field_name}'")
            continue
        default = field.default if field.default is not MISSING else None
        try:
            overrides[field_name] = _cast(raw, default)
        except ValueError:
            logger.warning(
                f"Ignoring {env_name}={raw!r}: not a valid {type(default).__name__}"
            )
    return overrides
