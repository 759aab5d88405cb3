"""
Session Logger — per-editor-session logging.

Each open workflow editor gets a ``SessionLogger`` that prefixes every
message with the workflow id and keeps a bounded history of recent
entries, so debug panels can show what a session did without tailing
the process log.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

from flowcanvas.config import get_editor_config

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the process."""
    level_name = (level or get_editor_config().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=_LOG_FORMAT,
    )


@dataclass
class SessionLogEntry:
    timestamp: datetime
    level: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "message": self.message,
        }


class SessionLogger:
    """Logger bound to one workflow editor session."""

    def __init__(self, workflow_id: str, history: Optional[int] = None) -> None:
        self.workflow_id = workflow_id
        self._logger = logging.getLogger(f"flowcanvas.session.{workflow_id}")
        maxlen = history if history is not None else get_editor_config().session_log_history
        self._history: Deque[SessionLogEntry] = deque(maxlen=maxlen)

    def _log(self, level: int, message: str) -> None:
        self._history.append(SessionLogEntry(
            timestamp=datetime.now(timezone.utc),
            level=logging.getLevelName(level),
            message=message,
        ))
        self._logger.log(level, f"[{self.workflow_id}] {message}")

    def debug(self, message: str) -> None:
        self._log(logging.DEBUG, message)

    def info(self, message: str) -> None:
        self._log(logging.INFO, message)

    def warning(self, message: str) -> None:
        self._log(logging.WARNING, message)

    def error(self, message: str) -> None:
        self._log(logging.ERROR, message)

    def entries(self, level: Optional[str] = None) -> List[SessionLogEntry]:
        """Recent entries, oldest first, optionally filtered by level name."""
        if level is None:
            return list(self._history)
        wanted = level.upper()
        return [e for e in self._history if e.level == wanted]

    def clear(self) -> None:
        self._history.clear()


# ── Registry ──

_session_loggers: Dict[str, SessionLogger] = {}


def get_session_logger(workflow_id: str, create: bool = True) -> Optional[SessionLogger]:
    """Return the SessionLogger for a workflow, creating it on demand."""
    session_logger = _session_loggers.get(workflow_id)
    if session_logger is None and create:
        session_logger = SessionLogger(workflow_id)
        _session_loggers[workflow_id] = session_logger
    return session_logger


def remove_session_logger(workflow_id: str) -> None:
    _session_loggers.pop(workflow_id, None)
