"""
Session Logging Module

Provides per-session logging capabilities for the workflow editor.
"""
from flowcanvas.logging.session_logger import (
    SessionLogEntry,
    SessionLogger,
    configure_logging,
    get_session_logger,
    remove_session_logger,
)

__all__ = [
    'SessionLogEntry',
    'SessionLogger',
    'configure_logging',
    'get_session_logger',
    'remove_session_logger',
]
