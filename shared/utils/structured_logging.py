"""
Structured Logging Utility

Attaches queryable fields (group_id, round_id, ...) to log records. The
Cloud Logging handler only forwards the `json_fields` extra into jsonPayload,
so StructuredLogger sends every field both as a record attribute (console,
tests) and inside json_fields:

    logger = StructuredLogger(__name__)
    logger.info("Rule fired", extra={'group_id': 'g1', 'tag': 'submissionPeriodAboutToFinish:2'})
    # Query: jsonPayload.group_id="g1"

Plain logging.getLogger() calls with extra fields do not reach jsonPayload.

Context set with set_logging_context() is thread-local, so each watcher
worker thread carries the identifiers of the group it is processing.
"""

import logging
import threading
from typing import Any, Dict, Optional

from google.cloud import logging as cloud_logging


# Thread-local storage for context
_context = threading.local()


class StructuredLogger:
    """
    Structured logging wrapper that merges thread-local context into extra fields.

    Usage:
        logger = StructuredLogger(__name__)
        set_logging_context(group_id='g1', round_id='r1')
        logger.info("Round finished", extra={'winner': 'u1'})
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _add_context(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        merged = get_logging_context()
        if extra:
            merged.update(extra)
        return {**merged, 'json_fields': dict(merged)}

    def info(self, msg: str, extra: Optional[Dict[str, Any]] = None):
        self.logger.info(msg, extra=self._add_context(extra))

    def warning(self, msg: str, extra: Optional[Dict[str, Any]] = None):
        self.logger.warning(msg, extra=self._add_context(extra))

    def error(self, msg: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        self.logger.error(msg, extra=self._add_context(extra), exc_info=exc_info)

    def debug(self, msg: str, extra: Optional[Dict[str, Any]] = None):
        self.logger.debug(msg, extra=self._add_context(extra))


def set_logging_context(**fields):
    """
    Set thread-local logging context.

    These fields are added to every StructuredLogger call made in this thread.
    """
    if not hasattr(_context, 'fields'):
        _context.fields = {}
    _context.fields.update(fields)


def clear_logging_context():
    """Clear thread-local logging context."""
    if hasattr(_context, 'fields'):
        _context.fields.clear()


def get_logging_context() -> Dict[str, Any]:
    """Get current thread-local logging context."""
    if hasattr(_context, 'fields'):
        return _context.fields.copy()
    return {}


def configure_logging(level: str = 'INFO', use_cloud_logging: bool = False, project_id: Optional[str] = None):
    """
    Configure root logging for a function instance.

    Console logging is always enabled. With use_cloud_logging, records are also
    shipped to Cloud Logging; fields logged through StructuredLogger land
    in jsonPayload.

    Args:
        level: Minimum level name (e.g., 'INFO', 'DEBUG')
        use_cloud_logging: Attach the Cloud Logging handler
        project_id: Project receiving the log entries
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if use_cloud_logging:
        client = cloud_logging.Client(project=project_id)
        client.setup_logging(log_level=numeric_level)
