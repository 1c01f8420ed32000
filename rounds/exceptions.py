"""Exceptions raised by the round lifecycle."""

from typing import Dict


class RoundsError(Exception):
    """Base class for round lifecycle errors."""


class RoundDataIntegrityError(RoundsError):
    """
    Stored group or round data cannot be used as-is.

    Raised for a missing group or round document, a group without an ongoing
    round pointer, malformed schedule settings or an unparseable ledger tag.
    Aborts processing of the affected group only.
    """

    def __init__(self, message: str, group_id: str = None, round_id: str = None):
        super().__init__(message)
        self.group_id = group_id
        self.round_id = round_id


class InvalidLifecycleMessage(RoundsError):
    """A lifecycle trigger payload could not be decoded or validated."""


class WatcherPassError(RoundsError):
    """One or more groups failed during a watcher pass."""

    def __init__(self, failures: Dict[str, BaseException]):
        self.failures = failures
        summary = ', '.join(f"{group_id}: {type(error).__name__}" for group_id, error in failures.items())
        super().__init__(f"Watcher pass failed for {len(failures)} group(s): {summary}")
