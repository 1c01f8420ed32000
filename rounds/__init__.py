"""
Round lifecycle core.

- score_engine: winner computation from evaluations
- period_watcher: time-driven deadline notifications
- lifecycle_controller: message-driven round transitions
- state_store: Firestore persistence
"""

from rounds.exceptions import (
    InvalidLifecycleMessage,
    RoundDataIntegrityError,
    RoundsError,
    WatcherPassError,
)
from rounds.models import Evaluation, Group, Round, Stage, SubmissionResult

__all__ = [
    'Evaluation',
    'Group',
    'InvalidLifecycleMessage',
    'Round',
    'RoundDataIntegrityError',
    'RoundsError',
    'Stage',
    'SubmissionResult',
    'WatcherPassError',
]
