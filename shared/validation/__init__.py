"""
Message validation for the round lifecycle functions.

Usage:
    from shared.validation import LifecycleTriggerMessage

    msg = LifecycleTriggerMessage.model_validate({'groupId': 'g1', 'roundId': 'r1'})
"""

from shared.validation.pubsub_models import (
    EvaluationPeriodFinishedMessage,
    EvaluationPeriodFinishedParams,
    LifecycleTriggerMessage,
    PeriodAboutToFinishMessage,
    PeriodAboutToFinishParams,
)

__all__ = [
    'EvaluationPeriodFinishedMessage',
    'EvaluationPeriodFinishedParams',
    'LifecycleTriggerMessage',
    'PeriodAboutToFinishMessage',
    'PeriodAboutToFinishParams',
]
