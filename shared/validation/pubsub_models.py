"""
Pydantic Models for Pub/Sub Message Validation

Type-safe shapes for every message the round lifecycle functions consume or
publish. Wire field names are camelCase; models accept either the wire name
or the Python attribute name and serialize back to the wire name.

Usage:
    from shared.validation.pubsub_models import LifecycleTriggerMessage

    try:
        msg = LifecycleTriggerMessage.model_validate(message_data)
        group_id = msg.group_id
    except ValidationError as e:
        logger.error(f"Invalid message: {e}")
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        """Serialize using wire field names, dropping unset optional fields."""
        return self.model_dump(by_alias=True, mode='json', exclude_none=True)


class LifecycleTriggerMessage(_WireModel):
    """
    Request to evaluate one round's lifecycle.

    Published to: round-lifecycle-controller
    Consumed by: round_lifecycle_controller
    """
    group_id: str = Field(..., alias='groupId', min_length=1)
    round_id: str = Field(..., alias='roundId', min_length=1)


class PeriodAboutToFinishParams(_WireModel):
    hours: int = Field(..., ge=0)
    stage: Literal['submission', 'evaluation']
    group_id: Optional[str] = Field(default=None, alias='groupId')


class PeriodAboutToFinishMessage(_WireModel):
    """
    A stage deadline is approaching (hours > 0) or has been reached (hours = 0).

    Published to: notification-queue
    """
    type: Literal['periodAboutToFinish'] = 'periodAboutToFinish'
    params: PeriodAboutToFinishParams


class EvaluationPeriodFinishedParams(_WireModel):
    # Absent when the finished round had no evaluations
    winner: Optional[str] = None
    group_id: str = Field(..., alias='groupId')


class EvaluationPeriodFinishedMessage(_WireModel):
    """
    A round finished and its successor started.

    Published to: notification-queue
    """
    type: Literal['evaluationPeriodFinished'] = 'evaluationPeriodFinished'
    params: EvaluationPeriodFinishedParams
