"""
Domain models for groups, rounds and evaluations.

Documents are read from Firestore as plain dicts with camelCase keys and
converted here; round payloads for new documents are produced with
Round.new_document(). Timestamps come back from Firestore as timezone-aware
datetimes and are kept that way.

Firestore layout:
    {groups}/{groupId}                      Group
    {groups}/{groupId}/rounds/{roundId}     Round
    {groups}/{groupId}/evaluations/{id}     Evaluation (round field = roundId)
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from rounds.exceptions import RoundDataIntegrityError
from shared.utils.datetime_service import get_weekday_index


class Stage(str, Enum):
    """Phase of a round."""
    SUBMISSION = "submission"
    EVALUATION = "evaluation"


SCHEDULE_FIELDS = ('submissionsEndAt', 'evaluationsStartAt', 'evaluationsEndAt')


@dataclass(frozen=True)
class ScheduleSetting:
    """Weekday and wall-clock time at which a round deadline falls."""
    week_day: str
    hour: int
    minute: int
    second: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScheduleSetting':
        """
        Parse and validate a {weekDay, hour, minute, second} map.

        Raises:
            ValueError: On a missing field, unknown weekday or out-of-range time
        """
        try:
            setting = cls(
                week_day=str(data['weekDay']),
                hour=int(data['hour']),
                minute=int(data['minute']),
                second=int(data['second']),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Incomplete schedule setting {data!r}: {e}") from e

        get_weekday_index(setting.week_day)
        if not (0 <= setting.hour <= 23 and 0 <= setting.minute <= 59 and 0 <= setting.second <= 59):
            raise ValueError(f"Time out of range in schedule setting {data!r}")
        return setting


@dataclass
class Group:
    id: str
    users: List[str] = field(default_factory=list)
    ongoing_round_id: Optional[str] = None
    name: Optional[str] = None
    telegram_chat_ids: List[str] = field(default_factory=list)
    # Raw settings.rounds map; None when the group has no settings document
    round_settings: Optional[Dict[str, Any]] = None

    @classmethod
    def from_document(cls, group_id: str, data: Dict[str, Any]) -> 'Group':
        settings = data.get('settings') or {}
        return cls(
            id=group_id,
            users=list(data.get('users') or []),
            ongoing_round_id=data.get('ongoingRound'),
            name=data.get('name'),
            telegram_chat_ids=list(data.get('telegramChatIds') or []),
            round_settings=settings.get('rounds'),
        )

    def schedule(self, defaults: Dict[str, Dict[str, Any]]) -> Dict[str, ScheduleSetting]:
        """
        Resolve the schedule used for this group's next round.

        Groups without settings use `defaults`. Settings that exist but
        cannot be parsed are a data-integrity error.
        """
        source = self.round_settings if self.round_settings is not None else defaults
        try:
            return {name: ScheduleSetting.from_dict(source[name]) for name in SCHEDULE_FIELDS}
        except (KeyError, ValueError) as e:
            raise RoundDataIntegrityError(
                f"Malformed round settings for group {self.id}: {e}", group_id=self.id
            ) from e


@dataclass
class Round:
    id: str
    submissions_end_at: datetime
    evaluations_end_at: datetime
    current_stage: Stage = Stage.SUBMISSION
    submissions_start_at: Optional[datetime] = None
    evaluations_start_at: Optional[datetime] = None
    songs: List[str] = field(default_factory=list)
    submissions: List[str] = field(default_factory=list)
    evaluations: List[str] = field(default_factory=list)
    users: List[str] = field(default_factory=list)
    vote_count: int = 0
    notifications: Dict[str, bool] = field(default_factory=dict)
    last_winner: Optional[str] = None
    # Set when the round is finished; winnerAnnounced flips to true once published
    winner: Optional[str] = None
    winner_announced: Optional[bool] = None

    @classmethod
    def from_document(cls, round_id: str, data: Dict[str, Any], group_id: str = None) -> 'Round':
        try:
            submissions_end_at = data['submissionsEndAt']
            evaluations_end_at = data['evaluationsEndAt']
        except KeyError as e:
            raise RoundDataIntegrityError(
                f"Round {round_id} is missing deadline {e}", group_id=group_id, round_id=round_id
            ) from e

        try:
            current_stage = Stage(data.get('currentStage') or Stage.SUBMISSION.value)
        except ValueError as e:
            raise RoundDataIntegrityError(
                f"Round {round_id} has unknown stage {data.get('currentStage')!r}",
                group_id=group_id, round_id=round_id
            ) from e

        return cls(
            id=round_id,
            submissions_end_at=submissions_end_at,
            evaluations_end_at=evaluations_end_at,
            current_stage=current_stage,
            submissions_start_at=data.get('submissionsStartAt'),
            evaluations_start_at=data.get('evaluationsStartAt'),
            songs=list(data.get('songs') or []),
            submissions=list(data.get('submissions') or []),
            evaluations=list(data.get('evaluations') or []),
            users=list(data.get('users') or []),
            vote_count=int(data.get('voteCount') or 0),
            notifications=dict(data.get('notifications') or {}),
            last_winner=data.get('lastWinner') or None,
            winner=data.get('winner') or None,
            winner_announced=data.get('winnerAnnounced'),
        )

    def deadline(self, stage: Stage) -> datetime:
        """Instant at which the given stage ends."""
        return self.evaluations_end_at if stage == Stage.EVALUATION else self.submissions_end_at

    @property
    def awaiting_announcement(self) -> bool:
        """Finished, but evaluationPeriodFinished was never published."""
        return self.winner_announced is False

    @property
    def max_songs(self) -> int:
        """Every member submits one song; the previous winner submits one more."""
        return len(self.users) + (1 if self.last_winner else 0)

    @staticmethod
    def new_document(
        now: datetime,
        submissions_end_at: datetime,
        evaluations_start_at: datetime,
        evaluations_end_at: datetime,
        users: List[str],
        last_winner: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Payload of a freshly started round; lastWinner is omitted when there is none."""
        document = {
            'currentStage': Stage.SUBMISSION.value,
            'submissionsStartAt': now,
            'submissionsEndAt': submissions_end_at,
            'evaluationsStartAt': evaluations_start_at,
            'evaluationsEndAt': evaluations_end_at,
            'submissions': [],
            'evaluations': [],
            'songs': [],
            'users': list(users or []),
            'voteCount': 0,
            'notifications': {},
        }
        if last_winner:
            document['lastWinner'] = last_winner
        return document


@dataclass(frozen=True)
class Evaluation:
    """One member's rating of another member's submitted song."""
    round: str
    song: str
    evaluator: str
    evaluatee: str
    score: float
    rated_famous: bool = False
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    @classmethod
    def from_document(cls, evaluation_id: str, data: Dict[str, Any]) -> 'Evaluation':
        return cls(
            id=evaluation_id,
            round=data.get('round'),
            song=data.get('song'),
            evaluator=data.get('evaluator'),
            evaluatee=data.get('evaluatee'),
            score=float(data.get('score') or 0),
            rated_famous=bool(data.get('ratedFamous')),
            created_at=data.get('createdAt'),
        )


@dataclass(frozen=True)
class SubmissionResult:
    """Aggregate score of one submitted song."""
    user_id: str
    points: float
    times_rated_famous: int
    song: Optional[str] = None
