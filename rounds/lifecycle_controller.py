"""
Round lifecycle controller - message-driven round transitions.

Handles one {groupId, roundId} message per invocation. Messages for a round
that is no longer the group's ongoing round are stale; they only re-publish
the winner announcement of a finished round whose publish failed. For the
current round, one transition is decided and applied:

    FINISH         evaluation deadline passed, or every member has voted:
                   compute the winner, close the round, start the next one
    FORCE_ADVANCE  every song is in before the submission deadline, or the
                   submission deadline passed while still in submission:
                   start the evaluation stage now
    ANNOUNCE       stale trigger, winner announcement re-published
    NONE           nothing to do

Finished rounds stay in the store as history; the group's ongoingRound
pointer moves to the new round.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, Optional

from rounds.exceptions import RoundDataIntegrityError
from rounds.models import Evaluation, Group, Round, Stage
from rounds.score_engine import compute_winner
from shared.utils.structured_logging import StructuredLogger, clear_logging_context, set_logging_context

logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(__name__)

# Maps Round.new_document() deadline arguments to group schedule fields
NEW_ROUND_DEADLINES = {
    'submissions_end_at': 'submissionsEndAt',
    'evaluations_start_at': 'evaluationsStartAt',
    'evaluations_end_at': 'evaluationsEndAt',
}


class Transition(str, Enum):
    NONE = "none"
    FINISH = "finish"
    FORCE_ADVANCE = "force_advance"
    ANNOUNCE = "announce"


def has_period_finished(round_: Round, stage: Stage, now: datetime) -> bool:
    return now > round_.deadline(stage)


def has_everyone_voted(round_: Round) -> bool:
    return round_.vote_count == len(round_.users)


def has_everyone_submitted_all_songs(round_: Round) -> bool:
    return len(round_.songs) == round_.max_songs


def should_finish_round(round_: Round, now: datetime) -> bool:
    return has_period_finished(round_, Stage.EVALUATION, now) or has_everyone_voted(round_)


def should_force_advance(round_: Round, now: datetime) -> bool:
    if not has_period_finished(round_, Stage.SUBMISSION, now):
        return has_everyone_submitted_all_songs(round_)
    # Stuck past its submission deadline
    return round_.current_stage == Stage.SUBMISSION


def decide_transition(round_: Round, now: datetime) -> Transition:
    """Lifecycle state machine: (round, now) -> transition."""
    if should_finish_round(round_, now):
        return Transition.FINISH
    if should_force_advance(round_, now):
        return Transition.FORCE_ADVANCE
    return Transition.NONE


class LifecycleController:
    """
    Applies lifecycle transitions to a group's ongoing round.

    Args:
        store: State store (FirestoreStateStore or compatible)
        publisher: RoundEventPublisher or compatible
        clock: DateTimeService or compatible
        schedule_defaults: settings.rounds map used for groups without settings
        winner_fn: Winner computation over a round's evaluations
    """

    def __init__(
        self,
        store,
        publisher,
        clock,
        schedule_defaults: Dict[str, Dict[str, object]],
        winner_fn: Callable[[Iterable[Evaluation]], Optional[str]] = compute_winner,
    ):
        self.store = store
        self.publisher = publisher
        self.clock = clock
        self.schedule_defaults = schedule_defaults
        self.winner_fn = winner_fn

    def execute(self, group_id: str, round_id: str) -> Transition:
        """
        Process one lifecycle trigger.

        Returns:
            The transition applied (NONE for no-ops and stale triggers
            with nothing left to announce)
        """
        set_logging_context(group_id=group_id, round_id=round_id)
        try:
            structured_logger.info("Starting execution of round lifecycle controller")

            group = self.store.get_group(group_id)
            if group.ongoing_round_id != round_id:
                structured_logger.info(
                    f"Round {round_id} is not the ongoing round ({group.ongoing_round_id}), stale trigger",
                    extra={'event_type': 'controller_stale_trigger', 'ongoing_round_id': group.ongoing_round_id}
                )
                return self.announce_pending_winner(group.id, round_id)

            transition = self.process_round(group)

            structured_logger.info(
                "Finished executing round lifecycle controller",
                extra={'event_type': 'controller_complete', 'transition': transition.value}
            )
            return transition
        finally:
            clear_logging_context()

    def process_round(self, group: Group) -> Transition:
        round_ = self.store.get_round(group.id, group.ongoing_round_id)
        now = self.clock.current
        transition = decide_transition(round_, now)

        structured_logger.debug(
            f"Decided transition {transition.value}",
            extra={
                'transition': transition.value,
                'current_stage': round_.current_stage.value,
                'vote_count': round_.vote_count,
                'users': len(round_.users),
                'songs': len(round_.songs),
                'max_songs': round_.max_songs,
            }
        )

        if transition == Transition.FINISH:
            self.finish_round(group, round_)
        elif transition == Transition.FORCE_ADVANCE:
            self.force_start_evaluation_period(group.id, round_.id)
        return transition

    def finish_round(self, group: Group, round_: Round) -> str:
        """
        Close a round and start its successor.

        The successor is built before anything is written, so malformed
        group settings leave the finished round untouched. The successor
        starts at the same instant the finished round's evaluations end.

        If publishing the winner fails the round stays marked unannounced,
        and the redelivered trigger re-publishes it.

        Returns:
            ID of the new round
        """
        evaluations = self.store.get_round_evaluations(group.id, round_.id)
        winner = self.winner_fn(evaluations)
        if winner is None:
            structured_logger.warning(
                f"Round {round_.id} finished without evaluations, next round has no last winner",
                extra={'event_type': 'round_finished_without_winner', 'evaluations': len(evaluations)}
            )

        # Re-read so the member snapshot is current
        now = self.clock.current
        document = self.build_new_round_document(self.store.get_group(group.id), winner, now=now)

        # Frozen with the winner so a stale trigger can re-announce it
        self.store.update_round(group.id, round_.id, {
            'evaluationsEndAt': now,
            'winner': winner,
            'winnerAnnounced': False,
        })

        new_round_id = self._create_ongoing_round(group.id, document)

        self._announce_winner(group.id, round_.id, winner)

        structured_logger.info(
            f"Round {round_.id} finished, round {new_round_id} started",
            extra={'event_type': 'round_finished', 'winner': winner, 'new_round_id': new_round_id}
        )
        return new_round_id

    def announce_pending_winner(self, group_id: str, round_id: str) -> Transition:
        """Re-publish the winner of a finished round whose announcement never went out."""
        try:
            round_ = self.store.get_round(group_id, round_id)
        except RoundDataIntegrityError as e:
            structured_logger.warning(
                f"Ignoring stale trigger for unreadable round: {e}",
                extra={'event_type': 'controller_stale_round_unreadable'}
            )
            return Transition.NONE

        if not round_.awaiting_announcement:
            return Transition.NONE

        self._announce_winner(group_id, round_id, round_.winner)
        structured_logger.info(
            f"Re-announced winner of round {round_id}",
            extra={'event_type': 'round_winner_reannounced', 'winner': round_.winner}
        )
        return Transition.ANNOUNCE

    def _announce_winner(self, group_id: str, round_id: str, winner: Optional[str]) -> None:
        self.publisher.publish_evaluation_period_finished(winner=winner, group_id=group_id)
        self.store.update_round(group_id, round_id, {'winnerAnnounced': True})

    def start_new_round(self, group_id: str, last_winner: Optional[str] = None) -> str:
        """Create a round from the group's current members and schedule, then point the group at it."""
        group = self.store.get_group(group_id)
        return self._create_ongoing_round(group_id, self.build_new_round_document(group, last_winner))

    def _create_ongoing_round(self, group_id: str, document: dict) -> str:
        new_round_id = self.store.create_round(group_id, document)
        self.store.update_group(group_id, {'ongoingRound': new_round_id})
        return new_round_id

    def build_new_round_document(
        self, group: Group, last_winner: Optional[str] = None, now: Optional[datetime] = None
    ) -> dict:
        schedule = group.schedule(self.schedule_defaults)
        now = now or self.clock.current

        deadlines = {}
        for argument, field_name in NEW_ROUND_DEADLINES.items():
            setting = schedule[field_name]
            deadlines[argument] = self.clock.get_day_of_next_week_with_time(
                setting.week_day, setting.hour, setting.minute, setting.second
            )

        return Round.new_document(now=now, users=group.users, last_winner=last_winner, **deadlines)

    def force_start_evaluation_period(self, group_id: str, round_id: str) -> None:
        """Close submissions now and open the evaluation stage."""
        now = self.clock.current
        self.store.update_round(group_id, round_id, {
            'submissionsEndAt': now,
            'evaluationsStartAt': now,
            'currentStage': Stage.EVALUATION.value,
        })
        self.publisher.publish_period_about_to_finish(hours=0, stage=Stage.SUBMISSION.value, group_id=group_id)

        structured_logger.info(
            "Evaluation period started early",
            extra={'event_type': 'evaluation_period_forced'}
        )

    def bootstrap_group(self, group_id: str) -> str:
        """
        Start the first round of a group that has none.

        Raises:
            RoundDataIntegrityError: The group already has an ongoing round
        """
        group = self.store.get_group(group_id)
        if group.ongoing_round_id:
            raise RoundDataIntegrityError(
                f"Group {group_id} already has ongoing round {group.ongoing_round_id}",
                group_id=group_id, round_id=group.ongoing_round_id
            )

        new_round_id = self.start_new_round(group_id)
        logger.info(f"Bootstrapped group {group_id} with round {new_round_id}")
        return new_round_id
