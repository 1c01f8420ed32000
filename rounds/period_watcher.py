"""
Period watcher - time-driven deadline notifications for every group's round.

Runs once per scheduler tick. For each group, the ongoing round is checked
against an ordered table of threshold rules; the first rule that applies
fires and the rest are skipped until the next pass.

Rule table (evaluation order):
    1. evaluation, 0h   -> lifecycle trigger to the controller
    2. evaluation, 2h   -> periodAboutToFinish notification
    3. evaluation, 8h
    4. evaluation, 24h
    5. submission, 0h
    6. submission, 2h
    7. submission, 8h
    8. submission, 24h

A rule applies when its deadline is less than `hours` away (or passed) and
the round's ledger does not already hold the same or a more urgent
notification for that stage (any evaluation notification also supersedes
every submission one).

Groups are processed concurrently; a failure in one group is recorded in the
pass report and never stops its siblings.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from rounds.exceptions import RoundDataIntegrityError
from rounds.models import Group, Round, Stage
from rounds.notification_ledger import NotificationLedger, NotificationTag
from shared.utils.structured_logging import StructuredLogger, clear_logging_context, set_logging_context

logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(__name__)


class RuleAction:
    LIFECYCLE_TRIGGER = "lifecycle_trigger"
    PERIOD_ABOUT_TO_FINISH = "period_about_to_finish"


@dataclass(frozen=True)
class ThresholdRule:
    stage: Stage
    hours: int
    action: str = RuleAction.PERIOD_ABOUT_TO_FINISH

    @property
    def tag(self) -> NotificationTag:
        return NotificationTag(self.stage, self.hours)

    def threshold(self, round_: Round) -> datetime:
        """Instant after which this rule is due."""
        return round_.deadline(self.stage) - timedelta(hours=self.hours)

    def check(self, round_: Round, ledger: NotificationLedger, now: datetime) -> bool:
        """Whether this rule should fire for the round at `now`."""
        if ledger.blocks(self.stage, self.hours):
            return False
        return now > self.threshold(round_)


RULE_TABLE = (
    ThresholdRule(Stage.EVALUATION, 0, RuleAction.LIFECYCLE_TRIGGER),
    ThresholdRule(Stage.EVALUATION, 2),
    ThresholdRule(Stage.EVALUATION, 8),
    ThresholdRule(Stage.EVALUATION, 24),
    ThresholdRule(Stage.SUBMISSION, 0),
    ThresholdRule(Stage.SUBMISSION, 2),
    ThresholdRule(Stage.SUBMISSION, 8),
    ThresholdRule(Stage.SUBMISSION, 24),
)


def select_rule(round_: Round, now: datetime, rules=RULE_TABLE) -> Optional[ThresholdRule]:
    """First rule in table order whose check passes, or None."""
    ledger = NotificationLedger.from_document(round_.notifications)
    for rule in rules:
        if rule.check(round_, ledger, now):
            return rule
        logger.debug(f"Skipping action for {rule.tag}")
    return None


@dataclass
class GroupWatchResult:
    group_id: str
    round_id: Optional[str] = None
    fired: Optional[NotificationTag] = None
    # Another pass claimed the selected rule first
    skipped_duplicate: bool = False
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class WatcherReport:
    results: List[GroupWatchResult] = field(default_factory=list)

    @property
    def failures(self) -> List[GroupWatchResult]:
        return [result for result in self.results if not result.ok]

    @property
    def fired(self) -> List[GroupWatchResult]:
        return [result for result in self.results if result.fired is not None]

    def to_dict(self) -> dict:
        return {
            'groups': len(self.results),
            'fired': {result.group_id: result.fired.wire for result in self.fired},
            'failed': {result.group_id: f"{type(result.error).__name__}: {result.error}" for result in self.failures},
        }


class PeriodWatcher:
    """
    Evaluates the rule table for every group's ongoing round.

    Args:
        store: State store (FirestoreStateStore or compatible)
        publisher: RoundEventPublisher or compatible
        clock: DateTimeService or compatible (provides `.current`)
        max_workers: Maximum groups processed concurrently
    """

    def __init__(self, store, publisher, clock, max_workers: int = 8, rules=RULE_TABLE):
        self.store = store
        self.publisher = publisher
        self.clock = clock
        self.max_workers = max(1, max_workers)
        self.rules = rules

    def run(self) -> WatcherReport:
        """Run one pass over all groups and report the outcome of each."""
        logger.info("Starting execution of round lifecycle watcher")

        groups = self.store.list_groups()
        report = WatcherReport()
        if not groups:
            logger.info("No groups found, nothing to watch")
            return report

        workers = min(self.max_workers, len(groups))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self._process_group_isolated, group): group for group in groups}
            for future in as_completed(futures):
                report.results.append(future.result())

        structured_logger.info(
            f"Finished executing round lifecycle watcher: {len(report.results)} groups, "
            f"{len(report.fired)} fired, {len(report.failures)} failed",
            extra={'event_type': 'watcher_pass_complete', **report.to_dict()}
        )
        return report

    def _process_group_isolated(self, group: Group) -> GroupWatchResult:
        set_logging_context(group_id=group.id, round_id=group.ongoing_round_id)
        try:
            return self.process_group(group)
        except Exception as e:
            structured_logger.error(
                f"Watcher failed for group {group.id}: {e}",
                extra={'event_type': 'watcher_group_failed', 'error_type': type(e).__name__},
                exc_info=True,
            )
            return GroupWatchResult(group_id=group.id, round_id=group.ongoing_round_id, error=e)
        finally:
            clear_logging_context()

    def process_group(self, group: Group) -> GroupWatchResult:
        """
        Evaluate the rule table for one group and fire at most one rule.

        Raises:
            RoundDataIntegrityError: Group has no ongoing round, or it cannot be read
        """
        if not group.ongoing_round_id:
            raise RoundDataIntegrityError(f"Group {group.id} has no ongoing round", group_id=group.id)

        round_ = self.store.get_round(group.id, group.ongoing_round_id)
        now = self.clock.current
        result = GroupWatchResult(group_id=group.id, round_id=round_.id)

        structured_logger.debug(
            "Got ongoing round data",
            extra={
                'evaluations_end_at': round_.evaluations_end_at.isoformat(),
                'submissions_end_at': round_.submissions_end_at.isoformat(),
                'notifications': round_.notifications,
            }
        )

        rule = select_rule(round_, now, self.rules)
        if rule is None:
            return result

        if self.execute_action(rule, group.id, round_.id):
            result.fired = rule.tag
        else:
            result.skipped_duplicate = True
        return result

    def execute_action(self, rule: ThresholdRule, group_id: str, round_id: str) -> bool:
        """
        Claim the rule's ledger tag, then publish its message.

        The claim is a compare-and-set, so of several overlapping passes only
        one publishes. If publishing fails the claim is released and the
        error propagates.

        Returns:
            True if the message was published, False if the tag was already claimed
        """
        tag = rule.tag
        if not self.store.claim_notification(group_id, round_id, tag):
            structured_logger.info(
                f"Notification {tag} already claimed by another pass",
                extra={'event_type': 'watcher_duplicate_skipped', 'tag': tag.wire}
            )
            return False

        structured_logger.info(f"Executing action for {tag}", extra={'event_type': 'watcher_rule_fired', 'tag': tag.wire})

        try:
            if rule.action == RuleAction.LIFECYCLE_TRIGGER:
                self.publisher.publish_lifecycle_trigger(group_id=group_id, round_id=round_id)
            else:
                self.publisher.publish_period_about_to_finish(
                    hours=rule.hours, stage=rule.stage.value, group_id=group_id
                )
        except Exception:
            self.store.release_notification(group_id, round_id, tag)
            raise

        return True
