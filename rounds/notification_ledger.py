"""
Notification ledger of a round.

The ledger records which deadline notifications were already sent for a
round, as (stage, hours) tags. It only ever grows during a round's life.

Storage format (Round.notifications) is a sparse map of wire tags:
    {"submissionPeriodAboutToFinish:24": true, "evaluationPeriodAboutToFinish:0": true}
Wire tags are only produced and parsed at that boundary.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable

from rounds.exceptions import RoundDataIntegrityError
from rounds.models import Stage

# Hours-before-deadline at which notifications are sent, most urgent last
NOTIFICATION_HOURS = (24, 8, 2, 0)

_TAG_PATTERN = re.compile(r'^(?P<stage>[a-z]+)PeriodAboutToFinish:(?P<hours>\d+)$')


@dataclass(frozen=True, order=True)
class NotificationTag:
    stage: Stage
    hours: int

    @property
    def wire(self) -> str:
        """Storage key, e.g. 'evaluationPeriodAboutToFinish:2'."""
        return f"{self.stage.value}PeriodAboutToFinish:{self.hours}"

    @classmethod
    def parse(cls, wire: str) -> 'NotificationTag':
        """
        Parse a storage key.

        Raises:
            RoundDataIntegrityError: If the key is not a notification tag
        """
        match = _TAG_PATTERN.match(wire or '')
        if not match:
            raise RoundDataIntegrityError(f"Unparseable notification tag: {wire!r}")
        try:
            stage = Stage(match.group('stage'))
        except ValueError as e:
            raise RoundDataIntegrityError(f"Unknown stage in notification tag: {wire!r}") from e
        return cls(stage=stage, hours=int(match.group('hours')))

    def __str__(self) -> str:
        return self.wire


class NotificationLedger:
    """Set of notification tags already sent for a round."""

    def __init__(self, tags: Iterable[NotificationTag] = ()):
        self._tags = set(tags)

    @classmethod
    def from_document(cls, notifications: Dict[str, bool]) -> 'NotificationLedger':
        """
        Build from a round's stored notifications map.

        Entries set to false were never sent and are ignored.
        """
        return cls(
            NotificationTag.parse(wire)
            for wire, sent in (notifications or {}).items()
            if sent
        )

    def __contains__(self, tag: NotificationTag) -> bool:
        return tag in self._tags

    def __len__(self) -> int:
        return len(self._tags)

    def add(self, tag: NotificationTag) -> bool:
        """Record a sent notification. Returns False if it was already recorded."""
        if tag in self._tags:
            return False
        self._tags.add(tag)
        return True

    def blocks(self, stage: Stage, hours: int) -> bool:
        """
        Whether a notification for (stage, hours) is superseded.

        It is superseded once any notification of the same stage at the same
        or a more urgent hour mark was sent, and a submission notification is
        also superseded by any evaluation notification, since the evaluation
        stage follows the submission stage.
        """
        for tag in self._tags:
            if tag.stage == stage and tag.hours <= hours:
                return True
            if stage == Stage.SUBMISSION and tag.stage == Stage.EVALUATION:
                return True
        return False
