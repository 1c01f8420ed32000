# tests/conftest.py
"""
Shared fixtures: an in-memory state store, a recording publisher and a
frozen clock.

The in-memory store keeps raw camelCase documents, exactly as Firestore
would return them, and converts through the same model constructors as
FirestoreStateStore.
"""

import copy
import itertools
from datetime import datetime, timedelta

import pytest
import pytz

from rounds.exceptions import RoundDataIntegrityError
from rounds.models import Evaluation, Group, Round
from shared.utils.datetime_service import DateTimeService

SAO_PAULO = pytz.timezone('America/Sao_Paulo')

# Wednesday, 12:00 in Sao Paulo
FROZEN_NOW = SAO_PAULO.localize(datetime(2026, 10, 14, 12, 0, 0))


class InMemoryStateStore:
    """State store over plain dicts, with the FirestoreStateStore surface."""

    def __init__(self):
        self.groups = {}
        self.rounds = {}
        self.evaluations = {}
        self.calls = []
        self._ids = itertools.count(1)
        # method name -> exception raised on every call, for failure tests
        self.fail_on = {}

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise self.fail_on[name]

    # Seeding helpers

    def add_group(self, group_id, **fields):
        self.groups[group_id] = fields
        return group_id

    def add_round(self, group_id, round_id, document):
        self.rounds[(group_id, round_id)] = document
        return round_id

    def add_evaluation(self, group_id, **fields):
        self.evaluations.setdefault(group_id, []).append(fields)

    # Store surface

    def list_groups(self):
        self._record('list_groups')
        return [Group.from_document(gid, copy.deepcopy(data)) for gid, data in self.groups.items()]

    def get_group(self, group_id):
        self._record('get_group', group_id)
        if group_id not in self.groups:
            raise RoundDataIntegrityError(f"Group {group_id} not found", group_id=group_id)
        return Group.from_document(group_id, copy.deepcopy(self.groups[group_id]))

    def get_round(self, group_id, round_id):
        self._record('get_round', group_id, round_id)
        key = (group_id, round_id)
        if key not in self.rounds:
            raise RoundDataIntegrityError(
                f"Round {round_id} of group {group_id} not found", group_id=group_id, round_id=round_id
            )
        return Round.from_document(round_id, copy.deepcopy(self.rounds[key]), group_id=group_id)

    def get_round_evaluations(self, group_id, round_id):
        self._record('get_round_evaluations', group_id, round_id)
        return [
            Evaluation.from_document(f"eval-{index}", data)
            for index, data in enumerate(self.evaluations.get(group_id, []))
            if data.get('round') == round_id
        ]

    def update_round(self, group_id, round_id, fields):
        self._record('update_round', group_id, round_id, fields)
        self.rounds[(group_id, round_id)].update(fields)

    def update_group(self, group_id, fields):
        self._record('update_group', group_id, fields)
        self.groups[group_id].update(fields)

    def create_round(self, group_id, document):
        self._record('create_round', group_id, document)
        round_id = f"round-{next(self._ids)}"
        self.rounds[(group_id, round_id)] = copy.deepcopy(document)
        return round_id

    def claim_notification(self, group_id, round_id, tag):
        self._record('claim_notification', group_id, round_id, tag)
        notifications = self.rounds[(group_id, round_id)].setdefault('notifications', {})
        if notifications.get(tag.wire):
            return False
        notifications[tag.wire] = True
        return True

    def release_notification(self, group_id, round_id, tag):
        self._record('release_notification', group_id, round_id, tag)
        self.rounds[(group_id, round_id)].get('notifications', {}).pop(tag.wire, None)


class RecordingPublisher:
    """Publisher double that records every message instead of sending it."""

    def __init__(self):
        self.lifecycle_triggers = []
        self.notifications = []
        # When set, every publish raises it
        self.error = None

    def _check(self):
        if self.error is not None:
            raise self.error

    def publish_lifecycle_trigger(self, group_id, round_id):
        self._check()
        self.lifecycle_triggers.append({'groupId': group_id, 'roundId': round_id})
        return f"msg-{len(self.lifecycle_triggers)}"

    def publish_period_about_to_finish(self, hours, stage, group_id=None):
        self._check()
        self.notifications.append({
            'type': 'periodAboutToFinish',
            'params': {'hours': hours, 'stage': stage, 'groupId': group_id},
        })
        return f"msg-{len(self.notifications)}"

    def publish_evaluation_period_finished(self, winner, group_id):
        self._check()
        self.notifications.append({
            'type': 'evaluationPeriodFinished',
            'params': {'winner': winner, 'groupId': group_id},
        })
        return f"msg-{len(self.notifications)}"


def make_round_document(now, **overrides):
    """
    Round document in the middle of its submission stage.

    Submissions end in 3 days, evaluations end in 6 days.
    """
    document = {
        'currentStage': 'submission',
        'submissionsStartAt': now - timedelta(days=1),
        'submissionsEndAt': now + timedelta(days=3),
        'evaluationsStartAt': now + timedelta(days=3, seconds=1),
        'evaluationsEndAt': now + timedelta(days=6),
        'songs': [],
        'submissions': [],
        'evaluations': [],
        'users': ['alice', 'bob', 'carol'],
        'voteCount': 0,
        'notifications': {},
    }
    document.update(overrides)
    return document


@pytest.fixture
def now():
    return FROZEN_NOW


@pytest.fixture
def clock(now):
    return DateTimeService('America/Sao_Paulo', now=now)


@pytest.fixture
def store():
    return InMemoryStateStore()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def round_document(now):
    """Factory for round documents relative to the frozen clock."""
    def _make(**overrides):
        return make_round_document(now, **overrides)
    return _make
