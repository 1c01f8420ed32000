"""
Unit tests for group and round document models.
"""

from datetime import datetime, timezone

import pytest

from rounds.exceptions import RoundDataIntegrityError
from rounds.models import Group, Round, ScheduleSetting, Stage
from shared.config.rounds_config import RoundScheduleDefaults

NOW = datetime(2026, 10, 14, 15, 0, tzinfo=timezone.utc)

SETTINGS = {
    'submissionsEndAt': {'weekDay': 'wednesday', 'hour': 12, 'minute': 0, 'second': 0},
    'evaluationsStartAt': {'weekDay': 'wednesday', 'hour': 12, 'minute': 0, 'second': 1},
    'evaluationsEndAt': {'weekDay': 'friday', 'hour': 18, 'minute': 0, 'second': 0},
}


class TestScheduleSetting:

    def test_from_dict(self):
        setting = ScheduleSetting.from_dict({'weekDay': 'Tuesday', 'hour': '15', 'minute': 0, 'second': 1})

        assert setting == ScheduleSetting('Tuesday', 15, 0, 1)

    @pytest.mark.parametrize('data', [
        {'weekDay': 'tuesday', 'hour': 15, 'minute': 0},
        {'weekDay': 'blursday', 'hour': 15, 'minute': 0, 'second': 0},
        {'weekDay': 'tuesday', 'hour': 24, 'minute': 0, 'second': 0},
        {'weekDay': 'tuesday', 'hour': 15, 'minute': 60, 'second': 0},
    ])
    def test_rejects_malformed(self, data):
        with pytest.raises(ValueError):
            ScheduleSetting.from_dict(data)


class TestGroupSchedule:

    def test_group_settings_take_precedence(self):
        group = Group.from_document('g1', {'settings': {'rounds': SETTINGS}})

        schedule = group.schedule(RoundScheduleDefaults().to_settings())

        assert schedule['evaluationsEndAt'] == ScheduleSetting('friday', 18, 0, 0)

    def test_defaults_when_group_has_no_settings(self):
        group = Group.from_document('g1', {'users': ['alice']})

        schedule = group.schedule(RoundScheduleDefaults().to_settings())

        assert schedule['submissionsEndAt'] == ScheduleSetting('tuesday', 15, 0, 0)
        assert schedule['evaluationsStartAt'] == ScheduleSetting('tuesday', 15, 0, 1)
        assert schedule['evaluationsEndAt'] == ScheduleSetting('sunday', 23, 0, 0)

    def test_partial_settings_are_an_integrity_error(self):
        group = Group.from_document('g1', {'settings': {'rounds': {'submissionsEndAt': SETTINGS['submissionsEndAt']}}})

        with pytest.raises(RoundDataIntegrityError) as exc_info:
            group.schedule(RoundScheduleDefaults().to_settings())
        assert exc_info.value.group_id == 'g1'


class TestRound:

    def test_stage_defaults_to_submission(self):
        round_ = Round.from_document('r1', {'submissionsEndAt': NOW, 'evaluationsEndAt': NOW})

        assert round_.current_stage == Stage.SUBMISSION
        assert round_.notifications == {}
        assert round_.last_winner is None

    def test_unknown_stage(self):
        with pytest.raises(RoundDataIntegrityError, match="unknown stage"):
            Round.from_document('r1', {'submissionsEndAt': NOW, 'evaluationsEndAt': NOW, 'currentStage': 'voting'})

    def test_max_songs_counts_last_winner(self):
        round_ = Round.from_document('r1', {
            'submissionsEndAt': NOW, 'evaluationsEndAt': NOW, 'users': ['a', 'b'], 'lastWinner': 'a',
        })

        assert round_.max_songs == 3

    @pytest.mark.parametrize('marker, awaiting', [(False, True), (True, False), (None, False)])
    def test_awaiting_announcement(self, marker, awaiting):
        data = {'submissionsEndAt': NOW, 'evaluationsEndAt': NOW, 'winner': 'a'}
        if marker is not None:
            data['winnerAnnounced'] = marker

        round_ = Round.from_document('r1', data)

        assert round_.winner == 'a'
        assert round_.awaiting_announcement is awaiting

    def test_new_document(self):
        document = Round.new_document(
            now=NOW, submissions_end_at=NOW, evaluations_start_at=NOW, evaluations_end_at=NOW,
            users=['a', 'b'], last_winner='a',
        )

        assert document['currentStage'] == 'submission'
        assert document['voteCount'] == 0
        assert document['songs'] == document['submissions'] == document['evaluations'] == []
        assert document['lastWinner'] == 'a'

    def test_new_document_without_winner(self):
        document = Round.new_document(
            now=NOW, submissions_end_at=NOW, evaluations_start_at=NOW, evaluations_end_at=NOW, users=[],
        )

        assert 'lastWinner' not in document
