"""
Unit tests for the Round Lifecycle Controller Cloud Function.

Tests message decoding and validation at the Pub/Sub boundary; the
controller itself is replaced with a mock.

Run:
    pytest tests/cloud_functions/test_round_lifecycle_controller.py -v
"""

import base64
import json
from unittest.mock import Mock, patch

import pytest

from cloud_functions.round_lifecycle_controller.main import (
    parse_lifecycle_trigger,
    parse_pubsub_message,
    round_lifecycle_controller,
)
from rounds.exceptions import InvalidLifecycleMessage, RoundDataIntegrityError
from rounds.lifecycle_controller import Transition
from shared.config.rounds_config import RoundsConfig


# ============================================================================
# FIXTURES
# ============================================================================

def make_cloud_event(payload):
    """CloudEvent carrying a Pub/Sub message, encoded as Pub/Sub does."""
    raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode('utf-8')
    cloud_event = Mock()
    cloud_event.data = {
        'message': {
            'data': base64.b64encode(raw),
            'messageId': 'test-message-123',
            'publishTime': '2026-10-14T15:00:00Z',
        }
    }
    return cloud_event


@pytest.fixture
def mock_controller():
    with patch('cloud_functions.round_lifecycle_controller.main.build_controller') as mock_build, \
            patch('cloud_functions.round_lifecycle_controller.main.configure_logging'), \
            patch('cloud_functions.round_lifecycle_controller.main.get_rounds_config', return_value=RoundsConfig()):
        yield mock_build.return_value


# ============================================================================
# TEST: Message Parsing
# ============================================================================

def test_parse_pubsub_message():
    assert parse_pubsub_message(make_cloud_event({'groupId': 'g1', 'roundId': 'r1'})) == {
        'groupId': 'g1', 'roundId': 'r1',
    }


def test_parse_pubsub_message_invalid():
    cloud_event = Mock()
    cloud_event.data = {}

    with pytest.raises(InvalidLifecycleMessage, match="Invalid Pub/Sub message format"):
        parse_pubsub_message(cloud_event)


def test_parse_pubsub_message_not_json():
    with pytest.raises(InvalidLifecycleMessage, match="Invalid Pub/Sub message format"):
        parse_pubsub_message(make_cloud_event(b'not json'))


def test_parse_lifecycle_trigger_requires_both_ids():
    with pytest.raises(InvalidLifecycleMessage, match="Invalid lifecycle trigger"):
        parse_lifecycle_trigger(make_cloud_event({'groupId': 'g1'}))


# ============================================================================
# TEST: Entry point
# ============================================================================

def test_runs_controller_for_trigger(mock_controller):
    mock_controller.execute.return_value = Transition.FINISH

    result = round_lifecycle_controller(make_cloud_event({'groupId': 'g1', 'roundId': 'r1'}))

    mock_controller.execute.assert_called_once_with('g1', 'r1')
    assert result == {'status': 'success', 'group_id': 'g1', 'round_id': 'r1', 'transition': 'finish'}


def test_invalid_message_is_acknowledged(mock_controller):
    result = round_lifecycle_controller(make_cloud_event({'roundId': 'r1'}))

    assert result['status'] == 'invalid_message'
    mock_controller.execute.assert_not_called()


def test_controller_errors_propagate_for_redelivery(mock_controller):
    mock_controller.execute.side_effect = RoundDataIntegrityError("Group g1 not found", group_id='g1')

    with pytest.raises(RoundDataIntegrityError):
        round_lifecycle_controller(make_cloud_event({'groupId': 'g1', 'roundId': 'r1'}))
