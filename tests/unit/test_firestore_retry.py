"""
Unit tests for the Firestore retry decorators.
"""

from unittest.mock import Mock, patch

import pytest
from google.api_core.exceptions import Aborted, NotFound, ServiceUnavailable

from shared.utils.firestore_retry import (
    calculate_delay_with_jitter,
    retry_firestore_transaction,
    retry_on_firestore_error,
)


@patch('shared.utils.firestore_retry.time.sleep')
def test_succeeds_after_transient_error(mock_sleep):
    operation = Mock(side_effect=[ServiceUnavailable("busy"), 'ok'])
    operation.__name__ = 'operation'

    assert retry_on_firestore_error(operation)() == 'ok'
    assert operation.call_count == 2
    assert mock_sleep.call_count == 1


@patch('shared.utils.firestore_retry.time.sleep')
def test_exhausted_retries_reraise(mock_sleep):
    operation = Mock(side_effect=ServiceUnavailable("busy"))
    operation.__name__ = 'operation'

    with pytest.raises(ServiceUnavailable):
        retry_on_firestore_error(max_attempts=3)(operation)()

    assert operation.call_count == 3
    assert mock_sleep.call_count == 2


@patch('shared.utils.firestore_retry.time.sleep')
def test_non_transient_error_not_retried(mock_sleep):
    operation = Mock(side_effect=NotFound("gone"))
    operation.__name__ = 'operation'

    with pytest.raises(NotFound):
        retry_on_firestore_error(operation)()

    assert operation.call_count == 1
    mock_sleep.assert_not_called()


@patch('shared.utils.firestore_retry.time.sleep')
def test_transaction_profile_allows_five_attempts(mock_sleep):
    operation = Mock(side_effect=[Aborted("contention")] * 4 + [True])
    operation.__name__ = 'claim'

    assert retry_firestore_transaction(operation)() is True
    assert operation.call_count == 5


def test_delay_is_capped_and_jittered():
    for attempt in range(10):
        delay = calculate_delay_with_jitter(attempt, base_delay=1.0, max_delay=5.0, jitter_factor=0.1)
        assert 0 <= delay <= 5.5

    assert calculate_delay_with_jitter(2, base_delay=1.0, max_delay=30.0, jitter_factor=0) == 4.0
