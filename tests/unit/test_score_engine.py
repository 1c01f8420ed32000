"""
Unit tests for the round winner computation.

Run:
    pytest tests/unit/test_score_engine.py -v
"""

import pytest

from rounds.models import Evaluation, SubmissionResult
from rounds.score_engine import (
    FAMOUS_SUBMISSION_PENALTY,
    compute_round_results,
    compute_winner,
    get_submission_points,
    is_submission_famous,
    rank_submissions,
    round_points,
)


def evaluation(song, evaluatee, score, rated_famous=False, evaluator='someone'):
    return Evaluation(
        round='r1', song=song, evaluator=evaluator, evaluatee=evaluatee,
        score=score, rated_famous=rated_famous,
    )


# ============================================================================
# TEST: Rounding
# ============================================================================

@pytest.mark.parametrize('value,expected', [
    (80.0, 80.0),
    (83.333333, 83.33),
    (66.666666, 66.67),
    (1.005, 1.01),
    (0.125, 0.13),
    (-10.0, -10.0),
])
def test_round_points(value, expected):
    assert round_points(value) == expected


# ============================================================================
# TEST: Per-submission points
# ============================================================================

def test_average_without_fame_penalty():
    evaluations = [evaluation('A', 'alice', s) for s in (80, 90, 70)]

    assert get_submission_points(evaluations) == 80.0


def test_famous_majority_loses_ten_points():
    evaluations = [evaluation('B', 'bob', 95, rated_famous=True) for _ in range(2)]

    assert is_submission_famous(evaluations)
    assert get_submission_points(evaluations) == 95.0 - FAMOUS_SUBMISSION_PENALTY


def test_exactly_half_famous_is_not_penalized():
    evaluations = [
        evaluation('B', 'bob', 60, rated_famous=True),
        evaluation('B', 'bob', 60, rated_famous=False),
    ]

    assert not is_submission_famous(evaluations)
    assert get_submission_points(evaluations) == 60.0


def test_points_rounded_before_penalty():
    # 200 / 3 = 66.666... -> 66.67, minus 10 -> 56.67
    evaluations = [
        evaluation('C', 'carol', 66, rated_famous=True),
        evaluation('C', 'carol', 67, rated_famous=True),
        evaluation('C', 'carol', 67, rated_famous=False),
    ]

    assert get_submission_points(evaluations) == 56.67


def test_empty_submission_scores_zero():
    assert get_submission_points([]) == 0.0
    assert not is_submission_famous([])


# ============================================================================
# TEST: Ranking and winner
# ============================================================================

def test_penalized_song_can_still_win():
    evaluations = [evaluation('A', 'alice', s) for s in (80, 90, 70)]
    evaluations += [evaluation('B', 'bob', 95, rated_famous=True) for _ in range(2)]

    results = compute_round_results(evaluations)

    assert [(r.user_id, r.points) for r in results] == [('bob', 85.0), ('alice', 80.0)]
    assert compute_winner(evaluations) == 'bob'


def test_tie_broken_by_fewer_famous_ratings():
    # Both at 50.00; dave rated famous 3 of 7 times, erin 1 of 7 times
    evaluations = [evaluation('D', 'dave', 50, rated_famous=i < 3) for i in range(7)]
    evaluations += [evaluation('E', 'erin', 50, rated_famous=i < 1) for i in range(7)]

    results = compute_round_results(evaluations)

    assert [r.points for r in results] == [50.0, 50.0]
    assert [r.user_id for r in results] == ['erin', 'dave']
    assert compute_winner(evaluations) == 'erin'


def test_full_tie_keeps_input_order():
    results = [
        SubmissionResult(user_id='first', points=70.0, times_rated_famous=1),
        SubmissionResult(user_id='second', points=70.0, times_rated_famous=1),
        SubmissionResult(user_id='top', points=71.0, times_rated_famous=2),
    ]

    ranked = rank_submissions(results)

    assert [r.user_id for r in ranked] == ['top', 'first', 'second']


def test_results_carry_famous_counts_and_song():
    evaluations = [
        evaluation('A', 'alice', 40, rated_famous=True),
        evaluation('A', 'alice', 60, rated_famous=False),
    ]

    [result] = compute_round_results(evaluations)

    assert result == SubmissionResult(user_id='alice', points=50.0, times_rated_famous=1, song='A')


def test_no_evaluations_has_no_winner(caplog):
    assert compute_winner([]) is None
    assert 'No evaluations found' in caplog.text
