"""
Round winner computation.

Each submitted song is scored by the average of the scores it received,
rounded to two decimals. A song that a strict majority of its evaluators
rated as already famous loses 10 points (10% of the maximum score). Songs
are ranked by final points; on equal points the song rated famous fewer
times wins.
"""

import math
import sys
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from rounds.models import Evaluation, SubmissionResult
from shared.utils.structured_logging import StructuredLogger

logger = StructuredLogger(__name__)

MAX_SCORE_ALLOWED = 100
FAMOUS_SUBMISSION_PENALTY = MAX_SCORE_ALLOWED * 0.1
FAMOUS_MAJORITY_RATIO = 0.5


def round_points(value: float) -> float:
    """
    Round to two decimals, with halves rounded up.

    A machine-epsilon bias is added before scaling.
    """
    return math.floor((value + sys.float_info.epsilon) * 100 + 0.5) / 100


def group_evaluations_by_song(evaluations: Iterable[Evaluation]) -> Dict[str, List[Evaluation]]:
    """Group evaluations by submitted song, keeping first-seen song order."""
    grouped: Dict[str, List[Evaluation]] = OrderedDict()
    for evaluation in evaluations:
        grouped.setdefault(evaluation.song, []).append(evaluation)
    return grouped


def count_rated_famous(evaluations: List[Evaluation]) -> int:
    return sum(1 for evaluation in evaluations if evaluation.rated_famous)


def is_submission_famous(evaluations: List[Evaluation]) -> bool:
    """Strictly more than half of the evaluators rated the song famous."""
    if not evaluations:
        return False
    return count_rated_famous(evaluations) / len(evaluations) > FAMOUS_MAJORITY_RATIO


def get_submission_points(evaluations: List[Evaluation]) -> float:
    """Average score rounded to two decimals, less the fame penalty."""
    count = len(evaluations)
    total = sum(evaluation.score for evaluation in evaluations)
    base_points = round_points(total / count) if count else 0.0
    penalty = FAMOUS_SUBMISSION_PENALTY if is_submission_famous(evaluations) else 0.0
    return round_points(base_points - penalty)


def compute_submission_result(song: str, evaluations: List[Evaluation]) -> SubmissionResult:
    return SubmissionResult(
        user_id=evaluations[0].evaluatee if evaluations else None,
        points=get_submission_points(evaluations),
        times_rated_famous=count_rated_famous(evaluations),
        song=song,
    )


def rank_submissions(results: Iterable[SubmissionResult]) -> List[SubmissionResult]:
    """
    Order results best first.

    Descending points, then ascending times rated famous. The sort is stable,
    so results equal on both keys keep their input order.
    """
    return sorted(results, key=lambda result: (-result.points, result.times_rated_famous))


def compute_round_results(evaluations: Iterable[Evaluation]) -> List[SubmissionResult]:
    """Ranked results for every song that received at least one evaluation."""
    grouped = group_evaluations_by_song(evaluations)
    results = [compute_submission_result(song, song_evaluations) for song, song_evaluations in grouped.items()]
    return rank_submissions(results)


def compute_winner(evaluations: Iterable[Evaluation]) -> Optional[str]:
    """
    Compute the user ID of the round winner.

    Returns:
        Winner's user ID, or None when there are no evaluations at all
    """
    ranked = compute_round_results(evaluations)
    if not ranked:
        logger.warning("No evaluations found, round has no winner")
        return None

    winner = ranked[0]
    logger.info(
        f"Round winner: {winner.user_id} with {winner.points:.2f} points "
        f"({len(ranked)} songs ranked)",
        extra={
            'event_type': 'round_winner_computed',
            'winner': winner.user_id,
            'points': winner.points,
            'times_rated_famous': winner.times_rated_famous,
            'songs_ranked': len(ranked),
        }
    )
    return winner.user_id
