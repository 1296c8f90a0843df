"""Scoring Engine.

Points for a correct answer are a 1000 base plus a speed bonus of up to 500,
linear in the fraction of the time limit still remaining. Wrong answers
score 0 however fast they were.

A player may change their answer while the question is open. Each
submission replaces the ledger entry and shifts the player's round and total
scores by ``new_points - old_points`` in a single patch, so ``total_score``
always equals ``sum(scores)`` without re-aggregating the ledger.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from vibequiz.context import QuizContext
from vibequiz.domain import OPTION_COUNT, Answer, AnswerKey, Player, Question, Quiz, Session
from vibequiz.errors import SubmissionClosed, ValidationFailure
from . import ledger
from .paths import player_path, players_path
from .quizzes import get_quiz
from .roster import get_player, players_from_snapshot, validate_player_id
from .sessions import get_session, normalize_code

logger = logging.getLogger(__name__)

BASE_POINTS = 1000
SPEED_BONUS_POINTS = 500


def compute_points(correct: bool, elapsed: float, time_limit: int) -> int:
    if not correct:
        return 0
    elapsed = max(0.0, elapsed)
    remaining = max(0.0, time_limit - elapsed)
    return math.floor(BASE_POINTS + SPEED_BONUS_POINTS * remaining / time_limit)


def time_remaining(session: Session, question: Question, now: float) -> float:
    if session.question_started_at is None:
        return 0.0
    elapsed = max(0.0, now - session.question_started_at)
    return max(0.0, question.time_limit - elapsed)


def seconds_left(session: Session, question: Question, now: float) -> int:
    """Whole seconds to show on a countdown."""
    return math.ceil(time_remaining(session, question, now))


@dataclass
class SubmissionResult:
    key: AnswerKey
    answer: Answer
    previous_points: int | None
    delta: int
    round_score: int
    total_score: int

    @property
    def replaced(self) -> bool:
        return self.previous_points is not None

    def to_dict(self):
        return {
            'key': self.key.encode(),
            'answer': self.answer.to_dict(),
            'delta': self.delta,
            'round_score': self.round_score,
            'total_score': self.total_score,
        }


def _validate_answer_index(answer_index) -> int:
    if not isinstance(answer_index, int) or isinstance(answer_index, bool) \
            or not 0 <= answer_index < OPTION_COUNT:
        raise ValidationFailure(f'Answer must be an option between 0 and {OPTION_COUNT - 1}.')
    return answer_index


def submit_answer(ctx: QuizContext, code: str, player_id: str, answer_index: int,
                  session: Session | None = None, quiz: Quiz | None = None) -> SubmissionResult:
    """Record ``player_id``'s answer to the active question and rescore them.

    ``session`` and ``quiz`` may be the caller's mirrored view; the answer is
    timed against that view. Without them both are read from the store.
    """
    store = ctx.require_store()
    code = normalize_code(code)
    player_id = validate_player_id(player_id)
    answer_index = _validate_answer_index(answer_index)
    if session is None:
        session = get_session(ctx, code)
    if not session.is_answering or session.question_started_at is None:
        raise SubmissionClosed()
    if quiz is None or quiz.id != session.quiz_id:
        quiz = get_quiz(ctx, session.quiz_id)
    round_index, question_index = session.current_round, session.current_question
    question = quiz.question_at(round_index, question_index)
    if question is None:
        raise SubmissionClosed('There is no active question.')

    player = get_player(ctx, code, player_id)
    key = AnswerKey(player_id, round_index, question_index)
    previous = ledger.get_answer(ctx, code, key)
    previous_points = previous.points if previous else 0

    now = ctx.now()
    correct = answer_index == question.correct_index
    points = compute_points(correct, now - session.question_started_at, question.time_limit)
    answer = Answer(player_id=player_id, answer_index=answer_index, answered_at=now,
                    correct=correct, points=points)
    ledger.record_answer(ctx, code, key, answer)

    delta = points - previous_points
    round_score = player.round_score(round_index) + delta
    total_score = player.total_score + delta
    if delta or previous is None:
        store.patch(player_path(code, player_id), {
            f'scores/{round_index}': round_score,
            'total_score': total_score,
        })
    logger.info(
        f"[answer] session={code} player={player_id} round={round_index} question={question_index} "
        f"option={answer_index} correct={correct} points={points} delta={delta} replaced={previous is not None}"
    )
    return SubmissionResult(key=key, answer=answer,
                            previous_points=previous.points if previous else None,
                            delta=delta, round_score=round_score, total_score=total_score)


def score_drift(player: Player) -> int:
    """``total_score - sum(scores)``; zero when the invariant holds."""
    return player.total_score - sum(player.scores.values())


def verify_totals(players: list[Player]) -> list[Player]:
    """Players whose stored total disagrees with their round scores."""
    return [player for player in players if score_drift(player) != 0]


def reconcile_totals(ctx: QuizContext, code: str, repair: bool = False) -> list[str]:
    """Find (and optionally fix) drifted totals. Returns the affected player ids."""
    store = ctx.require_store()
    code = normalize_code(code)
    drifted = verify_totals(players_from_snapshot(store.read(players_path(code))))
    for player in drifted:
        expected = sum(player.scores.values())
        logger.warning(
            f"[score-drift] session={code} player={player.player_id} total={player.total_score} "
            f"sum_of_rounds={expected} repair={repair}"
        )
        if repair:
            store.patch(player_path(code, player.player_id), {'total_score': expected})
    return [player.player_id for player in drifted]
