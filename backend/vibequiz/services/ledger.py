"""Answer Ledger: one live answer per (player, round, question).

Entries live at ``answers/<CODE>/<player_id>_<round>_<question>``. The
structured :class:`~vibequiz.domain.AnswerKey` is used everywhere above the
store; the string form only exists as the store path segment.
"""

from __future__ import annotations

import logging

from vibequiz.context import QuizContext
from vibequiz.domain import OPTION_COUNT, Answer, AnswerKey
from .paths import answer_path, answers_path
from .sessions import normalize_code

logger = logging.getLogger(__name__)


def record_answer(ctx: QuizContext, code: str, key: AnswerKey, answer: Answer) -> None:
    """Write ``answer`` at ``key``, replacing whatever was there."""
    ctx.require_store().write(answer_path(normalize_code(code), key), answer.to_dict())


def get_answer(ctx: QuizContext, code: str, key: AnswerKey) -> Answer | None:
    data = ctx.require_store().read(answer_path(normalize_code(code), key))
    return Answer.from_dict(data) if data else None


def answers_from_snapshot(value) -> dict[AnswerKey, Answer]:
    answers = {}
    for raw_key, data in (value or {}).items():
        key = AnswerKey.try_parse(raw_key)
        if key is None or not isinstance(data, dict):
            logger.warning(f"[ledger-skip] malformed entry key={raw_key!r}")
            continue
        answers[key] = Answer.from_dict(data)
    return answers


def all_answers(ctx: QuizContext, code: str) -> dict[AnswerKey, Answer]:
    return answers_from_snapshot(ctx.require_store().read(answers_path(normalize_code(code))))


def answers_for_question(answers: dict[AnswerKey, Answer], round_index: int,
                         question_index: int) -> dict[str, Answer]:
    """Answers to one question, keyed by player id."""
    return {
        key.player_id: answer
        for key, answer in answers.items()
        if key.round_index == round_index and key.question_index == question_index
    }


def answer_count(answers: dict[AnswerKey, Answer], round_index: int, question_index: int) -> int:
    return len(answers_for_question(answers, round_index, question_index))


def has_answered(answers, player_id: str, round_index: int, question_index: int) -> bool:
    return AnswerKey(player_id, round_index, question_index) in answers


def option_distribution(answers, round_index: int, question_index: int) -> list[int]:
    """How many players picked each option of one question."""
    counts = [0] * OPTION_COUNT
    for answer in answers_for_question(answers, round_index, question_index).values():
        if 0 <= answer.answer_index < OPTION_COUNT:
            counts[answer.answer_index] += 1
    return counts


def player_history(answers, player_id: str) -> list[tuple[AnswerKey, Answer]]:
    """A player's answers in play order."""
    entries = [(key, answer) for key, answer in answers.items() if key.player_id == player_id]
    return sorted(entries, key=lambda entry: (entry[0].round_index, entry[0].question_index))


def count_for_question(ctx: QuizContext, code: str, round_index: int, question_index: int) -> int:
    return answer_count(all_answers(ctx, code), round_index, question_index)
