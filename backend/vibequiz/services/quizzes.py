"""Quiz content: validation, persistence and the bundled sample quiz.

Quizzes are written once and only read afterwards.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from vibequiz.context import QuizContext
from vibequiz.domain import OPTION_COUNT, Question, Quiz, Round
from vibequiz.errors import QuizNotFound, ValidationFailure
from .paths import quiz_path

logger = logging.getLogger(__name__)


def new_quiz_id() -> str:
    return f"quiz-{uuid4().hex[:12]}"


def _text(value, what) -> str:
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationFailure(f'{what} must be text.')
    return value.strip()


def validate_quiz(quiz: Quiz, default_time_limit: int = 30) -> Quiz:
    """Return a normalized copy of ``quiz`` or raise :class:`ValidationFailure`."""
    quiz_id = _text(quiz.id, 'Quiz id') or new_quiz_id()
    if '/' in quiz_id:
        raise ValidationFailure('Quiz id must not contain "/".')
    name = _text(quiz.name, 'Quiz name')
    if not name:
        raise ValidationFailure('Quiz name must not be empty.')
    if not quiz.rounds:
        raise ValidationFailure('Quiz must contain at least one round.')

    rounds = []
    for round_number, rnd in enumerate(quiz.rounds, start=1):
        if not rnd.questions:
            raise ValidationFailure(f'Round {round_number} has no questions.')
        questions = [
            _validate_question(q, default_time_limit, round_number, question_number)
            for question_number, q in enumerate(rnd.questions, start=1)
        ]
        round_name = _text(rnd.name, f'Round {round_number} name') or f'Round {round_number}'
        rounds.append(Round(name=round_name, questions=questions))
    return Quiz(id=quiz_id, name=name, rounds=rounds)


def _validate_question(question: Question, default_time_limit, round_number, question_number) -> Question:
    where = f'Round {round_number}, question {question_number}'
    text = _text(question.question, f'{where}: question text')
    if not text:
        raise ValidationFailure(f'{where}: question text must not be empty.')
    if len(question.options) != OPTION_COUNT:
        raise ValidationFailure(f'{where}: exactly {OPTION_COUNT} options are required.')
    options = [str(option).strip() for option in question.options]
    if any(not option for option in options):
        raise ValidationFailure(f'{where}: option text cannot be empty.')
    if not isinstance(question.correct_index, int) or isinstance(question.correct_index, bool) \
            or not 0 <= question.correct_index < OPTION_COUNT:
        raise ValidationFailure(f'{where}: correct option index must be between 0 and 3.')
    time_limit = question.time_limit if question.time_limit is not None else default_time_limit
    if not isinstance(time_limit, int) or isinstance(time_limit, bool) or time_limit <= 0:
        raise ValidationFailure(f'{where}: time limit must be a positive integer.')
    return Question(question=text, options=options, correct_index=question.correct_index, time_limit=time_limit)


def save_quiz(ctx: QuizContext, quiz: Quiz) -> Quiz:
    store = ctx.require_store()
    prepared = validate_quiz(quiz, ctx.default_time_limit)
    store.write(quiz_path(prepared.id), prepared.to_dict())
    logger.info(f"[quiz-save] quiz={prepared.id} rounds={len(prepared.rounds)}")
    return prepared


def get_quiz(ctx: QuizContext, quiz_id: str) -> Quiz:
    if not quiz_id:
        raise QuizNotFound()
    data = ctx.require_store().read(quiz_path(quiz_id))
    if not data:
        raise QuizNotFound()
    return Quiz.from_dict(data)


def _q(text, options, correct_index, time_limit=30):
    return Question(question=text, options=options, correct_index=correct_index, time_limit=time_limit)


SAMPLE_QUIZ = Quiz(
    id='sample-quiz-1',
    name='General Knowledge Showdown',
    rounds=[
        Round(
            name='Round 1: Science & Nature',
            questions=[
                _q('What planet is known as the Red Planet?', ['Venus', 'Mars', 'Jupiter', 'Saturn'], 1),
                _q('What is the chemical symbol for gold?', ['Go', 'Gd', 'Au', 'Ag'], 2),
                _q('How many bones are in the adult human body?', ['186', '206', '226', '246'], 1),
                _q('What is the largest mammal in the world?',
                   ['African Elephant', 'Blue Whale', 'Giraffe', 'Polar Bear'], 1),
            ],
        ),
        Round(
            name='Round 2: Pop Culture & Entertainment',
            questions=[
                _q('Which movie features the quote "I\'ll be back"?',
                   ['Robocop', 'Die Hard', 'The Terminator', 'Predator'], 2),
                _q('What is the name of the fictional country in Black Panther?',
                   ['Wakanda', 'Zamunda', 'Genovia', 'Latveria'], 0),
                _q('Which band performed "Bohemian Rhapsody"?',
                   ['The Beatles', 'Led Zeppelin', 'Queen', 'Pink Floyd'], 2),
                _q("In Friends, what is the name of Ross's second wife?", ['Rachel', 'Emily', 'Carol', 'Mona'], 1),
            ],
        ),
    ],
)
