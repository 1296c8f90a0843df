import pytest

from vibequiz.context import QuizContext
from vibequiz.domain import Quiz
from vibequiz.errors import ValidationFailure
from vibequiz.services.quizzes import SAMPLE_QUIZ, get_quiz, save_quiz


def _question(**overrides):
    question = {'question': 'Capital of France?', 'options': ['Rome', 'Paris', 'Oslo', 'Bern'],
                'correct_index': 1}
    question.update(overrides)
    return question


def _body(*questions):
    return {'name': 'Capitals', 'rounds': [{'name': 'Europe', 'questions': list(questions)}]}


def test_missing_time_limit_uses_configured_default(store, clock):
    ctx = QuizContext(store=store, clock=clock, default_time_limit=45)
    saved = save_quiz(ctx, Quiz.from_dict(_body(_question(), _question(time_limit=10))))
    stored = get_quiz(ctx, saved.id)
    assert [q.time_limit for q in stored.rounds[0].questions] == [45, 10]


def test_sample_quiz_round_trips(ctx):
    saved = save_quiz(ctx, SAMPLE_QUIZ)
    assert get_quiz(ctx, saved.id) == saved
    assert [len(r.questions) for r in saved.rounds] == [4, 4]


@pytest.mark.parametrize('body', [
    {'name': 'X', 'rounds': ['not-a-round']},
    {'name': 'X', 'rounds': 'not-a-list'},
    {'name': 'X', 'rounds': [{'name': 'R', 'questions': [5]}]},
    {'name': 'X', 'rounds': [{'name': 'R', 'questions': {'q': 1}}]},
    _body(_question(options='ABCD')),
])
def test_malformed_quiz_shapes_are_rejected(body):
    with pytest.raises(ValidationFailure):
        Quiz.from_dict(body)


@pytest.mark.parametrize('body', [
    {'name': 5, 'rounds': [{'name': 'R', 'questions': [_question()]}]},
    _body(_question(question=['Capital?'])),
    _body(_question(time_limit=0)),
    _body(_question(time_limit='30')),
    _body(_question(correct_index=4)),
    {'name': 'X', 'rounds': []},
])
def test_invalid_quiz_content_is_rejected(ctx, body):
    with pytest.raises(ValidationFailure):
        save_quiz(ctx, Quiz.from_dict(body))
    assert ctx.store.document_keys() == []
