import os
import sys
import pytest

# Ensure the backend root (containing the `vibequiz` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from vibequiz import create_app, db, socketio
from vibequiz.context import QuizContext
from vibequiz.domain import Question, Quiz, Round
from vibequiz.services import roster, sessions
from vibequiz.services.quizzes import save_quiz
from vibequiz.store.memory import MemoryStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    STORE_BACKEND = 'sql'
    MIN_PLAYERS = 1
    DEFAULT_TIME_LIMIT_SEC = 30
    MAX_TEAM_NAME_LENGTH = 30
    AUTO_REVEAL = False
    AUTO_REVEAL_GRACE_SEC = 2
    CORS_ORIGINS = ['http://localhost:5173']


class FakeClock:
    """Deterministic stand-in for time.time()."""

    def __init__(self, start=1_700_000_000.0):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, seconds):
        self.current += seconds


def make_quiz(quiz_id='quiz-test', layout=((30, 30), (30,)), correct_index=1):
    """Quiz with one round per entry of ``layout`` holding questions with those time limits."""
    rounds = []
    for r, limits in enumerate(layout):
        questions = [
            Question(
                question=f'Round {r} question {q}?',
                options=['A', 'B', 'C', 'D'],
                correct_index=correct_index,
                time_limit=limit,
            )
            for q, limit in enumerate(limits)
        ]
        rounds.append(Round(name=f'Round {r + 1}', questions=questions))
    return Quiz(id=quiz_id, name='Test Quiz', rounds=rounds)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def ctx(store, clock):
    return QuizContext(store=store, clock=clock)


@pytest.fixture()
def quiz(ctx):
    return save_quiz(ctx, make_quiz())


@pytest.fixture()
def code(ctx, quiz):
    return sessions.create_session(ctx, quiz.id)


@pytest.fixture()
def playing(ctx, code):
    """A session with two players, started and waiting on round 0 question 0."""
    roster.join(ctx, code, 'alice', 'Alice')
    roster.join(ctx, code, 'bob', 'Bob')
    sessions.start_quiz(ctx, code)
    return code
