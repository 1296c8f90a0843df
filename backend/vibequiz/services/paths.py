"""Store layout of the quiz state."""

from vibequiz.store.base import join_path

QUIZZES = 'quizzes'
SESSIONS = 'sessions'
PLAYERS = 'players'
ANSWERS = 'answers'
COLLECTIONS = (QUIZZES, SESSIONS, PLAYERS, ANSWERS)


def quiz_path(quiz_id):
    return join_path(QUIZZES, quiz_id)


def session_path(code):
    return join_path(SESSIONS, code)


def players_path(code):
    return join_path(PLAYERS, code)


def player_path(code, player_id):
    return join_path(PLAYERS, code, player_id)


def answers_path(code):
    return join_path(ANSWERS, code)


def answer_path(code, key):
    return join_path(ANSWERS, code, key.encode())


def session_paths(code):
    """Every path a client mirrors for one session."""
    return [session_path(code), players_path(code), answers_path(code)]
