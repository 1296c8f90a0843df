"""Session Record and the host-driven state machine.

Every transition reads the session, checks that the requested move is legal
from the current (status, phase), and applies it as a single patch of the
session path so subscribers see one atomic change. Illegal moves raise
:class:`InvalidTransition` before anything is written.

    lobby -> waiting -> answering -> revealed -> waiting (next question)
                                             -> round_end -> waiting (next round)
                                                          -> finished
"""

from __future__ import annotations

import dataclasses
import logging
import random

from vibequiz.context import QuizContext
from vibequiz.domain import (
    ANSWERING, FINISHED, LOBBY, PLAYING, REVEALED, ROUND_END, WAITING,
    Quiz, Session,
)
from vibequiz.errors import InvalidTransition, SessionNotFound, ValidationFailure
from .paths import answers_path, players_path, session_path
from .quizzes import get_quiz

logger = logging.getLogger(__name__)

SESSION_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'  # no 0/O, 1/I
SESSION_CODE_LENGTH = 6

START_QUIZ = 'start'
START_QUESTION = 'start-question'
REVEAL = 'reveal'
NEXT_QUESTION = 'next-question'
ROUND_END_ACTION = 'round-end'
NEXT_ROUND = 'next-round'
FINISH = 'finish'
RESET = 'reset'


def generate_session_code(rng=random) -> str:
    return ''.join(rng.choice(SESSION_CODE_ALPHABET) for _ in range(SESSION_CODE_LENGTH))


def normalize_code(code) -> str:
    if code is not None and not isinstance(code, str):
        raise ValidationFailure('Game codes must be text.')
    cleaned = (code or '').strip().upper()
    if not cleaned:
        raise ValidationFailure('Please enter a game code.')
    if '/' in cleaned:
        raise ValidationFailure('Game codes cannot contain "/".')
    return cleaned


def create_session(ctx: QuizContext, quiz_id: str) -> str:
    """Create a lobby for ``quiz_id`` and return its join code."""
    store = ctx.require_store()
    get_quiz(ctx, quiz_id)
    while True:
        code = generate_session_code()
        if store.read(session_path(code)) is None:
            break
    session = Session(quiz_id=quiz_id, created_at=ctx.now())
    store.write(session_path(code), session.to_dict())
    logger.info(f"[session-create] session={code} quiz={quiz_id}")
    return code


def find_session(ctx: QuizContext, code: str) -> Session | None:
    data = ctx.require_store().read(session_path(normalize_code(code)))
    return Session.from_dict(data) if data else None


def get_session(ctx: QuizContext, code: str) -> Session:
    session = find_session(ctx, code)
    if session is None:
        raise SessionNotFound()
    return session


def _describe(session: Session) -> str:
    if session.status == PLAYING:
        return f'{session.status}/{session.question_phase}'
    return session.status


def _require(session: Session, action: str, status: str, phase: str | None = None) -> None:
    if session.status != status or (phase is not None and session.question_phase != phase):
        raise InvalidTransition(f'Cannot {action} while the game is {_describe(session)}.')


def _apply(ctx: QuizContext, code: str, session: Session, action: str, **fields) -> Session:
    ctx.require_store().patch(session_path(code), fields)
    updated = dataclasses.replace(session, **fields)
    logger.info(
        f"[transition] session={code} action={action} {_describe(session)} -> {_describe(updated)} "
        f"round={updated.current_round} question={updated.current_question}"
    )
    return updated


def _load(ctx: QuizContext, code: str) -> tuple[str, Session, Quiz]:
    code = normalize_code(code)
    session = get_session(ctx, code)
    return code, session, get_quiz(ctx, session.quiz_id)


def start_quiz(ctx: QuizContext, code: str) -> Session:
    from .roster import player_count

    code = normalize_code(code)
    session = get_session(ctx, code)
    _require(session, 'start the quiz', LOBBY)
    required = max(1, ctx.min_players)
    if player_count(ctx, code) < required:
        raise InvalidTransition(f'At least {required} player(s) must join before starting.')
    return _apply(ctx, code, session, START_QUIZ,
                  status=PLAYING, question_phase=WAITING, question_started_at=None)


def start_question(ctx: QuizContext, code: str) -> Session:
    code, session, quiz = _load(ctx, code)
    _require(session, 'start the timer', PLAYING, WAITING)
    if quiz.question_at(session.current_round, session.current_question) is None:
        raise InvalidTransition('There is no question at the current position.')
    return _apply(ctx, code, session, START_QUESTION,
                  question_phase=ANSWERING, question_started_at=ctx.now())


def reveal_answer(ctx: QuizContext, code: str) -> Session:
    code = normalize_code(code)
    session = get_session(ctx, code)
    _require(session, 'reveal the answer', PLAYING, ANSWERING)
    return _apply(ctx, code, session, REVEAL, question_phase=REVEALED, question_started_at=None)


def next_question(ctx: QuizContext, code: str) -> Session:
    code, session, quiz = _load(ctx, code)
    _require(session, 'move to the next question', PLAYING, REVEALED)
    if quiz.is_last_question(session.current_round, session.current_question):
        raise InvalidTransition('This was the last question of the round.')
    return _apply(ctx, code, session, NEXT_QUESTION,
                  current_question=session.current_question + 1,
                  question_phase=WAITING, question_started_at=None)


def show_round_end(ctx: QuizContext, code: str) -> Session:
    code, session, quiz = _load(ctx, code)
    _require(session, 'end the round', PLAYING, REVEALED)
    if not quiz.is_last_question(session.current_round, session.current_question):
        raise InvalidTransition('The round still has questions left.')
    return _apply(ctx, code, session, ROUND_END_ACTION, question_phase=ROUND_END, question_started_at=None)


def advance(ctx: QuizContext, code: str) -> Session:
    """From ``revealed``: next question, or the round leaderboard after the last one."""
    code, session, quiz = _load(ctx, code)
    _require(session, 'continue', PLAYING, REVEALED)
    if quiz.is_last_question(session.current_round, session.current_question):
        return show_round_end(ctx, code)
    return next_question(ctx, code)


def next_round(ctx: QuizContext, code: str) -> Session:
    code, session, quiz = _load(ctx, code)
    _require(session, 'start the next round', PLAYING, ROUND_END)
    if quiz.is_last_round(session.current_round):
        raise InvalidTransition('This was the last round.')
    return _apply(ctx, code, session, NEXT_ROUND,
                  current_round=session.current_round + 1, current_question=0,
                  question_phase=WAITING, question_started_at=None)


def finish_quiz(ctx: QuizContext, code: str) -> Session:
    code, session, quiz = _load(ctx, code)
    _require(session, 'finish the quiz', PLAYING, ROUND_END)
    if not quiz.is_last_round(session.current_round):
        raise InvalidTransition('There are rounds left to play.')
    return _apply(ctx, code, session, FINISH,
                  status=FINISHED, question_phase=WAITING, question_started_at=None)


def reset(ctx: QuizContext, code: str) -> Session:
    """Clear roster and ledger and put the session back in its lobby.

    The join code and quiz survive, so players can rejoin with the same code.
    """
    store = ctx.require_store()
    code = normalize_code(code)
    session = get_session(ctx, code)
    store.delete(players_path(code))
    store.delete(answers_path(code))
    fields = dict(status=LOBBY, current_round=0, current_question=0,
                  question_phase=WAITING, question_started_at=None)
    store.patch(session_path(code), fields)
    logger.info(f"[reset] session={code} from={_describe(session)}")
    return dataclasses.replace(session, **fields)


def allowed_actions(session: Session, quiz: Quiz) -> list[str]:
    """Host actions that are legal from ``session``'s current state."""
    actions = [RESET]
    if session.status == LOBBY:
        actions.append(START_QUIZ)
    elif session.status == PLAYING:
        phase = session.question_phase
        if phase == WAITING:
            actions.append(START_QUESTION)
        elif phase == ANSWERING:
            actions.append(REVEAL)
        elif phase == REVEALED:
            if quiz.is_last_question(session.current_round, session.current_question):
                actions.append(ROUND_END_ACTION)
            else:
                actions.append(NEXT_QUESTION)
        elif phase == ROUND_END:
            actions.append(FINISH if quiz.is_last_round(session.current_round) else NEXT_ROUND)
    return actions
