"""Local mirror of one session's shared state.

A host or player client opens a :class:`SessionMirror` when a view needs the
game state and closes it when the view goes away. While open it holds three
store subscriptions (session, roster, answer ledger), rebuilds its local
copies from every snapshot, and calls ``on_change`` after each one.

    with SessionMirror(ctx, code, on_change=render) as mirror:
        ...

Closing is idempotent and also happens when opening fails halfway.
"""

from __future__ import annotations

import logging
from typing import Callable

from vibequiz.context import QuizContext
from vibequiz.domain import FINISHED, Answer, AnswerKey, Player, Question, Quiz, Session
from vibequiz.errors import QuizError
from vibequiz.services import ledger, roster, scoring
from vibequiz.services.paths import answers_path, players_path, session_path
from vibequiz.services.quizzes import get_quiz
from vibequiz.services.sessions import normalize_code

logger = logging.getLogger(__name__)


class SessionMirror:

    def __init__(self, ctx: QuizContext, code: str,
                 on_change: Callable[['SessionMirror'], None] | None = None) -> None:
        self.ctx = ctx
        self.code = normalize_code(code)
        self.on_change = on_change
        self.session: Session | None = None
        self.quiz: Quiz | None = None
        self.players: list[Player] = []
        self.answers: dict[AnswerKey, Answer] = {}
        self.error: str | None = None
        self.loading = True
        self._subscriptions = []

    # -- lifecycle ---------------------------------------------------------

    def open(self) -> 'SessionMirror':
        store = self.ctx.require_store()
        try:
            self._subscriptions.append(store.subscribe(session_path(self.code), self._on_session))
            self._subscriptions.append(store.subscribe(players_path(self.code), self._on_players))
            self._subscriptions.append(store.subscribe(answers_path(self.code), self._on_answers))
        except Exception:
            self.close()
            raise
        self.loading = False
        self._changed()
        return self

    def close(self) -> None:
        while self._subscriptions:
            self._subscriptions.pop().unsubscribe()

    @property
    def is_open(self) -> bool:
        return bool(self._subscriptions)

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # -- snapshot handlers -------------------------------------------------

    def _on_session(self, value) -> None:
        if not value:
            self.session = None
            self.error = 'Session not found'
        else:
            self.session = Session.from_dict(value)
            self.error = None
            if self.quiz is None or self.quiz.id != self.session.quiz_id:
                self._load_quiz(self.session.quiz_id)
        self._changed()

    def _load_quiz(self, quiz_id: str) -> None:
        try:
            self.quiz = get_quiz(self.ctx, quiz_id)
        except QuizError as exc:
            self.quiz = None
            self.error = exc.message

    def _on_players(self, value) -> None:
        self.players = roster.players_from_snapshot(value)
        self._changed()

    def _on_answers(self, value) -> None:
        self.answers = ledger.answers_from_snapshot(value)
        self._changed()

    def _changed(self) -> None:
        if self.loading or self.on_change is None:
            return
        self.on_change(self)

    # -- views -------------------------------------------------------------

    @property
    def current_question(self) -> Question | None:
        if self.session is None or self.quiz is None:
            return None
        return self.quiz.question_at(self.session.current_round, self.session.current_question)

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_finished(self) -> bool:
        return self.session is not None and self.session.status == FINISHED

    def player(self, player_id: str) -> Player | None:
        return next((p for p in self.players if p.player_id == player_id), None)

    def leaderboard(self, round_index: int | None = None):
        return roster.leaderboard(self.players, round_index)

    def my_rank(self, player_id: str) -> int | None:
        return roster.my_rank(self.players, player_id)

    def answer_count(self) -> int:
        if self.session is None:
            return 0
        return ledger.answer_count(self.answers, self.session.current_round, self.session.current_question)

    def answered_ratio(self) -> tuple[int, int]:
        """("N of M answered") for the current question."""
        return self.answer_count(), self.player_count

    def option_distribution(self) -> list[int]:
        if self.session is None:
            return [0] * 4
        return ledger.option_distribution(self.answers, self.session.current_round,
                                          self.session.current_question)

    def has_answered(self, player_id: str) -> bool:
        if self.session is None:
            return False
        return ledger.has_answered(self.answers, player_id, self.session.current_round,
                                   self.session.current_question)

    def my_answer(self, player_id: str) -> Answer | None:
        if self.session is None:
            return None
        key = AnswerKey(player_id, self.session.current_round, self.session.current_question)
        return self.answers.get(key)

    def seconds_left(self) -> int:
        question = self.current_question
        if self.session is None or question is None:
            return 0
        return scoring.seconds_left(self.session, question, self.ctx.now())

    # -- actions -----------------------------------------------------------

    def submit(self, player_id: str, answer_index: int) -> scoring.SubmissionResult:
        """Submit against this mirror's view of the session."""
        return scoring.submit_answer(self.ctx, self.code, player_id, answer_index,
                                     session=self.session, quiz=self.quiz)
