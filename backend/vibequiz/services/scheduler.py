import time
from typing import Set, Tuple

from vibequiz import socketio
from vibequiz.errors import InvalidTransition
from .sessions import find_session, reveal_answer


_scheduled_reveal_keys: Set[Tuple[str, int, int, float]] = set()


def schedule_auto_reveal(app, ctx, code: str, session, quiz) -> None:
    """Reveal the current question once its time limit plus grace has passed.

    - No-ops unless AUTO_REVEAL is set, and in TESTING mode unless
      ENABLE_SCHEDULER_IN_TESTS is also set
    - Ensures a single timer per (code, round, question, started_at)
    - Aborts if the host moved on before the timer fired
    """
    if not app.config.get('AUTO_REVEAL'):
        return
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return
    question = quiz.question_at(session.current_round, session.current_question)
    if question is None or session.question_started_at is None:
        return

    key = (code, session.current_round, session.current_question, session.question_started_at)
    if key in _scheduled_reveal_keys:
        app.logger.info(f"[timer-skip] session={code} round={key[1]} question={key[2]} already scheduled")
        return
    _scheduled_reveal_keys.add(key)

    delay = question.time_limit + int(app.config.get('AUTO_REVEAL_GRACE_SEC', 2))
    app.logger.info(f"[timer-set] session={code} round={key[1]} question={key[2]} delay={delay}s")

    def _worker(expected_key, wait):
        time.sleep(wait)
        with app.app_context():
            _scheduled_reveal_keys.discard(expected_key)
            current = find_session(ctx, code)
            position = None
            if current is not None:
                position = (code, current.current_round, current.current_question, current.question_started_at)
            if current is None or not current.is_answering or position != expected_key:
                app.logger.info(f"[timer-abort] session={code} host already moved on")
                return
            try:
                reveal_answer(ctx, code)
            except InvalidTransition:
                app.logger.info(f"[timer-abort] session={code} revealed concurrently")
                return
            app.logger.info(f"[timer-fire] session={code} round={expected_key[1]} question={expected_key[2]}")

    if app.config.get('TESTING'):
        _worker(key, delay)
    else:
        socketio.start_background_task(_worker, key, delay)
