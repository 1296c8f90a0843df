import pytest

from vibequiz.context import QuizContext
from vibequiz.errors import SubmissionClosed, Unconfigured
from vibequiz.services import roster, sessions
from vibequiz.sync import SessionMirror


def test_mirror_loads_session_state(ctx, playing):
    with SessionMirror(ctx, playing) as mirror:
        assert mirror.is_open
        assert mirror.error is None
        assert mirror.session.status == 'playing'
        assert mirror.quiz.id == 'quiz-test'
        assert mirror.player_count == 2
        assert mirror.current_question.question == 'Round 0 question 0?'
    assert not mirror.is_open
    assert ctx.store.subscriber_count() == 0


def test_mirror_follows_changes(ctx, clock, playing):
    renders = []
    mirror = SessionMirror(ctx, playing, on_change=lambda m: renders.append(m.session.question_phase))
    mirror.open()
    assert renders == ['waiting']

    sessions.start_question(ctx, playing)
    clock.advance(4)
    assert mirror.session.question_phase == 'answering'
    assert mirror.seconds_left() == 26

    mirror.submit('alice', 1)
    assert mirror.has_answered('alice')
    assert not mirror.has_answered('bob')
    assert mirror.my_answer('alice').points == 1433
    assert mirror.answered_ratio() == (1, 2)
    assert mirror.option_distribution() == [0, 1, 0, 0]
    assert mirror.my_rank('alice') == 1
    assert mirror.leaderboard()[0].player_id == 'alice'
    assert mirror.player('alice').total_score == 1433

    mirror.close()
    count = len(renders)
    sessions.reveal_answer(ctx, playing)
    assert len(renders) == count
    assert mirror.session.question_phase == 'answering'


def test_close_is_idempotent(ctx, code):
    mirror = SessionMirror(ctx, code).open()
    mirror.close()
    mirror.close()
    assert ctx.store.subscriber_count() == 0


def test_mirror_reports_missing_session(ctx):
    with SessionMirror(ctx, 'NOPE42') as mirror:
        assert mirror.session is None
        assert mirror.error == 'Session not found'
        assert mirror.answer_count() == 0
        assert mirror.seconds_left() == 0


def test_mirror_sees_reset(ctx, playing):
    with SessionMirror(ctx, playing) as mirror:
        sessions.reset(ctx, playing)
        assert mirror.session.status == 'lobby'
        assert mirror.players == []
        assert mirror.answers == {}
        roster.join(ctx, playing, 'cara', 'Cara')
        assert [p.player_id for p in mirror.players] == ['cara']


def test_mirror_submit_when_closed_for_answers(ctx, playing):
    with SessionMirror(ctx, playing) as mirror:
        with pytest.raises(SubmissionClosed):
            mirror.submit('alice', 1)


def test_mirror_requires_a_store():
    with pytest.raises(Unconfigured):
        SessionMirror(QuizContext(), 'ABC123').open()
