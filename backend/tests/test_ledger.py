import logging

import pytest

from vibequiz.domain import Answer, AnswerKey
from vibequiz.services import ledger, sessions
from vibequiz.services.scoring import submit_answer


def _answer(player_id, index, points=0):
    return Answer(player_id=player_id, answer_index=index, answered_at=0.0, correct=points > 0, points=points)


def test_answer_key_encoding():
    assert AnswerKey('alice', 0, 3).encode() == 'alice_0_3'


@pytest.mark.parametrize('raw, expected', [
    ('alice_0_3', AnswerKey('alice', 0, 3)),
    ('team_blue_1_2', AnswerKey('team_blue', 1, 2)),
    ('a_b_c_10_11', AnswerKey('a_b_c', 10, 11)),
])
def test_answer_key_parsing_keeps_underscores_in_player_id(raw, expected):
    assert AnswerKey.parse(raw) == expected


@pytest.mark.parametrize('raw', ['alice', 'alice_1', '_1_2', 'alice_x_2'])
def test_malformed_answer_keys(raw):
    with pytest.raises(ValueError):
        AnswerKey.parse(raw)
    assert AnswerKey.try_parse(raw) is None


def test_snapshot_skips_malformed_entries(caplog):
    snapshot = {
        'alice_0_0': {'player_id': 'alice', 'answer_index': 1, 'points': 1500, 'correct': True},
        'garbage': {'answer_index': 2},
    }
    with caplog.at_level(logging.WARNING, logger='vibequiz.services.ledger'):
        answers = ledger.answers_from_snapshot(snapshot)
    assert list(answers) == [AnswerKey('alice', 0, 0)]
    assert any('[ledger-skip]' in record.getMessage() for record in caplog.records)


def test_one_live_answer_per_player_and_question(ctx, clock, playing):
    sessions.start_question(ctx, playing)
    submit_answer(ctx, playing, 'alice', 0)
    submit_answer(ctx, playing, 'alice', 1)
    submit_answer(ctx, playing, 'bob', 1)
    assert ledger.count_for_question(ctx, playing, 0, 0) == 2
    answers = ledger.all_answers(ctx, playing)
    assert answers[AnswerKey('alice', 0, 0)].answer_index == 1


def test_question_views():
    answers = {
        AnswerKey('alice', 0, 0): _answer('alice', 1, 1400),
        AnswerKey('bob', 0, 0): _answer('bob', 1, 1300),
        AnswerKey('cara', 0, 0): _answer('cara', 3),
        AnswerKey('alice', 0, 1): _answer('alice', 2),
    }
    assert ledger.answer_count(answers, 0, 0) == 3
    assert ledger.answer_count(answers, 0, 1) == 1
    assert ledger.answer_count(answers, 1, 0) == 0
    assert ledger.option_distribution(answers, 0, 0) == [0, 2, 0, 1]
    assert set(ledger.answers_for_question(answers, 0, 0)) == {'alice', 'bob', 'cara'}
    assert ledger.has_answered(answers, 'alice', 0, 1)
    assert not ledger.has_answered(answers, 'bob', 0, 1)


def test_player_history_in_play_order():
    answers = {
        AnswerKey('alice', 1, 0): _answer('alice', 0),
        AnswerKey('alice', 0, 1): _answer('alice', 2),
        AnswerKey('bob', 0, 0): _answer('bob', 1),
        AnswerKey('alice', 0, 0): _answer('alice', 1),
    }
    history = ledger.player_history(answers, 'alice')
    assert [key for key, _ in history] == [
        AnswerKey('alice', 0, 0),
        AnswerKey('alice', 0, 1),
        AnswerKey('alice', 1, 0),
    ]
