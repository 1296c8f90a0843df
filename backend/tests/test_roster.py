import pytest

from vibequiz.domain import Player
from vibequiz.errors import GameAlreadyEnded, PlayerNotFound, SessionNotFound, ValidationFailure
from vibequiz.services import roster, sessions


def _player(player_id, total, scores=None):
    return Player(player_id=player_id, team_name=player_id.title(), scores=scores or {}, total_score=total)


def test_join_writes_zeroed_player(ctx, clock, code):
    player = roster.join(ctx, code, 'alice', '  The Quizzards  ')
    assert player.team_name == 'The Quizzards'
    stored = roster.get_player(ctx, code, 'alice')
    assert stored == player
    assert stored.scores == {}
    assert stored.total_score == 0
    assert stored.joined_at == clock()


def test_join_validates_name(ctx, code):
    with pytest.raises(ValidationFailure):
        roster.join(ctx, code, 'alice', '   ')
    with pytest.raises(ValidationFailure):
        roster.join(ctx, code, 'alice', 'x' * 31)
    with pytest.raises(ValidationFailure):
        roster.join(ctx, code, 'alice', 123)
    assert roster.join(ctx, code, 'alice', 'x' * 30).team_name == 'x' * 30


def test_join_validates_player_id(ctx, code):
    with pytest.raises(ValidationFailure):
        roster.join(ctx, code, '', 'Alice')
    with pytest.raises(ValidationFailure):
        roster.join(ctx, code, 'a/b', 'Alice')


def test_join_unknown_session(ctx):
    with pytest.raises(SessionNotFound):
        roster.join(ctx, 'NOPE42', 'alice', 'Alice')


def test_join_mid_game_is_allowed(ctx, playing):
    roster.join(ctx, playing, 'cara', 'Cara')
    assert roster.player_count(ctx, playing) == 3


def test_join_finished_game_is_rejected(ctx, playing):
    ctx.store.patch(f'sessions/{playing}', {'status': 'finished'})
    with pytest.raises(GameAlreadyEnded):
        roster.join(ctx, playing, 'cara', 'Cara')


def test_rejoin_overwrites_record(ctx, code):
    roster.join(ctx, code, 'alice', 'Alice')
    ctx.store.patch(f'players/{code}/alice', {'total_score': 1200, 'scores/0': 1200})
    rejoined = roster.join(ctx, code, 'alice', 'Alice Again')
    assert rejoined.total_score == 0
    assert roster.get_player(ctx, code, 'alice').team_name == 'Alice Again'
    assert roster.player_count(ctx, code) == 1


def test_missing_player(ctx, code):
    assert roster.find_player(ctx, code, 'ghost') is None
    with pytest.raises(PlayerNotFound):
        roster.get_player(ctx, code, 'ghost')


def test_ranking_is_descending_and_stable():
    players = [_player('a', 100), _player('b', 300), _player('c', 100), _player('d', 300)]
    ranked = roster.rank_players(players)
    assert [p.player_id for p in ranked] == ['b', 'd', 'a', 'c']
    assert roster.rank_players(ranked) == ranked


def test_leaderboard_rows():
    players = [_player('a', 2500, {0: 1500, 1: 1000}), _player('b', 2800, {0: 1400, 1: 1400})]
    overall = roster.leaderboard(players)
    assert [(row.rank, row.player_id, row.score) for row in overall] == [(1, 'b', 2800), (2, 'a', 2500)]
    first_round = roster.leaderboard(players, round_index=0)
    assert [(row.player_id, row.score, row.total_score) for row in first_round] == [
        ('b', 1400, 2800),
        ('a', 1500, 2500),
    ]


def test_my_rank():
    players = [_player('a', 10), _player('b', 30), _player('c', 20)]
    assert roster.my_rank(players, 'c') == 2
    assert roster.my_rank(players, 'zzz') is None


def test_list_players_is_ranked(ctx, code):
    roster.join(ctx, code, 'alice', 'Alice')
    roster.join(ctx, code, 'bob', 'Bob')
    ctx.store.patch(f'players/{code}/bob', {'total_score': 50, 'scores/0': 50})
    assert [p.player_id for p in roster.list_players(ctx, code)] == ['bob', 'alice']


def test_sessions_are_isolated(ctx, quiz, code):
    other = sessions.create_session(ctx, quiz.id)
    roster.join(ctx, code, 'alice', 'Alice')
    assert roster.list_players(ctx, other) == []
