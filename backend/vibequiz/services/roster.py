"""Roster: the players of a session and their scores."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from vibequiz.context import QuizContext
from vibequiz.domain import FINISHED, Player
from vibequiz.errors import GameAlreadyEnded, PlayerNotFound, ValidationFailure
from .paths import player_path, players_path
from .sessions import get_session, normalize_code

logger = logging.getLogger(__name__)


@dataclass
class LeaderboardRow:
    rank: int
    player_id: str
    team_name: str
    score: int
    total_score: int

    def to_dict(self):
        return {
            'rank': self.rank,
            'player_id': self.player_id,
            'team_name': self.team_name,
            'score': self.score,
            'total_score': self.total_score,
        }


def validate_team_name(name, max_length: int = 30) -> str:
    if name is not None and not isinstance(name, str):
        raise ValidationFailure('Team names must be text.')
    cleaned = (name or '').strip()
    if not cleaned:
        raise ValidationFailure('Please enter a team name.')
    if len(cleaned) > max_length:
        raise ValidationFailure(f'Team names can be at most {max_length} characters.')
    return cleaned


def validate_player_id(player_id) -> str:
    if not isinstance(player_id, str) or not player_id.strip():
        raise ValidationFailure('A player id is required.')
    if '/' in player_id:
        raise ValidationFailure('Player ids cannot contain "/".')
    return player_id.strip()


def join(ctx: QuizContext, code: str, player_id: str, name: str) -> Player:
    """Add ``player_id`` to the roster with zero scores.

    Joining again with the same id overwrites the record back to zero.
    """
    store = ctx.require_store()
    code = normalize_code(code)
    name = validate_team_name(name, ctx.max_team_name_length)
    player_id = validate_player_id(player_id)
    session = get_session(ctx, code)
    if session.status == FINISHED:
        raise GameAlreadyEnded()
    player = Player(player_id=player_id, team_name=name, joined_at=ctx.now())
    store.write(player_path(code, player_id), player.to_dict())
    logger.info(f"[join] session={code} player={player_id} team={name!r} status={session.status}")
    return player


def players_from_snapshot(value) -> list[Player]:
    """Players of a roster snapshot, in insertion order."""
    if not value:
        return []
    return [Player.from_dict(dict(data, player_id=data.get('player_id') or player_id))
            for player_id, data in value.items() if isinstance(data, dict)]


def rank_players(players: list[Player]) -> list[Player]:
    """Highest total first; equal totals keep their relative order."""
    return sorted(players, key=lambda p: -p.total_score)


def list_players(ctx: QuizContext, code: str) -> list[Player]:
    value = ctx.require_store().read(players_path(normalize_code(code)))
    return rank_players(players_from_snapshot(value))


def player_count(ctx: QuizContext, code: str) -> int:
    value = ctx.require_store().read(players_path(normalize_code(code)))
    return len(value or {})


def find_player(ctx: QuizContext, code: str, player_id: str) -> Player | None:
    data = ctx.require_store().read(player_path(normalize_code(code), validate_player_id(player_id)))
    return Player.from_dict(data) if data else None


def get_player(ctx: QuizContext, code: str, player_id: str) -> Player:
    player = find_player(ctx, code, player_id)
    if player is None:
        raise PlayerNotFound()
    return player


def leaderboard(players: list[Player], round_index: int | None = None) -> list[LeaderboardRow]:
    """Ranked rows; with ``round_index`` each row shows that round's score."""
    rows = []
    for position, player in enumerate(rank_players(players), start=1):
        score = player.total_score if round_index is None else player.round_score(round_index)
        rows.append(LeaderboardRow(
            rank=position,
            player_id=player.player_id,
            team_name=player.team_name,
            score=score,
            total_score=player.total_score,
        ))
    return rows


def my_rank(players: list[Player], player_id: str) -> int | None:
    for position, player in enumerate(rank_players(players), start=1):
        if player.player_id == player_id:
            return position
    return None
