"""Domain records as they are stored in, and read back from, the store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from vibequiz.errors import ValidationFailure

# Session.status
LOBBY = 'lobby'
PLAYING = 'playing'
FINISHED = 'finished'
SESSION_STATUSES = (LOBBY, PLAYING, FINISHED)

# Session.question_phase
WAITING = 'waiting'
ANSWERING = 'answering'
REVEALED = 'revealed'
ROUND_END = 'round_end'
QUESTION_PHASES = (WAITING, ANSWERING, REVEALED, ROUND_END)

OPTION_COUNT = 4
DEFAULT_TIME_LIMIT = 30
KEY_SEPARATOR = '_'


def _require_mapping(data, what):
    if not isinstance(data, dict):
        raise ValidationFailure(f'{what} must be a JSON object.')
    return data


def _require_list(value, what):
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationFailure(f'{what} must be a list.')
    return value


@dataclass
class Question:
    question: str
    options: list[str]
    correct_index: int
    time_limit: int | None = DEFAULT_TIME_LIMIT

    def to_dict(self):
        return {
            'question': self.question,
            'options': list(self.options),
            'correct_index': self.correct_index,
            'time_limit': self.time_limit,
        }

    @classmethod
    def from_dict(cls, data):
        data = _require_mapping(data, 'Question')
        return cls(
            question=data.get('question') or '',
            options=list(_require_list(data.get('options'), 'Question options')),
            correct_index=data.get('correct_index'),
            # None lets quiz validation apply the configured default
            time_limit=data.get('time_limit'),
        )


@dataclass
class Round:
    name: str
    questions: list[Question] = field(default_factory=list)

    def to_dict(self):
        return {'name': self.name, 'questions': [q.to_dict() for q in self.questions]}

    @classmethod
    def from_dict(cls, data):
        data = _require_mapping(data, 'Round')
        return cls(
            name=data.get('name') or '',
            questions=[Question.from_dict(q) for q in _require_list(data.get('questions'), 'Round questions')],
        )


@dataclass
class Quiz:
    id: str
    name: str
    rounds: list[Round] = field(default_factory=list)

    def question_at(self, round_index: int, question_index: int) -> Question | None:
        if not 0 <= round_index < len(self.rounds):
            return None
        questions = self.rounds[round_index].questions
        if not 0 <= question_index < len(questions):
            return None
        return questions[question_index]

    def question_count(self, round_index: int) -> int:
        if not 0 <= round_index < len(self.rounds):
            return 0
        return len(self.rounds[round_index].questions)

    def is_last_question(self, round_index: int, question_index: int) -> bool:
        return question_index >= self.question_count(round_index) - 1

    def is_last_round(self, round_index: int) -> bool:
        return round_index >= len(self.rounds) - 1

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'rounds': [r.to_dict() for r in self.rounds]}

    @classmethod
    def from_dict(cls, data):
        data = _require_mapping(data, 'Quiz')
        return cls(
            id=data.get('id') or '',
            name=data.get('name') or '',
            rounds=[Round.from_dict(r) for r in _require_list(data.get('rounds'), 'Quiz rounds')],
        )


@dataclass
class Session:
    quiz_id: str
    status: str = LOBBY
    current_round: int = 0
    current_question: int = 0
    question_phase: str = WAITING
    question_started_at: float | None = None
    created_at: float = 0.0

    @property
    def is_answering(self) -> bool:
        return self.status == PLAYING and self.question_phase == ANSWERING

    def to_dict(self):
        return {
            'quiz_id': self.quiz_id,
            'status': self.status,
            'current_round': self.current_round,
            'current_question': self.current_question,
            'question_phase': self.question_phase,
            'question_started_at': self.question_started_at,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            quiz_id=data.get('quiz_id', ''),
            status=data.get('status', LOBBY),
            current_round=int(data.get('current_round') or 0),
            current_question=int(data.get('current_question') or 0),
            question_phase=data.get('question_phase', WAITING),
            question_started_at=data.get('question_started_at'),
            created_at=data.get('created_at') or 0.0,
        )


@dataclass
class Player:
    player_id: str
    team_name: str
    scores: dict[int, int] = field(default_factory=dict)
    total_score: int = 0
    joined_at: float = 0.0

    def round_score(self, round_index: int) -> int:
        return self.scores.get(round_index, 0)

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'team_name': self.team_name,
            'scores': {str(r): s for r, s in self.scores.items()},
            'total_score': self.total_score,
            'joined_at': self.joined_at,
        }

    @classmethod
    def from_dict(cls, data):
        raw_scores = data.get('scores') or {}
        return cls(
            player_id=data.get('player_id', ''),
            team_name=data.get('team_name', ''),
            scores={int(r): int(s) for r, s in raw_scores.items()},
            total_score=int(data.get('total_score') or 0),
            joined_at=data.get('joined_at') or 0.0,
        )


@dataclass
class Answer:
    player_id: str
    answer_index: int
    answered_at: float
    correct: bool
    points: int

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'answer_index': self.answer_index,
            'answered_at': self.answered_at,
            'correct': self.correct,
            'points': self.points,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            player_id=data.get('player_id', ''),
            answer_index=int(data.get('answer_index', -1)),
            answered_at=data.get('answered_at') or 0.0,
            correct=bool(data.get('correct')),
            points=int(data.get('points') or 0),
        )


class AnswerKey(NamedTuple):
    """Composite ledger key: one live answer per player per question."""

    player_id: str
    round_index: int
    question_index: int

    def encode(self) -> str:
        return KEY_SEPARATOR.join((self.player_id, str(self.round_index), str(self.question_index)))

    @classmethod
    def parse(cls, raw: str) -> 'AnswerKey':
        # The player id may itself contain separators; indexes are the last two segments
        parts = raw.rsplit(KEY_SEPARATOR, 2)
        if len(parts) != 3 or not parts[0]:
            raise ValueError(f'Malformed answer key: {raw!r}')
        player_id, round_index, question_index = parts
        return cls(player_id, int(round_index), int(question_index))

    @classmethod
    def try_parse(cls, raw: str) -> 'AnswerKey | None':
        try:
            return cls.parse(raw)
        except ValueError:
            return None
