"""Explicit handle on the shared backend, passed to every service call."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from vibequiz.errors import Unconfigured
from vibequiz.store.base import Store


@dataclass
class QuizContext:
    """Store handle plus the clock and limits the services work with.

    A context built without a store is legal; every operation that needs
    the store fails fast with :class:`Unconfigured` instead of doing nothing.
    """

    store: Store | None = None
    clock: Callable[[], float] = field(default=time.time)
    min_players: int = 1
    default_time_limit: int = 30
    max_team_name_length: int = 30

    @property
    def configured(self) -> bool:
        return self.store is not None

    def require_store(self) -> Store:
        if self.store is None:
            raise Unconfigured()
        return self.store

    def now(self) -> float:
        return self.clock()

    @classmethod
    def from_config(cls, config, store: Store | None) -> 'QuizContext':
        return cls(
            store=store,
            min_players=int(config.get('MIN_PLAYERS', 1)),
            default_time_limit=int(config.get('DEFAULT_TIME_LIMIT_SEC', 30)),
            max_team_name_length=int(config.get('MAX_TEAM_NAME_LENGTH', 30)),
        )
