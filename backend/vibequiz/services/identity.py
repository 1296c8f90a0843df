"""Client-side player identity and reconnection.

Identity is self-asserted: a client generates an opaque player id, keeps it
together with its team name per session code, and remembers the most recent
one as a longer-lived reconnection record. Nothing here is a security
boundary.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from vibequiz.context import QuizContext
from vibequiz.domain import FINISHED
from .roster import find_player, join, validate_team_name
from .sessions import find_session, normalize_code

logger = logging.getLogger(__name__)


def generate_player_id() -> str:
    return uuid4().hex


@dataclass
class Identity:
    player_id: str
    display_name: str
    session_code: str

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'display_name': self.display_name,
            'session_code': self.session_code,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            player_id=data['player_id'],
            display_name=data.get('display_name', ''),
            session_code=data['session_code'],
        )


class IdentityStore:
    """Per-session identities plus the last one used, optionally kept in a JSON file."""

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path else None
        self._lock = threading.Lock()
        self._sessions: dict[str, Identity] = {}
        self._last: Identity | None = None
        self._load()

    def _load(self) -> None:
        if self._path is None or not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as exc:
            logger.warning(f"[identity-load] unreadable file={self._path} error={exc}")
            return
        self._sessions = {code: Identity.from_dict(item) for code, item in (data.get('sessions') or {}).items()}
        last = data.get('last')
        self._last = Identity.from_dict(last) if last else None

    def _flush(self) -> None:
        if self._path is None:
            return
        payload = {
            'sessions': {code: identity.to_dict() for code, identity in self._sessions.items()},
            'last': self._last.to_dict() if self._last else None,
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2), encoding='utf-8')

    def remember(self, identity: Identity) -> None:
        with self._lock:
            self._sessions[identity.session_code] = identity
            self._last = identity
            self._flush()

    def issue(self, session_code: str, display_name: str) -> Identity:
        identity = Identity(
            player_id=generate_player_id(),
            display_name=display_name,
            session_code=normalize_code(session_code),
        )
        self.remember(identity)
        return identity

    def get(self, session_code: str) -> Identity | None:
        with self._lock:
            return self._sessions.get(normalize_code(session_code))

    def last(self) -> Identity | None:
        with self._lock:
            return self._last

    def discard(self, session_code: str) -> None:
        code = normalize_code(session_code)
        with self._lock:
            self._sessions.pop(code, None)
            if self._last and self._last.session_code == code:
                self._last = None
            self._flush()


def join_with_identity(ctx: QuizContext, identities: IdentityStore, code: str, name: str) -> Identity:
    """Join ``code`` under a fresh player id and remember it on success."""
    code = normalize_code(code)
    name = validate_team_name(name, ctx.max_team_name_length)
    identity = Identity(player_id=generate_player_id(), display_name=name, session_code=code)
    join(ctx, code, identity.player_id, name)
    identities.remember(identity)
    return identity


def can_resume(ctx: QuizContext, code: str, player_id: str) -> bool:
    session = find_session(ctx, code)
    if session is None or session.status == FINISHED:
        return False
    return find_player(ctx, code, player_id) is not None


def resume(ctx: QuizContext, identities: IdentityStore, code: str | None = None) -> Identity | None:
    """Return the stored identity if it can carry on, else discard it.

    Without ``code`` the reconnection record (last identity used) is tried.
    """
    identity = identities.get(code) if code else identities.last()
    if identity is None:
        return None
    if can_resume(ctx, identity.session_code, identity.player_id):
        logger.info(f"[resume] session={identity.session_code} player={identity.player_id}")
        return identity
    logger.info(f"[resume-discard] session={identity.session_code} player={identity.player_id}")
    identities.discard(identity.session_code)
    return None
