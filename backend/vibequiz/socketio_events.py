from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from vibequiz import socketio
from vibequiz.errors import QuizError, Unconfigured, ValidationFailure
from vibequiz.services.paths import COLLECTIONS, session_paths
from vibequiz.services.sessions import normalize_code
from vibequiz.store.base import split_path
from typing import Dict, Set
import logging
import threading

NAMESPACE = '/ws'

logger = logging.getLogger(__name__)


def _room(path: str) -> str:
    return f"store:{path}"


def validate_watch_path(path) -> str:
    segments = split_path(path)
    if len(segments) < 2 or segments[0] not in COLLECTIONS:
        raise ValidationFailure(f'Cannot subscribe to {path!r}')
    return '/'.join(segments)


class SubscriptionHub:
    """Fans store changes out to Socket.IO rooms, one room per watched path.

    Holds a single store subscription per path no matter how many sockets
    watch it, and releases it when the last socket lets go.
    """

    def __init__(self, store, namespace: str = NAMESPACE):
        self.store = store
        self.namespace = namespace
        self._lock = threading.Lock()
        self._sid_paths: Dict[str, Set[str]] = {}
        self._path_sids: Dict[str, Set[str]] = {}
        self._subscriptions = {}

    def watch(self, sid: str, path: str) -> bool:
        """Register ``sid`` on ``path``. Returns True if a new store subscription is needed."""
        with self._lock:
            self._sid_paths.setdefault(sid, set()).add(path)
            sids = self._path_sids.setdefault(path, set())
            first = not sids and path not in self._subscriptions
            sids.add(sid)
        return first

    def open(self, path: str) -> None:
        subscription = self.store.subscribe(path, lambda value: self.broadcast(path, value))
        with self._lock:
            if self._path_sids.get(path) and path not in self._subscriptions:
                self._subscriptions[path] = subscription
                subscription = None
        if subscription is not None:
            # Everyone left while we were subscribing, or another open() got there first
            subscription.unsubscribe()

    def broadcast(self, path: str, value) -> None:
        socketio.emit('snapshot', {'path': path, 'value': value}, to=_room(path), namespace=self.namespace)

    def unwatch(self, sid: str, path: str) -> None:
        release = None
        with self._lock:
            self._sid_paths.get(sid, set()).discard(path)
            sids = self._path_sids.get(path)
            if sids is not None:
                sids.discard(sid)
                if not sids:
                    self._path_sids.pop(path, None)
                    release = self._subscriptions.pop(path, None)
        if release is not None:
            release.unsubscribe()
            logger.info(f"[hub-release] path={path}")

    def release_all(self, sid: str) -> None:
        with self._lock:
            paths = list(self._sid_paths.pop(sid, set()))
        for path in paths:
            self.unwatch(sid, path)

    def paths_for(self, sid: str) -> Set[str]:
        with self._lock:
            return set(self._sid_paths.get(sid, set()))

    def watched_paths(self) -> Set[str]:
        with self._lock:
            return set(self._subscriptions)


def _hub() -> SubscriptionHub:
    return current_app.extensions['vibequiz_hub']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _subscribe(path: str) -> None:
    hub = _hub()
    if hub.store is None:
        raise Unconfigured()
    join_room(_room(path))
    if hub.watch(_get_sid(), path):
        # The initial delivery reaches the whole room, this socket included
        hub.open(path)
    else:
        emit('snapshot', {'path': path, 'value': hub.store.read(path)})


def _unsubscribe(path: str) -> None:
    leave_room(_room(path))
    _hub().unwatch(_get_sid(), path)


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(*args):
    _hub().release_all(_get_sid())


def handle_subscribe(data):
    try:
        path = validate_watch_path((data or {}).get('path'))
        _subscribe(path)
    except QuizError as exc:
        emit('error', exc.to_dict())
        return
    emit('subscribed', {'path': path})


def handle_unsubscribe(data):
    try:
        path = validate_watch_path((data or {}).get('path'))
    except QuizError as exc:
        emit('error', exc.to_dict())
        return
    _unsubscribe(path)
    emit('unsubscribed', {'path': path})


def handle_join_game(data):
    try:
        game_code = normalize_code((data or {}).get('game_code'))
        paths = session_paths(game_code)
        for path in paths:
            _subscribe(path)
    except QuizError as exc:
        emit('error', exc.to_dict())
        return
    logger.info(f"[ws-join] sid={_get_sid()} session={game_code}")
    emit('joined', {'game_code': game_code, 'paths': paths})


def handle_leave_game(data):
    try:
        game_code = normalize_code((data or {}).get('game_code'))
    except QuizError as exc:
        emit('error', exc.to_dict())
        return
    for path in session_paths(game_code):
        _unsubscribe(path)
    emit('left', {'game_code': game_code})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('subscribe', handle_subscribe, namespace=NAMESPACE)
    socketio.on_event('unsubscribe', handle_unsubscribe, namespace=NAMESPACE)
    socketio.on_event('join_game', handle_join_game, namespace=NAMESPACE)
    socketio.on_event('leave_game', handle_leave_game, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
