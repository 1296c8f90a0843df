"""Path-addressed document store with push notifications.

Paths are ``/``-separated. The first two segments (``<collection>/<key>``)
name a document; anything deeper addresses a field inside it. Writes to one
path are applied in the order the store receives them and the last write
wins. Subscribers are notified whenever a write touches their path, an
ancestor of it, or anything below it.
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable

from vibequiz.errors import ValidationFailure

logger = logging.getLogger(__name__)

SEPARATOR = '/'


def split_path(path: str) -> list[str]:
    if not isinstance(path, str):
        raise ValidationFailure('Store path must be a string')
    segments = path.strip(SEPARATOR).split(SEPARATOR)
    if any(not segment for segment in segments):
        raise ValidationFailure(f'Malformed store path: {path!r}')
    return segments


def join_path(*segments) -> str:
    return SEPARATOR.join(str(segment) for segment in segments)


def split_document_path(path: str) -> tuple[str, list[str]]:
    """Return ``(document_key, inner_segments)`` for ``path``."""
    segments = split_path(path)
    if len(segments) < 2:
        raise ValidationFailure(f'Store path needs at least <collection>/<key>: {path!r}')
    return join_path(*segments[:2]), segments[2:]


def get_in(value: Any, segments: list[str]) -> Any:
    for segment in segments:
        if not isinstance(value, dict):
            return None
        value = value.get(segment)
    return value


def set_in(value: Any, segments: list[str], new_value: Any) -> Any:
    """Return ``value`` with ``new_value`` placed at ``segments``.

    ``None`` removes the entry and prunes parents left empty.
    """
    if not segments:
        return copy.deepcopy(new_value)
    node = value if isinstance(value, dict) else {}
    head, rest = segments[0], segments[1:]
    child = set_in(node.get(head), rest, new_value)
    if child is None or child == {}:
        node.pop(head, None)
    else:
        node[head] = child
    return node or None


def paths_overlap(left: list[str], right: list[str]) -> bool:
    shortest = min(len(left), len(right))
    return left[:shortest] == right[:shortest]


class Subscription:
    """Handle returned by :meth:`Store.subscribe`.

    Calling it (or :meth:`unsubscribe`) stops delivery; doing so more than
    once is harmless. It is also a context manager that unsubscribes on exit.
    """

    def __init__(self, store: 'DocumentStore', path: str, on_change: Callable[[Any], None]):
        self.store = store
        self.path = path
        self.segments = split_path(path)
        self.active = True
        self._on_change = on_change

    def deliver(self, value: Any) -> None:
        if not self.active:
            return
        try:
            self._on_change(value)
        except Exception:
            logger.exception(f"[listener-error] path={self.path}")

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self.store._remove_subscription(self)

    __call__ = unsubscribe

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.unsubscribe()
        return False


class Store(ABC):
    """Interface every backend offers to the quiz services."""

    @abstractmethod
    def read(self, path: str) -> Any:
        """Return the value at ``path`` or ``None`` when absent."""

    @abstractmethod
    def write(self, path: str, value: Any) -> None:
        """Replace the value at ``path``."""

    @abstractmethod
    def patch(self, path: str, fields: dict) -> None:
        """Merge ``fields`` (keys may be relative sub-paths) into ``path``."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the value at ``path``."""

    @abstractmethod
    def subscribe(self, path: str, on_change: Callable[[Any], None]) -> Subscription:
        """Deliver the value at ``path`` now and after every change to it."""


class DocumentStore(Store):
    """Tree semantics and listener fan-out on top of whole-document storage.

    Backends implement :meth:`_load` and :meth:`_save` for one document and
    may wrap them in :meth:`_transaction`.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._subscriptions: list[Subscription] = []

    @abstractmethod
    def _load(self, document_key: str, for_update: bool = False) -> Any:
        ...

    @abstractmethod
    def _save(self, document_key: str, value: Any) -> None:
        ...

    @contextmanager
    def _transaction(self, write: bool = False):
        yield

    def read(self, path: str) -> Any:
        document_key, inner = split_document_path(path)
        with self._lock, self._transaction():
            document = self._load(document_key)
            return copy.deepcopy(get_in(document, inner))

    def write(self, path: str, value: Any) -> None:
        self._mutate(path, lambda document, inner: set_in(document, inner, value))

    def patch(self, path: str, fields: dict) -> None:
        if not isinstance(fields, dict) or not fields:
            raise ValidationFailure('patch() needs a non-empty mapping of fields')
        field_segments = [(split_path(str(name)), value) for name, value in fields.items()]

        def apply(document, inner):
            for segments, value in field_segments:
                document = set_in(document, inner + segments, value)
            return document

        self._mutate(path, apply)

    def delete(self, path: str) -> None:
        self._mutate(path, lambda document, inner: set_in(document, inner, None))

    def subscribe(self, path: str, on_change: Callable[[Any], None]) -> Subscription:
        subscription = Subscription(self, path, on_change)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug(f"[subscribe] path={path}")
        subscription.deliver(self.read(path))
        return subscription

    def subscriber_count(self, path: str | None = None) -> int:
        with self._lock:
            if path is None:
                return len(self._subscriptions)
            return sum(1 for s in self._subscriptions if s.path == path)

    def _remove_subscription(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        logger.debug(f"[unsubscribe] path={subscription.path}")

    def _mutate(self, path: str, apply: Callable[[Any, list[str]], Any]) -> None:
        document_key, inner = split_document_path(path)
        with self._lock, self._transaction(write=True):
            document = copy.deepcopy(self._load(document_key, for_update=True))
            self._save(document_key, apply(document, inner))
        self._notify(path)

    def _notify(self, path: str) -> None:
        changed = split_path(path)
        with self._lock:
            targets = [s for s in self._subscriptions if paths_overlap(s.segments, changed)]
        for subscription in targets:
            if subscription.active:
                subscription.deliver(self.read(subscription.path))
