"""Store backend persisting documents through Flask-SQLAlchemy."""

from __future__ import annotations

import logging
from contextlib import contextmanager, nullcontext
from typing import Any

from flask import has_app_context
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError

from vibequiz import db
from vibequiz.errors import QuizError, Unconfigured, WriteFailure
from vibequiz.models import StoreDocument
from .base import DocumentStore

logger = logging.getLogger(__name__)


class SqlStore(DocumentStore):
    """Each ``<collection>/<key>`` document is one ``store_document`` row.

    Mutations lock the row (``SELECT ... FOR UPDATE`` where the database
    supports it) on top of the in-process lock, so read-modify-write of a
    document never interleaves with another writer.
    """

    def __init__(self, app=None) -> None:
        super().__init__()
        self._app = app

    def init_app(self, app) -> None:
        self._app = app

    def _app_context(self):
        if has_app_context():
            return nullcontext()
        if self._app is None:
            raise Unconfigured('SqlStore used outside an application context')
        return self._app.app_context()

    @contextmanager
    def _transaction(self, write: bool = False):
        with self._app_context():
            try:
                yield
                if write:
                    db.session.commit()
            except (OperationalError, InterfaceError) as exc:
                db.session.rollback()
                logger.error(f"[store-unreachable] write={write} error={exc}")
                raise Unconfigured('The game backend is unreachable.') from exc
            except SQLAlchemyError as exc:
                db.session.rollback()
                logger.error(f"[store-error] write={write} error={exc}")
                if write:
                    raise WriteFailure() from exc
                raise QuizError() from exc

    def _load(self, document_key: str, for_update: bool = False) -> Any:
        query = StoreDocument.query.filter_by(key=document_key)
        if for_update:
            query = query.with_for_update()
        row = query.first()
        return row.value if row else None

    def _save(self, document_key: str, value: Any) -> None:
        row = db.session.get(StoreDocument, document_key)
        if value is None:
            if row is not None:
                db.session.delete(row)
            return
        if row is None:
            row = StoreDocument(key=document_key)
        row.value = value
        db.session.add(row)
