"""In-process store backend used by tests and single-process demos."""

from __future__ import annotations

from typing import Any

from .base import DocumentStore


class MemoryStore(DocumentStore):

    def __init__(self) -> None:
        super().__init__()
        self._documents: dict[str, Any] = {}

    def _load(self, document_key: str, for_update: bool = False) -> Any:
        return self._documents.get(document_key)

    def _save(self, document_key: str, value: Any) -> None:
        if value is None:
            self._documents.pop(document_key, None)
        else:
            self._documents[document_key] = value

    def document_keys(self) -> list[str]:
        with self._lock:
            return sorted(self._documents)
