"""Store backends for the shared game state.

``MemoryStore`` keeps everything in process; ``SqlStore`` persists through
Flask-SQLAlchemy. Both satisfy :class:`~vibequiz.store.base.Store`.
"""

from .base import Store, Subscription, join_path, split_path
from .memory import MemoryStore

__all__ = ['Store', 'Subscription', 'MemoryStore', 'join_path', 'split_path']
