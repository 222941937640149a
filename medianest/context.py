"""Per-process application context.

Holds everything that would otherwise be a module-level global: settings,
the engine, the session factory and the lock that serializes tree mutations.
``create_app`` builds exactly one and stores it on ``app.state.context``.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .core.config import Settings
from .database import Base, build_engine, build_session_factory

logger = logging.getLogger(__name__)


class AppContext:
    def __init__(self, settings: Settings, engine: Optional[Engine] = None):
        self.settings = settings
        self.engine = engine if engine is not None else build_engine(settings)
        self.SessionLocal: sessionmaker = build_session_factory(self.engine)
        # Re-entrant so a service method may call another under the same lock.
        self.tree_lock = threading.RLock()

    def create_schema(self) -> None:
        """Create missing tables."""
        # Model modules register their tables on Base when imported.
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def ensure_system_folder(self) -> int:
        """Create the system folder if absent and return its id."""
        from .repositories.folder_repository import FolderTreeStore

        with self.session() as db, self.tree_lock:
            store = FolderTreeStore(db, system_folder_name=self.settings.system_folder_name)
            folder = store.ensure_system_folder()
            db.commit()
            return folder.id

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the context ``create_app`` attached to the app."""
    return request.app.state.context
