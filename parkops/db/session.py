import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from parkops.core.config import settings

log = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _engine_for(url: str):
    if url.startswith("sqlite"):
        kw = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            # One shared connection so every session sees the same in-memory database.
            kw["poolclass"] = StaticPool
        return create_engine(url, **kw)
    return create_engine(url, pool_pre_ping=True)


class Store:
    """Process-scoped trip/booking store.

    Owns the engine, the session factory and the single write lock. Every
    session opened through :meth:`session` holds the lock until it closes, so
    read-check-write sequences (seat allocation, driver assignment) run one at
    a time even though request handlers execute on a thread pool.
    """

    def __init__(self, url: str | None = None, *, create_tables: bool = True):
        self.url = url or settings.DATABASE_URL
        self.engine = _engine_for(self.url)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        self._lock = threading.Lock()
        if create_tables:
            from parkops.db import init_db
            init_db.create_tables(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        with self._lock:
            db = self.SessionLocal()
            try:
                yield db
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def dispose(self):
        self.engine.dispose()


_store: Store | None = None


def get_store() -> Store:
    global _store
    if _store is None:
        _store = Store()
        log.info("store created for %s", _store.url)
    return _store


def set_store(store: Store | None) -> Store | None:
    global _store
    previous, _store = _store, store
    return previous


def get_db():
    with get_store().session() as db:
        yield db
