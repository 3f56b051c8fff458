import threading
import weakref
from contextlib import AbstractContextManager, nullcontext

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from .config import settings

DATABASE_URL = settings.database_url

_single_connection_guards: "weakref.WeakKeyDictionary[Engine, threading.Lock]" = weakref.WeakKeyDictionary()


def build_engine(url: str) -> Engine:
    """
    One engine per process. Every store call borrows a pooled connection through a session and
    hands it back; only shutdown disposes the engine.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in url:
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def connection_guard(bind: Engine | None) -> AbstractContextManager:
    """
    Lock to hold around every session on `bind` when the engine shares a single connection
    (in-memory SQLite on StaticPool); a no-op for pooled engines.
    """
    if bind is None or not isinstance(bind.pool, StaticPool):
        return nullcontext()
    return _single_connection_guards.setdefault(bind, threading.Lock())


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine)
Base = declarative_base()
