from collections.abc import Iterator
from contextlib import contextmanager
import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from libdesk.config import settings
from libdesk.request_context import current_endpoint


def _connect_args(database_url: str) -> dict:
    if database_url.startswith('sqlite'):
        return {'check_same_thread': False}
    return {}


engine = create_engine(settings.database_url, connect_args=_connect_args(settings.database_url), pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

_slow_logger = logging.getLogger('libdesk.db.slow_query')


@event.listens_for(engine, 'before_cursor_execute')
def _start_query_timer(conn, cursor, statement, parameters, context, executemany):
    context._libdesk_started = time.perf_counter()


@event.listens_for(engine, 'after_cursor_execute')
def _log_slow_query(conn, cursor, statement, parameters, context, executemany):
    started = getattr(context, '_libdesk_started', None)
    if started is None:
        return
    duration_ms = (time.perf_counter() - started) * 1000.0
    if duration_ms < settings.db_slow_query_ms:
        return
    _slow_logger.warning(
        'slow_query duration_ms=%.2f endpoint=%s sql=%s',
        duration_ms,
        current_endpoint.get(),
        ' '.join((statement or '').split()),
    )


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for work outside a request: jobs, startup and scripts."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db():
    with session_scope() as db:
        yield db
