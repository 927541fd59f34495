import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from attendance_desk.config import settings
from attendance_desk.request_context import current_endpoint


def _connect_args(url: str) -> dict:
    if url.startswith('sqlite'):
        return {'check_same_thread': False}
    return {}


DATABASE_URL = settings.resolved_database_url
engine = create_engine(DATABASE_URL, connect_args=_connect_args(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

_SLOW_QUERY_MS = settings.db_slow_query_ms
_slow_logger = logging.getLogger('attendance_desk.db.slow_query')


@event.listens_for(engine, 'before_cursor_execute')
def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    context._query_start_time = time.perf_counter()


@event.listens_for(engine, 'after_cursor_execute')
def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    start = getattr(context, '_query_start_time', None)
    if start is None:
        return
    duration_ms = (time.perf_counter() - start) * 1000.0
    if duration_ms < _SLOW_QUERY_MS:
        return
    _slow_logger.warning(
        'slow_query duration_ms=%.2f endpoint=%s sql=%s',
        duration_ms,
        current_endpoint.get(),
        (statement or '').replace('\n', ' ').strip(),
    )


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
