"""
Shared database utilities for Celery tasks.
Tasks use SYNC sessions since Celery workers are synchronous.
"""
import json
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from brandscope.config import get_settings
from brandscope.database import engine_options
from brandscope.models import ErrorLog

settings = get_settings()

_sync_engine = create_engine(
    settings.DATABASE_URL_SYNC,
    **engine_options(settings.DATABASE_URL_SYNC, pool_size=5, max_overflow=3),
)

SyncSessionLocal = sessionmaker(bind=_sync_engine, expire_on_commit=False)


@contextmanager
def get_sync_db() -> Session:
    """Context manager for sync DB sessions in Celery tasks."""
    session = SyncSessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def log_error(session: Session, source: str, error_type: str,
              message: str, context: dict = None):
    """Insert a row into error_logs."""
    session.add(ErrorLog(
        source=source,
        error_type=error_type,
        message=(message or "")[:2000],
        context_json=json.dumps(context, default=str) if context else None,
        created_at=datetime.utcnow(),
    ))
