# backend/app/database.py
from typing import Optional, Tuple

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError

from app.config import settings  # OK: config should NOT import app.database
from app.utils.logger import logger

_connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # FastAPI serves sync dependencies from a threadpool
    _connect_args["check_same_thread"] = False

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_recycle=3600,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session, operation: str = "database operation") -> Tuple[bool, Optional[str]]:
    """
    Commit, or roll back and describe the failure.

    Returns (True, None) on success, else (False, message). Used by the
    request handlers that own a single write; the post-call writer manages
    its own units of work.
    """
    try:
        db.commit()
        return True, None
    except (IntegrityError, OperationalError) as e:
        db.rollback()
        kind = "Integrity" if isinstance(e, IntegrityError) else "Operational"
        error_msg = f"{kind} error during {operation}: {str(e.orig)[:200]}"
    except SQLAlchemyError as e:
        db.rollback()
        error_msg = f"Database error during {operation}: {str(e)[:200]}"

    logger.error(f"[DB] {error_msg}")
    return False, error_msg
