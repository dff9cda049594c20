from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from core.config import settings


connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit of work around a mutating operation.

    Commits when the block finishes, rolls back and re-raises on any error,
    so callers never observe a half-written order.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
