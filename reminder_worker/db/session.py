"""Database session management."""

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker
from contextlib import contextmanager
from pathlib import Path

from .models import Base

_engine = None
_SessionLocal = None


def init_db(db_path: str, create_tables: bool = True):
    """Initialize the database.

    Args:
        db_path: SQLite file path
        create_tables: Create missing tables. The worker opens the foreground
            app's database with this off and never changes its schema.
    """
    global _engine, _SessionLocal

    if create_tables:
        # Ensure directory exists
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    _engine = create_engine(f"sqlite:///{db_path}", echo=False)
    _SessionLocal = sessionmaker(bind=_engine)

    if create_tables:
        Base.metadata.create_all(_engine)

    return _engine


def has_table(name: str) -> bool:
    """Whether the initialized database has table ``name``."""
    if _engine is None:
        return False
    return inspect(_engine).has_table(name)


def close_db():
    """Dispose of the engine so the next init_db starts fresh."""
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def is_initialized() -> bool:
    """Whether init_db has been called."""
    return _SessionLocal is not None


@contextmanager
def get_session():
    """Get a database session as a context manager."""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
