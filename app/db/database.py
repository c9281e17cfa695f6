"""Database connection and session management"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator

Base = declarative_base()

# Global engine and session maker
_engine = None
_SessionLocal = None


def init_database(database_url: str) -> None:
    """
    Initialize database engine and session maker.

    Args:
        database_url: SQLAlchemy connection URL (PostgreSQL in production,
            SQLite for tests and local runs)
    """
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()

    if database_url.startswith("sqlite"):
        engine_kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            # One shared connection, otherwise every thread sees its own empty database
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs = {
            "pool_pre_ping": True,  # Verify connections before using
            "pool_size": 5,
            "max_overflow": 10,
        }

    _engine = create_engine(database_url, **engine_kwargs)

    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )


def get_engine():
    """Get database engine"""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


def get_session_factory() -> sessionmaker:
    """Get the configured session maker"""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _SessionLocal


def get_session() -> Generator[Session, None, None]:
    """
    Get database session.

    Yields:
        Database session
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def create_all_tables() -> None:
    """Create all tables (for testing purposes)"""
    # Register models on the metadata
    import app.db.models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


def drop_all_tables() -> None:
    """Drop all tables (for testing purposes)"""
    import app.db.models  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())
