# Database connection and session management (SQLAlchemy)

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import Settings

# Base class for all database models
Base = declarative_base()


def create_db_engine(settings: Settings) -> Engine:
    """Create the SQLAlchemy engine for the record store"""
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,  # Check connection before using
        pool_recycle=300,    # Recycle connections after 5 minutes
        echo=False           # Set to True for SQL query logging in development
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to engine. One job run opens a short session per read/write."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine) -> None:
    """Create all tables defined in models. Call this once when provisioning."""
    # Register models on Base.metadata
    from transcoder import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
