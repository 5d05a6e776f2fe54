"""Database bootstrap helpers for the optional SQL purchase ledger."""

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass


def make_session_factory(database_url: str, **engine_kwargs) -> sessionmaker:
    """Build one engine + session factory for the given DSN."""

    engine = create_engine(database_url, pool_pre_ping=True, **engine_kwargs)
    # `expire_on_commit=False` keeps ORM objects readable after commit in handlers.
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
