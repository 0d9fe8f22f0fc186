"""Database setup and models for the shared cooldown store.

This module provides the database connection, models, and utilities for
persisting authentication cooldowns using SQLAlchemy, so several app
instances can enforce the same per-account cooldown.
"""

from sqlalchemy import BigInteger, Column, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from logic.config import get_settings

Base = declarative_base()


class AuthCooldown(Base):
    """Last authentication attempt for an account on one route.

    Attributes:
        namespace: Route the attempt was made on (login, register).
        identifier: Account identifier (email) as submitted.
        last_attempt_ms: Epoch milliseconds of the last admitted attempt.
    """

    __tablename__ = "auth_cooldowns"

    namespace = Column(String(32), primary_key=True)
    identifier = Column(String(320), primary_key=True)
    last_attempt_ms = Column(BigInteger, nullable=False, index=True)

    def to_dict(self):
        return {
            "namespace": self.namespace,
            "identifier": self.identifier,
            "last_attempt_ms": self.last_attempt_ms,
        }


def make_engine(database_url=None):
    """Create an engine for the given URL (defaults to DATABASE_URL)."""
    url = database_url or get_settings().database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine):
    """Initialize the database by creating all tables."""
    Base.metadata.create_all(bind=engine)
