"""Durable key-value slots backed by SQLAlchemy, plus session-scoped slots."""

import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import PersistenceError
from ..config.settings import get_settings
from ..utils.logging import get_logger


logger = get_logger("store.database")

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SlotModel(Base):
    """Database model for a single named storage slot."""

    __tablename__ = "slots"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<SlotModel(key='{self.key}', size={len(self.value or '')})>"


class DatabaseManager:
    """Database connection and session manager."""

    def __init__(self, database_url: Optional[str] = None):
        """Initialize database manager."""
        self.database_url = database_url or get_settings().store.database_url

        if self.database_url.startswith("sqlite"):
            self.engine = create_engine(
                self.database_url,
                poolclass=StaticPool,
                connect_args={
                    "check_same_thread": False,
                    "timeout": 20
                },
                echo=False
            )
        else:
            self.engine = create_engine(
                self.database_url,
                pool_pre_ping=True,
                pool_recycle=300,
                echo=False
            )

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine
        )

        logger.info("Database manager initialized", database_url=self.database_url)

    def create_tables(self):
        """Create all database tables."""
        try:
            if self.database_url.startswith("sqlite:///") and ":memory:" not in self.database_url:
                db_dir = os.path.dirname(self.database_url.replace("sqlite:///", ""))
                if db_dir:
                    os.makedirs(db_dir, exist_ok=True)

            Base.metadata.create_all(bind=self.engine)
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error("Failed to create database tables", error=str(e))
            raise

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error("Database transaction rolled back", error=str(e))
            raise
        finally:
            session.close()

    def test_connection(self) -> bool:
        """Test database connection."""
        try:
            with self.session_scope() as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database connection test failed", error=str(e))
            return False

    def close(self):
        """Dispose of pooled connections."""
        self.engine.dispose()
        logger.info("Database connections closed")


class SlotRepository:
    """Durable string slots keyed by name; each write overwrites the slot."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def get(self, key: str) -> Optional[str]:
        """Read a slot, returning None if it was never written.

        Raises:
            PersistenceError: If the database cannot be read
        """
        try:
            with self.db_manager.session_scope() as session:
                slot = session.get(SlotModel, key)
                return slot.value if slot is not None else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read slot '{key}': {e}") from e

    def set(self, key: str, value: str) -> None:
        """Overwrite a slot.

        Raises:
            PersistenceError: If the database cannot be written
        """
        try:
            with self.db_manager.session_scope() as session:
                slot = session.get(SlotModel, key)
                if slot is None:
                    session.add(SlotModel(key=key, value=value))
                else:
                    slot.value = value
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to write slot '{key}': {e}") from e


class SessionSlots:
    """Slots that live only as long as the current session."""

    def __init__(self):
        self._slots: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return self._slots.get(key)

    def set(self, key: str, value: Any) -> None:
        self._slots[key] = value

    def clear(self) -> None:
        self._slots.clear()
