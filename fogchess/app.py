"""Wiring: settings -> logging -> store -> session"""

from typing import Optional

from loguru import logger

from fogchess.config import Settings
from fogchess.db.database import build_engine, create_session_factory
from fogchess.db.memory_repository import InMemoryDocumentStore
from fogchess.db.repository import DocumentStore
from fogchess.db.sql_repository import SQLDocumentStore
from fogchess.services.session import GameSession
from fogchess.utils.logging import setup_logging


def build_store(settings: Settings) -> DocumentStore:
    """"memory://" keeps everything in process, any other url goes through SQLAlchemy."""
    if settings.database_url == "memory://":
        return InMemoryDocumentStore()
    session_factory = create_session_factory(build_engine(settings))
    return SQLDocumentStore(session_factory())


def create_session(
    settings: Optional[Settings] = None, store: Optional[DocumentStore] = None
) -> GameSession:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)
    store = store or build_store(settings)
    session = GameSession(store, settings)
    logger.info(f"Session started for {session.player_id}")
    return session
