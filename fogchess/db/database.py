"""Generate database session"""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from fogchess.config import Settings
from fogchess.db.schema import Base


def build_engine(settings: Settings) -> Engine:
    connect_args = (
        {"check_same_thread": False}
        if settings.database_url.startswith("sqlite")
        else {}
    )
    return create_engine(
        settings.database_url, echo=settings.database_echo, connect_args=connect_args
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    # Ensure all tables are created
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False)
