"""Database engine, session factory and request-scoped sessions"""
import logging
from typing import Iterator
from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine for the given URL"""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sessions are handed between FastAPI worker threads
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, connect_args=connect_args)
    
    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the engine"""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create all tables"""
    # Import models so they register with Base
    from mixtape.models import track, user  # noqa: F401
    
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized at {engine.url}")


def get_db(request: Request) -> Iterator[Session]:
    """Dependency yielding a session from the application's session factory"""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
