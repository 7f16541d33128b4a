from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from payout_relay.logging_config import get_logger

logger = get_logger(__name__)

Base = declarative_base()


class Database:
    """
    Owns the engine and session factory. `connect()` runs once at startup,
    `dispose()` on shutdown.
    """

    def __init__(self, url: str):
        self.url = url
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None

    def connect(self) -> None:
        if self.engine is not None:
            return
        connect_args = {"check_same_thread": False} if self.url.startswith("sqlite") else {}
        self.engine = create_engine(self.url, connect_args=connect_args)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        # models must be imported so their tables are registered on Base
        from payout_relay import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Ledger database ready url=%s", self.engine.url.render_as_string(hide_password=True))

    def dispose(self) -> None:
        if self.engine is None:
            return
        self.engine.dispose()
        self.engine = None
        self.SessionLocal = None
        logger.info("Ledger database disposed")

    def session(self) -> Session:
        if self.SessionLocal is None:
            raise RuntimeError("Database.connect() has not been called")
        return self.SessionLocal()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
