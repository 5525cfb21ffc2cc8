import logging
from collections.abc import Generator

from fastapi import Request
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from filedrive.db.base import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Relational store handle owned by process startup/shutdown."""

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.echo = echo
        self._engine: Engine | None = None
        self._sessionmaker: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def connect(self) -> None:
        if self._engine is not None:
            return
        engine_kwargs: dict = {"future": True, "echo": self.echo}
        if self.url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        engine = create_engine(self.url, **engine_kwargs)
        if engine.dialect.name == "sqlite":
            # ON DELETE CASCADE is ignored by SQLite unless enabled per connection.
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        self._engine = engine
        self._sessionmaker = sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)
        logger.info("database_connected", extra={"dialect": engine.dialect.name})

    def disconnect(self) -> None:
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("database_disconnected")

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        return self._sessionmaker()


def get_db(request: Request) -> Generator[Session, None, None]:
    database: Database = request.app.state.db
    db = database.session()
    try:
        yield db
    finally:
        db.close()
