import threading

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from config import get_database_url

Base = declarative_base()


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in url or url.rstrip("/") == "sqlite:":
        # one shared connection, otherwise every session sees an empty database
        options["poolclass"] = StaticPool
    return options


class Database:
    """Process-wide store handle.

    The engine is created on first use and then reused for the lifetime of
    the process. Concurrent first use creates it exactly once.
    """

    def __init__(self, url_provider=get_database_url):
        self._url_provider = url_provider
        self._engine = None
        self._sessionmaker = None
        self._lock = threading.Lock()

    @property
    def engine(self):
        if self._engine is None:
            with self._lock:
                if self._engine is None:
                    url = self._url_provider()
                    engine = create_engine(url, **_engine_options(url))
                    self._sessionmaker = sessionmaker(autocommit=False, autoflush=False, bind=engine)
                    self._engine = engine
        return self._engine

    def session(self) -> Session:
        self.engine
        return self._sessionmaker()

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)


database = Database()


def get_db():
    db = database.session()
    try:
        yield db
    finally:
        db.close()
