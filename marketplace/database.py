"""
Database connection and session.

Schema source of truth: marketplace.models. On startup, Database.create_all() creates all
tables and columns from the current models. There is no migration tooling; a fresh
database only needs create_all.

The Database object is built once by create_app() and kept on app.state, so every
request handler receives its session through get_db() instead of a module-level handle.
"""
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


class Database:
    def __init__(self, url: str, echo: bool = False):
        kwargs = {"pool_pre_ping": True, "echo": echo}
        if url.startswith("sqlite"):
            # One shared connection so an in-memory DB survives across threads (TestClient).
            kwargs = {
                "echo": echo,
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }
        self.url = url
        self.engine = create_engine(url, **kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        # Import models so Base.metadata has every table before create_all
        import marketplace.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()


def latest(db: Session, model, **filters):
    """Most recently created row matching every exact-match filter, or None.

    Lookups never rely on uniqueness; when several rows match, the newest wins.
    """
    return db.query(model).filter_by(**filters).order_by(model.id.desc()).first()
