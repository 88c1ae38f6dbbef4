from functools import lru_cache

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from siva_orders.config import settings


def make_engine(url: str):
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # keep a single connection so the in-memory schema survives
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


@lru_cache()
def get_engine():
    return make_engine(settings.DATABASE_URL)


def init_db(engine=None) -> None:
    SQLModel.metadata.create_all(engine or get_engine())


def get_session(engine=None) -> Session:
    return Session(engine or get_engine())
