# barberbook/db.py

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from barberbook.config import get_settings


def make_engine(database_url: str, echo: bool = False) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # required for SQLite + FastAPI, requests run in a thread pool
        connect_args["check_same_thread"] = False
    return create_engine(database_url, echo=echo, connect_args=connect_args)


settings = get_settings()

# Engine = connection to the database
engine = make_engine(settings.database_url, echo=settings.sql_echo)


def init_db(bind: Engine = engine) -> None:
    # importing models registers every table on SQLModel.metadata
    from barberbook import models  # noqa: F401

    SQLModel.metadata.create_all(bind)


# Dependency: one session per request
def get_session():
    with Session(engine) as session:
        yield session
