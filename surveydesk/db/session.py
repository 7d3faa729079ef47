# surveydesk/db/session.py
from typing import Iterator
from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from surveydesk.core.config import Settings


def make_engine(settings: Settings) -> Engine:
    connect_args = {}
    if settings.DATABASE_URL.startswith("sqlite"):
        # lock wait bounds concurrent writers racing on the same row
        connect_args = {"check_same_thread": False, "timeout": settings.DB_TIMEOUT}
    else:
        connect_args = {"connect_timeout": int(settings.DB_TIMEOUT)}
    return create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)


def make_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
