import logging
from contextlib import contextmanager

from flask import g, current_app
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models import Base

logger = logging.getLogger(__name__)


def create_db_engine(database_url):
    kwargs = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # in-memory databases must share one connection or every session sees an empty schema
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def init_db(engine):
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database schema ready on {engine.url.render_as_string(hide_password=True)}")


def make_session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def get_db():
    """Return the SQLAlchemy session for the current request.

    The session is kept in ``g`` so one request never opens two.
    """
    if 'db' not in g:
        g.db = current_app.extensions['session_factory']()
    return g.db


def close_db(e=None):
    db = g.pop('db', None)
    if db is not None:
        db.close()
