import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import Config, connect_args, database_url
from models import Base
import task_models  # noqa: F401  (registriert tasks/time_entries an Base.metadata)

logger = logging.getLogger(__name__)


def make_engine(url: str, **kwargs):
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if ":memory:" in url or url == "sqlite://":
            # Eine gemeinsame Verbindung, sonst sieht jede Session eine leere DB
            kwargs.setdefault("poolclass", StaticPool)
    else:
        kwargs.setdefault("pool_size", 10)
        kwargs.setdefault("pool_pre_ping", True)
    return create_engine(url, **kwargs)


def engine_from_config(config: Config):
    url = database_url(config)
    if url.startswith("sqlite"):
        return make_engine(url)
    return make_engine(url, connect_args=connect_args(config))


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine):
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready (%s)", engine.url.render_as_string(hide_password=True))
