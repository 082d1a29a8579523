"""Engine and session factory."""
from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from agenda.core.config import settings

logger = logging.getLogger(__name__)

_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, pool_pre_ping=True, future=True, connect_args=_connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db() -> None:
    """Create all tables that do not exist yet."""
    from agenda.db.base import Base
    from agenda.db import models  # noqa: F401  (register tables)

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured for %s", engine.url.render_as_string(hide_password=True))
