from __future__ import annotations

import logging

from sqlalchemy import text

from quickdu.db.migrations import apply_migrations
from quickdu.db.models import Base
from quickdu.db.session import get_engine

logger = logging.getLogger(__name__)


def initialize_database() -> None:
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    applied = apply_migrations(engine)
    if applied:
        logger.info("Applied schema migrations: %s", ", ".join(str(version) for version in applied))

    if engine.url.drivername.startswith("sqlite"):
        with engine.connect() as conn:
            conn.execute(text("PRAGMA optimize;"))
            conn.commit()
