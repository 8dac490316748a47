# vaultnote/infra/init_db.py

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from vaultnote.core.config import get_settings
from vaultnote.infra.database import create_db_engine
from vaultnote.models.base import Base
from vaultnote.models.message import Message  # noqa: F401  registers the table

logger = logging.getLogger(__name__)


def init_db(engine: Engine) -> None:
    """Create the messages table and its indexes if missing"""
    Base.metadata.create_all(bind=engine)
    logger.info("Tables ready: %s", inspect(engine).get_table_names())


if __name__ == "__main__":
    from vaultnote.utils.logger import setup_logger

    setup_logger()
    settings = get_settings()
    init_db(create_db_engine(settings.database_url, timeout=settings.store_timeout_seconds))
