from sqlalchemy.orm import sessionmaker

from fieldrec.core.config import Settings, get_settings
from fieldrec.core.logger import get_logger, setup_logging
from fieldrec.db.base import Base, engine, session_factory
from fieldrec.db import models  # noqa: F401  registers tables

logger = get_logger(__name__)


def init_app(settings: Settings | None = None, bind=None) -> sessionmaker:
    """Configure logging, create the tables and return a session factory."""
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    bind = bind if bind is not None else engine
    Base.metadata.create_all(bind=bind)
    logger.info(f"Database ready at {bind.url.render_as_string(hide_password=True)}")
    return session_factory(bind)


if __name__ == "__main__":
    init_app()
