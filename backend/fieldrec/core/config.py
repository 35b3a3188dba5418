import os
from functools import lru_cache
from typing import Sequence, Tuple

from pydantic import BaseModel

from fieldrec.constants import APP_DIR
from fieldrec.core.logger import get_logger

logger = get_logger(__name__)

DATA_DIR = APP_DIR / "data"

OrderBy = Sequence[Tuple[str, str]]


class QueryDefaults(BaseModel):
    """Defaults applied when a caller leaves paging or ordering unset.

    ``order`` of ``None`` means "newest capture first": ``recording_date_time``
    descending with missing timestamps treated as the epoch, then ``id``
    descending. Any explicit order replaces it entirely.

    ``limit`` is capped at ``max_limit``; a capped request is logged.
    """

    offset: int = 0
    limit: int = 100
    max_limit: int = 1000
    order: OrderBy | None = None

    def resolve_limit(self, limit: int | None) -> int:
        if limit is None:
            return self.limit
        if limit > self.max_limit:
            logger.info(f"Limit {limit} capped to {self.max_limit}")
            return self.max_limit
        return max(0, limit)

    def resolve_offset(self, offset: int | None) -> int:
        if offset is None:
            return self.offset
        return max(0, offset)


class Settings(BaseModel):
    database_url: str = f"sqlite:///{DATA_DIR.as_posix()}/fieldrec.db"
    filename_timezone: str = "Pacific/Auckland"
    log_level: str = "INFO"
    query: QueryDefaults = QueryDefaults()


def load_settings() -> Settings:
    """Build settings from ``FIELDREC_*`` environment variables."""
    defaults = Settings()
    query = QueryDefaults(
        limit=int(os.getenv("FIELDREC_DEFAULT_LIMIT", defaults.query.limit)),
        max_limit=int(os.getenv("FIELDREC_MAX_LIMIT", defaults.query.max_limit)),
    )
    return Settings(
        database_url=os.getenv("FIELDREC_DATABASE_URL", defaults.database_url),
        filename_timezone=os.getenv(
            "FIELDREC_FILENAME_TZ", defaults.filename_timezone
        ),
        log_level=os.getenv("FIELDREC_LOG_LEVEL", defaults.log_level).upper(),
        query=query,
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
