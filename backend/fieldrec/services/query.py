from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import DateTime, func, literal, select
from sqlalchemy.orm import Session, load_only, selectinload

from fieldrec.constants import USER_GET_ATTRIBUTES
from fieldrec.core.config import OrderBy, QueryDefaults
from fieldrec.core.logger import get_logger
from fieldrec.core.predicates import (
    And,
    Eq,
    HasRelated,
    Not,
    Predicate,
    compile_predicate,
    from_filter,
    validate_order,
)
from fieldrec.core.visibility import VisibilityResolver
from fieldrec.db.models import Device, Recording

logger = get_logger(__name__)

EPOCH = datetime(1970, 1, 1)


@dataclass
class QueryResult:
    rows: list
    count: int


def default_order() -> list:
    """Newest capture first, undated last, then highest id first."""
    return [
        func.coalesce(
            Recording.recording_date_time, literal(EPOCH, type_=DateTime())
        ).desc(),
        Recording.id.desc(),
    ]


def tag_condition(tagged_only: bool | None) -> Predicate:
    if tagged_only is True:
        return HasRelated("tags")
    if tagged_only is False:
        return Not(HasRelated("tags"))
    return And()


def _device_summary():
    return selectinload(Recording.device).load_only(Device.id, Device.devicename)


class QueryEngine:
    def __init__(
        self,
        db: Session,
        visibility: VisibilityResolver,
        defaults: QueryDefaults | None = None,
    ):
        self.db = db
        self.visibility = visibility
        self.defaults = defaults or QueryDefaults()

    def _order_by(self, order: OrderBy | None) -> list:
        order = order if order is not None else self.defaults.order
        if order is None:
            return default_order()
        return validate_order(Recording, order)

    def query(
        self,
        user: Any,
        where: Predicate | Mapping[str, Any] | None = None,
        tagged_only: bool | None = None,
        offset: int | None = None,
        limit: int | None = None,
        order: OrderBy | None = None,
    ) -> QueryResult:
        """Recordings visible to ``user`` matching ``where``.

        Args:
            user: Whoever is asking; resolved through the membership provider.
            where: Extra filter, either a predicate or a ``{field: value}`` map.
            tagged_only: True for tagged only, False for untagged only,
                None for both.
            offset: Rows to skip after ordering.
            limit: Page size, capped by the configured maximum.
            order: ``(field, "ASC"|"DESC")`` pairs replacing the default order.
        Returns:
            QueryResult: The page and the total number of matching rows.
        """
        predicate = And(
            from_filter(where),
            self.visibility.recordings_for(user),
            tag_condition(tagged_only),
        )
        clause = compile_predicate(predicate, Recording)
        order_by = self._order_by(order)

        count = self.db.scalar(select(func.count(Recording.id)).where(clause))

        stmt = (
            select(Recording)
            .where(clause)
            .options(
                load_only(
                    *(getattr(Recording, name) for name in USER_GET_ATTRIBUTES),
                    raiseload=True,
                ),
                selectinload(Recording.group),
                selectinload(Recording.tags),
                _device_summary(),
            )
            .order_by(*order_by)
            .offset(self.defaults.resolve_offset(offset))
            .limit(self.defaults.resolve_limit(limit))
        )
        rows = list(self.db.scalars(stmt).all())
        logger.debug(f"Query for {user!r} returned {len(rows)} of {count}")
        return QueryResult(rows=rows, count=count)

    def get_one(self, user: Any, id: int) -> Recording | None:
        """A single visible recording, including its raw file key, or None."""
        predicate = And(Eq("id", id), self.visibility.recordings_for(user))
        stmt = (
            select(Recording)
            .where(compile_predicate(predicate, Recording))
            .options(selectinload(Recording.tags), _device_summary())
        )
        return self.db.scalars(stmt).first()
