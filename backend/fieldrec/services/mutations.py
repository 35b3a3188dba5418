from typing import Any, Mapping

from sqlalchemy.orm import Session

from fieldrec.core.errors import ValidationError
from fieldrec.core.logger import get_logger
from fieldrec.core.outcome import DENIED, Ok, Outcome
from fieldrec.core.permissions import PermissionEvaluator
from fieldrec.core.validation import check_updatable
from fieldrec.db.models import Recording
from fieldrec.services.query import QueryEngine

logger = get_logger(__name__)


class MutationGuard:
    """Delete and update, only for users allowed to do so.

    A missing recording, one the user cannot see, and one they may not
    change all produce the same ``False``. The fetch, the permission check
    and the write are not locked together; concurrent writers to the same
    row are last-writer-wins.
    """

    def __init__(
        self, db: Session, engine: QueryEngine, permissions: PermissionEvaluator
    ):
        self.db = db
        self.engine = engine
        self.permissions = permissions

    def authorize(self, user: Any, id: int, right: str) -> Outcome[Recording]:
        recording = self.engine.get_one(user, id)
        if recording is None:
            return DENIED
        permissions = self.permissions.get_user_permissions(recording, user)
        if not getattr(permissions, right):
            return DENIED
        return Ok(recording)

    def delete_one(self, user: Any, id: int) -> bool:
        outcome = self.authorize(user, id, "can_delete")
        if not isinstance(outcome, Ok):
            logger.info(f"Delete of recording {id} refused for {user!r}")
            return False

        try:
            self.db.delete(outcome.value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Recording {id} deleted by {user!r}")
        return True

    def update_one(self, user: Any, id: int, updates: Mapping[str, Any]) -> bool:
        # Field check comes first so bad payloads never touch the store.
        try:
            updates = check_updatable(updates)
        except ValidationError as e:
            logger.warning(f"Update of recording {id} rejected: {e}")
            return False

        outcome = self.authorize(user, id, "can_update")
        if not isinstance(outcome, Ok):
            logger.info(f"Update of recording {id} refused for {user!r}")
            return False

        recording = outcome.value
        try:
            for key, value in updates.items():
                setattr(recording, key, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Recording {id} updated by {user!r}: {sorted(updates)}")
        return True
