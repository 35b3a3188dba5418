from typing import Any, Mapping

import pydantic
from sqlalchemy.orm import Session

from fieldrec.core import lifecycle
from fieldrec.core.config import OrderBy, Settings, get_settings
from fieldrec.core.errors import ValidationError
from fieldrec.core.logger import get_logger
from fieldrec.core.membership import MembershipProvider
from fieldrec.core.permissions import PermissionEvaluator
from fieldrec.core.predicates import Predicate
from fieldrec.core.validation import check_settable
from fieldrec.core.visibility import VisibilityResolver
from fieldrec.db.models import Device, Recording
from fieldrec.schemas.recording import Permissions, RecordingCreate
from fieldrec.services.mutations import MutationGuard
from fieldrec.services.query import QueryEngine, QueryResult

logger = get_logger(__name__)


class RecordingService:
    """Everything the API layer needs to read and change recordings."""

    def __init__(
        self,
        db: Session,
        membership: MembershipProvider,
        settings: Settings | None = None,
    ):
        self.db = db
        self.membership = membership
        self.settings = settings or get_settings()
        self.visibility = VisibilityResolver(membership)
        self.permissions = PermissionEvaluator(membership)
        self.engine = QueryEngine(db, self.visibility, self.settings.query)
        self.guard = MutationGuard(db, self.engine, self.permissions)

    def query(
        self,
        user: Any,
        where: Predicate | Mapping[str, Any] | None = None,
        tagged_only: bool | None = None,
        offset: int | None = None,
        limit: int | None = None,
        order: OrderBy | None = None,
    ) -> QueryResult:
        return self.engine.query(user, where, tagged_only, offset, limit, order)

    def get_one(self, user: Any, id: int) -> Recording | None:
        return self.engine.get_one(user, id)

    def delete_one(self, user: Any, id: int) -> bool:
        return self.guard.delete_one(user, id)

    def update_one(self, user: Any, id: int, updates: Mapping[str, Any]) -> bool:
        return self.guard.update_one(user, id, updates)

    def get_user_permissions(self, recording: Recording, user: Any) -> Permissions:
        return self.permissions.get_user_permissions(recording, user)

    def can_get_raw(self, recording: Recording) -> bool:
        return lifecycle.can_get_raw(recording)

    def get_file_name(self, recording: Recording) -> str:
        return lifecycle.get_file_name(recording, self.settings.filename_timezone)

    def get_raw_file_name(self, recording: Recording) -> str:
        return lifecycle.get_raw_file_name(
            recording, self.settings.filename_timezone
        )

    def can_upload(self, user: Any, device: Device) -> bool:
        if device.id in self.membership.device_ids_for(user):
            return True
        return device.group_id in self.membership.group_ids_for(user)

    def create_from_input(
        self,
        user: Any,
        device: Device,
        payload: Mapping[str, Any],
        raw_file_key: str | None = None,
        raw_file_size: int | None = None,
    ) -> Recording | None:
        """Store a new upload made by ``user`` from ``device``.

        Only settable fields are accepted. Ownership comes from the device
        and the processing state starts at the first stage for the type.
        Returns None, storing nothing, when ``user`` is neither attached to
        the device nor a member of its group.
        """
        values = check_settable(payload)
        try:
            values = RecordingCreate.model_validate(values).model_dump(
                exclude_unset=True
            )
        except pydantic.ValidationError as e:
            raise ValidationError(str(e)) from e

        if not self.can_upload(user, device):
            logger.info(f"Upload from device {device.id} refused for {user!r}")
            return None

        recording = Recording(
            group_id=device.group_id,
            device_id=device.id,
            raw_file_key=raw_file_key,
            raw_file_size=raw_file_size,
            public=False,
            **values,
        )
        recording.processing_state = lifecycle.initial_state(recording.type)

        try:
            self.db.add(recording)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(recording)
        logger.info(
            f"Recording {recording.id} ingested from device {device.id} "
            f"(type={recording.type}, state={recording.processing_state})"
        )
        return recording
