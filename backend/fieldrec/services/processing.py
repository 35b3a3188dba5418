import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from fieldrec.constants import PROCESSING_ATTRIBUTES
from fieldrec.core import lifecycle
from fieldrec.core.errors import InvalidState, JobMismatch
from fieldrec.core.logger import get_logger
from fieldrec.db.models import Recording
from fieldrec.schemas.recording import ProcessingJob, ProcessingResult

logger = get_logger(__name__)


class ProcessingService:
    """Hands recordings to the transcoding worker and takes results back."""

    def __init__(self, db: Session):
        self.db = db

    def set_processing_state(self, recording: Recording, state: str) -> Recording:
        lifecycle.check_state(recording.type, state)
        previous = recording.processing_state
        recording.processing_state = state
        logger.info(f"Recording {recording.id}: {previous} -> {state}")
        return recording

    def get_next_job(self, recording_type: str, state: str) -> ProcessingJob | None:
        """Claim the oldest ``recording_type`` recording waiting in ``state``.

        Args:
            recording_type: Pipeline to pull from, e.g. ``thermalRaw``.
            state: Stage the worker is about to run.
        Returns:
            ProcessingJob | None: The claimed job, or None if nothing is waiting.
        """
        if not lifecycle.states_for(recording_type):
            raise InvalidState(recording_type, state)
        lifecycle.check_state(recording_type, state)
        if lifecycle.is_terminal(recording_type, state):
            return None

        stmt = (
            select(Recording)
            .where(
                Recording.type == recording_type,
                Recording.processing_state == state,
                Recording.processing_start_time.is_(None),
            )
            .order_by(Recording.id)
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        try:
            recording = self.db.scalars(stmt).first()
            if recording is None:
                return None
            recording.job_key = uuid.uuid4().hex
            recording.processing_start_time = datetime.now(timezone.utc)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Recording {recording.id} claimed for {state} as {recording.job_key}"
        )
        return ProcessingJob.model_validate(
            {name: getattr(recording, name) for name in PROCESSING_ATTRIBUTES}
        )

    def finish_job(
        self,
        id: int,
        job_key: str,
        success: bool,
        result: ProcessingResult | Mapping[str, Any] | None = None,
    ) -> Recording:
        """Record the outcome of a job.

        On success the recording moves to the next state and takes the
        processed file fields from ``result``. On failure the claim is
        dropped so another worker can retry it.
        """
        recording = self.db.get(Recording, id)
        if recording is None or not job_key or recording.job_key != job_key:
            raise JobMismatch(f"Job {job_key!r} does not hold recording {id}")

        if result is not None and not isinstance(result, ProcessingResult):
            result = ProcessingResult.model_validate(result)

        try:
            if success:
                self.set_processing_state(
                    recording,
                    lifecycle.next_state(recording.type, recording.processing_state),
                )
                if result is not None:
                    for key, value in result.model_dump(exclude_unset=True).items():
                        setattr(recording, key, value)
            else:
                logger.warning(f"Job {job_key} failed for recording {id}")
            recording.job_key = None
            recording.processing_start_time = None
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return recording
