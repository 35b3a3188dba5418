"""Per-type processing pipelines and the file names derived from them."""

from datetime import datetime, timezone

import pytz

from fieldrec.constants import (
    MP4_MIME_TYPE,
    PROCESSING_STATES,
    THERMAL_RAW,
)
from fieldrec.core.config import get_settings
from fieldrec.core.errors import InvalidState

FILENAME_FORMAT = "%Y%m%d-%H%M%S"

RAW_EXTENSIONS = {THERMAL_RAW: ".cptv"}
PROCESSED_EXTENSIONS = {MP4_MIME_TYPE: ".mp4"}


def states_for(recording_type: str | None) -> tuple:
    """Ordered states for ``recording_type``; empty for unmanaged types."""
    return PROCESSING_STATES.get(recording_type, ())


def initial_state(recording_type: str | None) -> str | None:
    states = states_for(recording_type)
    return states[0] if states else None


def is_terminal(recording_type: str | None, state: str | None) -> bool:
    states = states_for(recording_type)
    return bool(states) and state == states[-1]


def check_state(recording_type: str | None, state: str | None) -> str | None:
    states = states_for(recording_type)
    if not states:
        # Unmanaged types never carry a pipeline state.
        if state is None:
            return None
        raise InvalidState(recording_type, state)
    if state not in states:
        raise InvalidState(recording_type, state)
    return state


def next_state(recording_type: str | None, state: str | None) -> str:
    check_state(recording_type, state)
    states = states_for(recording_type)
    if not states or state == states[-1]:
        raise InvalidState(recording_type, state)
    return states[states.index(state) + 1]


def can_get_raw(recording) -> bool:
    return recording.type == THERMAL_RAW


def _timestamp(when: datetime | None, tz_name: str | None = None) -> str:
    tz = pytz.timezone(tz_name or get_settings().filename_timezone)
    if when is None:
        return datetime.now(tz).strftime(FILENAME_FORMAT)
    if when.tzinfo is None:
        # Stored timestamps are naive UTC
        when = when.replace(tzinfo=timezone.utc)
    return when.astimezone(tz).strftime(FILENAME_FORMAT)


def get_file_name(recording, tz_name: str | None = None) -> str:
    """Download name for the recording's current artifact.

    Processed files are named after their MIME type; until processing is
    done the raw artifact's extension is used.
    """
    ext = PROCESSED_EXTENSIONS.get(recording.file_mime_type)
    if ext is None and not recording.file_key:
        ext = RAW_EXTENSIONS.get(recording.type)
    return _timestamp(recording.recording_date_time, tz_name) + (ext or "")


def get_raw_file_name(recording, tz_name: str | None = None) -> str:
    ext = RAW_EXTENSIONS.get(recording.type, "")
    return _timestamp(recording.recording_date_time, tz_name) + ext
