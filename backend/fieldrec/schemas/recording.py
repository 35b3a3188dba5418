from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional, Any
from datetime import datetime, timezone


class Permissions(BaseModel):
    can_view: bool = False
    can_delete: bool = False
    can_tag: bool = False
    can_update: bool = False


class DeviceSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    devicename: str


class GroupSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    groupname: str


class Tag(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    what: Optional[str] = None
    detail: Optional[str] = None
    confidence: Optional[float] = None


class RecordingBase(BaseModel):
    type: Optional[str] = None
    duration: Optional[int] = None
    recording_date_time: Optional[datetime] = None
    location: Optional[list[float]] = None
    version: Optional[str] = None
    battery_level: Optional[float] = None
    battery_charging: Optional[str] = None
    airplane_mode_on: Optional[bool] = None
    additional_metadata: Optional[dict[str, Any]] = None
    comment: Optional[str] = None


class Recording(RecordingBase):
    """A row of the user-facing listing."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    group_id: Optional[int] = None
    device_id: Optional[int] = None
    raw_file_size: Optional[int] = None
    file_key: Optional[str] = None
    file_size: Optional[int] = None
    file_mime_type: Optional[str] = None
    processing_state: Optional[str] = None
    public: bool = False
    device: Optional[DeviceSummary] = None
    group: Optional[GroupSummary] = None
    tags: list[Tag] = []


class RecordingDetail(Recording):
    raw_file_key: Optional[str] = None


class RecordingPage(BaseModel):
    rows: list[Recording]
    count: int


class ProcessingJob(BaseModel):
    """What the transcoding worker receives for a job."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    raw_file_key: Optional[str] = None
    file_key: Optional[str] = None
    processing_meta: Optional[dict[str, Any]] = None
    processing_state: Optional[str] = None
    job_key: Optional[str] = None
    type: Optional[str] = None


class ProcessingResult(BaseModel):
    file_key: Optional[str] = None
    file_size: Optional[int] = None
    file_mime_type: Optional[str] = None
    processing_meta: Optional[dict[str, Any]] = None
    passed_filter: Optional[bool] = None


class RecordingCreate(RecordingBase):
    processing_meta: Optional[dict[str, Any]] = None

    @field_validator("recording_date_time")
    @classmethod
    def as_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Stored timestamps are naive UTC
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
