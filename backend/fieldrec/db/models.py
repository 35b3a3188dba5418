from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    event,
)
from sqlalchemy.orm import relationship, validates
from .base import Base
from fieldrec.core.lifecycle import check_state
from fieldrec.core.validation import validate_location
from datetime import datetime, timezone


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, index=True)
    groupname = Column(String, unique=True, nullable=False)

    devices = relationship("Device", back_populates="group")
    recordings = relationship("Recording", back_populates="group")


class Device(Base):
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, index=True)
    devicename = Column(String, nullable=False)
    group_id = Column(Integer, ForeignKey("groups.id"), index=True)

    group = relationship("Group", back_populates="devices")
    recordings = relationship("Recording", back_populates="device")


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, index=True)
    recording_id = Column(
        Integer, ForeignKey("recordings.id", ondelete="CASCADE"), index=True
    )
    what = Column(String)
    detail = Column(String)
    confidence = Column(Float)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    recording = relationship("Recording", back_populates="tags")


class Recording(Base):
    __tablename__ = "recordings"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), index=True)
    device_id = Column(Integer, ForeignKey("devices.id"), index=True)

    # Raw upload
    raw_file_key = Column(String)
    raw_file_size = Column(Integer)

    # Set by and for the transcoding worker
    file_key = Column(String)
    file_size = Column(Integer)
    file_mime_type = Column(String)
    processing_start_time = Column(DateTime)
    processing_meta = Column(JSON)
    processing_state = Column(String, index=True)
    passed_filter = Column(Boolean)
    job_key = Column(String)

    # Recording metadata
    type = Column(String, index=True)
    duration = Column(Integer)
    recording_date_time = Column(DateTime, index=True)
    location = Column(JSON)  # [lat, lon]
    version = Column(String)
    battery_level = Column(Float)
    battery_charging = Column(String)
    airplane_mode_on = Column(Boolean)
    additional_metadata = Column(JSON)
    comment = Column(String)

    public = Column(Boolean, default=False, nullable=False, index=True)

    group = relationship("Group", back_populates="recordings")
    device = relationship("Device", back_populates="recordings")
    tags = relationship(
        "Tag",
        back_populates="recording",
        cascade="all, delete-orphan",
        order_by="Tag.id",
    )

    @validates("location")
    def _check_location(self, key, value):
        return validate_location(value)

    @validates("type")
    def _check_type(self, key, value):
        if self.processing_state is not None:
            check_state(value, self.processing_state)
        return value

    @validates("processing_state")
    def _check_processing_state(self, key, value):
        # A state given before the type is checked when the type arrives
        if self.type is None and value is not None:
            return value
        return check_state(self.type, value)


@event.listens_for(Recording, "before_insert")
@event.listens_for(Recording, "before_update")
def _check_pipeline(mapper, connection, target):
    check_state(target.type, target.processing_state)
