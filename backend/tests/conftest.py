import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fieldrec.core.config import Settings
from fieldrec.core.membership import StaticMembershipProvider
from fieldrec.db.base import Base
from fieldrec.db.models import Device, Group, Recording, Tag
from fieldrec.services.recordings import RecordingService

# 1. In-Memory Database Setup
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

USER = "user-1"
OUTSIDER = "user-2"


@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)

    # Create session
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        # Drop tables after test
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def world(test_db):
    """Two groups with one device each.

    USER belongs to g1 and is attached to d2 (a device of g2) directly.
    OUTSIDER belongs to nothing.
    """
    g1 = Group(groupname="g1")
    g2 = Group(groupname="g2")
    test_db.add_all([g1, g2])
    test_db.flush()
    d1 = Device(devicename="d1", group_id=g1.id)
    d2 = Device(devicename="d2", group_id=g2.id)
    d3 = Device(devicename="d3", group_id=g2.id)
    test_db.add_all([d1, d2, d3])
    test_db.commit()
    return {"g1": g1, "g2": g2, "d1": d1, "d2": d2, "d3": d3}


@pytest.fixture
def membership(world):
    return StaticMembershipProvider(
        groups={USER: [world["g1"].id]},
        devices={USER: [world["d2"].id]},
    )


@pytest.fixture
def service(test_db, membership, settings):
    return RecordingService(test_db, membership, settings)


@pytest.fixture
def make_recording(test_db):
    def _make(device, tags=0, **fields):
        fields.setdefault("type", "thermalRaw")
        fields.setdefault("processing_state", "toMp4")
        fields.setdefault("raw_file_key", f"raw/{device.devicename}")
        rec = Recording(group_id=device.group_id, device_id=device.id, **fields)
        test_db.add(rec)
        test_db.flush()
        for i in range(tags):
            test_db.add(Tag(recording_id=rec.id, what=f"tag{i}"))
        test_db.commit()
        return rec

    return _make
