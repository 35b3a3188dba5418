import pytest
from datetime import datetime
from sqlalchemy.exc import InvalidRequestError

from fieldrec.core.config import QueryDefaults, Settings
from fieldrec.core.errors import InvalidField
from fieldrec.core.predicates import Compare, Eq
from fieldrec.schemas.recording import Recording as RecordingSchema
from fieldrec.schemas.recording import RecordingDetail, RecordingPage
from fieldrec.services.recordings import RecordingService

USER = "user-1"
OUTSIDER = "user-2"


@pytest.fixture
def mixed(world, make_recording):
    """One recording per visibility route plus one the user cannot see."""
    return {
        "own": make_recording(world["d1"], tags=1),
        "device": make_recording(world["d2"]),
        "public": make_recording(world["d3"], public=True, tags=2),
        "hidden": make_recording(world["d3"]),
    }


def ids(result):
    return {r.id for r in result.rows}


def test_visibility_routes(service, mixed):
    result = service.query(USER)
    assert ids(result) == {
        mixed["own"].id,
        mixed["device"].id,
        mixed["public"].id,
    }
    assert result.count == 3


def test_outsider_sees_only_public(service, mixed):
    result = service.query(OUTSIDER)
    assert ids(result) == {mixed["public"].id}
    assert result.count == 1


def test_public_always_visible(service, test_db, mixed):
    mixed["hidden"].public = True
    test_db.commit()
    assert mixed["hidden"].id in ids(service.query(OUTSIDER))


def test_tagged_filters_partition_visible_set(service, mixed):
    everything = ids(service.query(USER))
    tagged = ids(service.query(USER, tagged_only=True))
    untagged = ids(service.query(USER, tagged_only=False))
    assert tagged == {mixed["own"].id, mixed["public"].id}
    assert untagged == {mixed["device"].id}
    assert tagged & untagged == set()
    assert tagged | untagged == everything


def test_tagged_count_not_inflated_by_multiple_tags(service, mixed):
    result = service.query(USER, tagged_only=True)
    assert result.count == 2
    assert len(result.rows) == 2


def test_caller_filter_is_anded(service, mixed):
    result = service.query(USER, where={"device_id": mixed["hidden"].device_id})
    assert ids(result) == {mixed["public"].id}

    result = service.query(USER, where=Eq("public", True))
    assert ids(result) == {mixed["public"].id}


def test_caller_filter_cannot_widen_visibility(service, mixed):
    result = service.query(OUTSIDER, where={"id": mixed["hidden"].id})
    assert result.rows == []
    assert result.count == 0


def test_unknown_filter_field(service, mixed):
    with pytest.raises(InvalidField):
        service.query(USER, where={"owner": 1})


def test_default_order(service, world, make_recording):
    d1 = world["d1"]
    a = make_recording(d1, recording_date_time=datetime(2023, 1, 1))
    b = make_recording(d1, recording_date_time=datetime(2023, 6, 1))
    c = make_recording(d1, recording_date_time=None)
    d = make_recording(d1, recording_date_time=datetime(2023, 6, 1))
    e = make_recording(d1, recording_date_time=None)

    result = service.query(USER)
    assert [r.id for r in result.rows] == [d.id, b.id, a.id, e.id, c.id]
    # Same input, same page
    assert [r.id for r in service.query(USER).rows] == [r.id for r in result.rows]


def test_pagination_and_count(service, world, make_recording):
    recs = [
        make_recording(world["d1"], recording_date_time=datetime(2023, 1, day))
        for day in range(1, 8)
    ]
    newest_first = [r.id for r in reversed(recs)]

    page1 = service.query(USER, offset=0, limit=3)
    page2 = service.query(USER, offset=3, limit=3)
    page3 = service.query(USER, offset=6, limit=3)
    assert [r.id for r in page1.rows + page2.rows + page3.rows] == newest_first
    assert page1.count == page2.count == page3.count == 7


def test_explicit_order(service, world, make_recording):
    short = make_recording(world["d1"], duration=5)
    long = make_recording(world["d1"], duration=50)
    result = service.query(USER, order=[("duration", "DESC")])
    assert [r.id for r in result.rows] == [long.id, short.id]


def test_order_default_from_settings(test_db, membership, world, make_recording):
    short = make_recording(world["d1"], duration=5)
    long = make_recording(world["d1"], duration=50)
    settings = Settings(query=QueryDefaults(order=[("duration", "ASC")]))
    service = RecordingService(test_db, membership, settings)
    assert [r.id for r in service.query(USER).rows] == [short.id, long.id]


def test_limit_capped(test_db, membership, world, make_recording):
    for _ in range(4):
        make_recording(world["d1"])
    settings = Settings(query=QueryDefaults(limit=2, max_limit=3))
    service = RecordingService(test_db, membership, settings)
    assert len(service.query(USER).rows) == 2
    assert len(service.query(USER, limit=100).rows) == 3
    assert service.query(USER, limit=100).count == 4


def test_compare_filter(service, world, make_recording):
    make_recording(world["d1"], duration=5)
    long = make_recording(world["d1"], duration=50)
    result = service.query(USER, where=Compare("duration", "ge", 10))
    assert ids(result) == {long.id}


def test_listing_attaches_associations(service, mixed):
    result = service.query(USER, tagged_only=True)
    rows = {r.id: r for r in result.rows}
    own = rows[mixed["own"].id]
    assert own.group.groupname == "g1"
    assert own.device.devicename == "d1"
    assert [t.what for t in rows[mixed["public"].id].tags] == ["tag0", "tag1"]


def test_listing_schema_hides_raw_file_key(service, mixed):
    result = service.query(USER)
    page = RecordingPage(
        rows=[RecordingSchema.model_validate(r) for r in result.rows],
        count=result.count,
    )
    dumped = page.model_dump()
    assert dumped["count"] == 3
    assert all("raw_file_key" not in row for row in dumped["rows"])


def test_get_one_includes_raw_file_key(service, mixed):
    rec = service.get_one(USER, mixed["device"].id)
    detail = RecordingDetail.model_validate(rec)
    assert detail.raw_file_key == "raw/d2"
    assert detail.device.devicename == "d2"


def test_get_one_hidden_or_missing(service, mixed):
    assert service.get_one(USER, mixed["hidden"].id) is None
    assert service.get_one(USER, 999999) is None


def test_scenario_visible_but_not_deletable(service, world, make_recording):
    r1 = make_recording(world["d1"], public=False)
    r2 = make_recording(world["d3"], public=True)
    result = service.query(USER, {}, None, 0, 10, None)
    assert {r1.id, r2.id} <= ids(result)
    assert service.get_user_permissions(r1, USER).can_delete is True
    assert service.get_user_permissions(r2, USER).can_delete is False


def test_listing_rows_do_not_load_raw_file_key(service, test_db, mixed):
    test_db.expunge_all()
    rows = service.query(USER).rows
    assert rows
    for row in rows:
        assert "raw_file_key" not in row.__dict__
        with pytest.raises(InvalidRequestError):
            row.raw_file_key


def test_get_one_after_listing_has_raw_file_key(service, test_db, mixed):
    test_db.expunge_all()
    service.query(USER)
    assert service.get_one(USER, mixed["own"].id).raw_file_key == "raw/d1"
