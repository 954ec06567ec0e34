from datetime import date, datetime, timedelta, timezone

import pytest

from occupancy.core.errors import NotFoundError, PersistenceError
from occupancy.core.history import ACTION_DESCRIPTIONS, HistoryRecorder, describe_action
from occupancy.models.enums import HistoryActionType, UnitStatus
from occupancy.models.unit_history import UnitHistoryEntry

A = HistoryActionType


@pytest.fixture
def recorder(db):
    return HistoryRecorder(db)


def test_every_action_type_has_a_description():
    assert set(ACTION_DESCRIPTIONS) == set(HistoryActionType)


def test_describe_action():
    assert (
        describe_action(A.STATUS_CHANGED, old_status="vacant", new_status="occupied")
        == "Unit status changed from vacant to occupied"
    )
    assert describe_action("resident_added", resident="Joana") == "Resident Joana added to unit"


def test_record_stores_only_changed_fields(db, recorder, vacant_unit, manager):
    entry = recorder.record(
        vacant_unit.id,
        None,
        A.STATUS_CHANGED,
        "status changed",
        {"status": UnitStatus.VACANT, "number": "101"},
        {"status": UnitStatus.OCCUPIED, "number": "101"},
        changed_by_user_id=manager.id,
        metadata={"reason": "move_in"},
    )
    db.commit()

    stored = db.get(UnitHistoryEntry, entry.id)
    assert stored.old_values == {"status": "vacant"}
    assert stored.new_values == {"status": "occupied"}
    assert stored.extra == {"reason": "move_in"}
    assert stored.changed_by_user_id == manager.id
    assert stored.created_at is not None


def test_record_without_values(db, recorder, vacant_unit):
    entry = recorder.record(vacant_unit.id, None, A.MAINTENANCE_REQUEST_CREATED, "leak")
    assert entry.old_values is None
    assert entry.new_values is None
    assert entry.extra is None


def test_record_does_not_commit(db, recorder, vacant_unit):
    recorder.record(vacant_unit.id, None, A.GENERAL_UPDATE, "x")
    db.rollback()
    assert db.query(UnitHistoryEntry).count() == 0


def test_storage_fault_becomes_persistence_error(db, recorder):
    with pytest.raises(PersistenceError) as exc:
        recorder.record(12345, None, A.GENERAL_UPDATE, "no such unit")
    assert exc.value.context["unit_id"] == 12345
    db.rollback()


def test_list_history_oldest_first_and_filters(db, recorder, make_unit):
    unit, other = make_unit(), make_unit()
    first = recorder.record(unit.id, None, A.GENERAL_UPDATE, "one")
    second = recorder.record(unit.id, None, A.FEE_CHANGED, "two")
    third = recorder.record(unit.id, None, A.GENERAL_UPDATE, "three")
    recorder.record(other.id, None, A.GENERAL_UPDATE, "elsewhere")
    db.commit()

    assert recorder.list_history(unit.id) == [first, second, third]
    assert recorder.list_history(unit.id, action_type=A.GENERAL_UPDATE) == [first, third]
    assert recorder.list_history(unit.id, action_type="fee_changed") == [second]
    assert recorder.list_history(unit.id, limit=2, offset=1) == [second, third]
    # Same query, same answer
    assert recorder.list_history(unit.id) == recorder.list_history(unit.id)


def test_list_history_by_resident(db, recorder, vacant_unit, coordinator, resident_data):
    joana = coordinator.move_in_resident(vacant_unit.id, resident_data(name="Joana"))
    coordinator.move_in_resident(vacant_unit.id, resident_data(name="Pedro"))

    entries = recorder.list_history(vacant_unit.id, resident_id=joana.id)
    assert [e.action_type for e in entries] == [A.RESIDENT_ADDED, A.STATUS_CHANGED]


def test_list_history_date_range(db, recorder, vacant_unit):
    entry = recorder.record(vacant_unit.id, None, A.GENERAL_UPDATE, "now")
    db.commit()
    today = datetime.now(timezone.utc).date()

    assert recorder.list_history(vacant_unit.id, start=today, end=today) == [entry]
    assert recorder.list_history(vacant_unit.id, start=today + timedelta(days=1)) == []
    assert recorder.list_history(vacant_unit.id, end=today - timedelta(days=1)) == []
    assert recorder.list_history(
        vacant_unit.id,
        start=datetime.now(timezone.utc) - timedelta(hours=1),
        end=datetime.now(timezone.utc) + timedelta(hours=1),
    ) == [entry]


def test_get_entry(db, recorder, vacant_unit):
    entry = recorder.record(vacant_unit.id, None, A.GENERAL_UPDATE, "x")
    assert recorder.get_entry(entry.id) is entry
    with pytest.raises(NotFoundError):
        recorder.get_entry(entry.id + 100)


def test_history_stats(db, recorder, vacant_unit):
    for _ in range(3):
        recorder.record(vacant_unit.id, None, A.GENERAL_UPDATE, "update")
    for _ in range(4):
        recorder.record(vacant_unit.id, None, A.MAINTENANCE_REQUEST_CREATED, "ticket")
    db.commit()

    stats = recorder.history_stats(vacant_unit.id)
    assert stats["total_entries"] == 7
    assert stats["action_counts"] == {A.GENERAL_UPDATE: 3, A.MAINTENANCE_REQUEST_CREATED: 4}
    recent = stats["recent_activity"]
    assert len(recent) == 5
    assert recent[0].id > recent[-1].id


def test_history_stats_empty_range(db, recorder, vacant_unit):
    recorder.record(vacant_unit.id, None, A.GENERAL_UPDATE, "update")
    db.commit()
    stats = recorder.history_stats(vacant_unit.id, end=date(2000, 1, 1))
    assert stats == {"total_entries": 0, "action_counts": {}, "recent_activity": []}
