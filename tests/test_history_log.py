from datetime import datetime, timedelta

from labloan.models.history_entry import HistoryEntry, RELEASE, RETURN, REJECTION
from labloan.services.history_log import HistoryLog


def _entry(db, request_id, entry_type, timestamp, **kw):
    e = HistoryEntry(
        request_id=request_id,
        entry_type=entry_type,
        status=kw.pop("status", entry_type.title()),
        timestamp=timestamp,
        quantity=kw.pop("quantity", 1),
        **kw,
    )
    db.session.add(e)
    db.session.commit()
    return e


def test_list_entries_newest_first(db):
    now = datetime.utcnow()
    _entry(db, 1, RELEASE, now - timedelta(days=2))
    _entry(db, 1, RETURN, now)
    _entry(db, 2, REJECTION, now - timedelta(days=1))

    rows = HistoryLog().list_entries()

    assert [r.entry_type for r in rows] == [RETURN, REJECTION, RELEASE]
    assert len(HistoryLog().list_entries(limit=2)) == 2


def test_retract_rejection_only_touches_that_request(db):
    now = datetime.utcnow()
    _entry(db, 1, REJECTION, now)
    _entry(db, 1, REJECTION, now)
    _entry(db, 1, RELEASE, now)
    _entry(db, 2, REJECTION, now)
    log = HistoryLog()

    removed = log.retract_rejection(1)
    db.session.commit()

    assert removed == 2
    assert not log.has_entry(1, REJECTION)
    assert log.has_entry(1, RELEASE)
    assert log.has_entry(2, REJECTION)


def test_retract_rejection_with_nothing_to_remove(db):
    assert HistoryLog().retract_rejection(99) == 0


def test_entries_for_request(db):
    now = datetime.utcnow()
    _entry(db, 5, RELEASE, now - timedelta(hours=1))
    _entry(db, 5, RETURN, now)
    _entry(db, 6, RETURN, now)

    rows = HistoryLog().entries_for(5)

    assert [r.entry_type for r in rows] == [RETURN, RELEASE]


class TestLateReturns:
    def test_summary(self, db):
        now = datetime.utcnow()
        _entry(db, 1, RETURN, now, return_date=now, date_to_return=now - timedelta(days=2),
               equipment_name="Microscope", category_id="optics", requester_id="stu-1",
               return_details={"delay_reason": "late", "notes": "forgot"})
        _entry(db, 2, RETURN, now, return_date=now, date_to_return=now - timedelta(days=3, hours=12),
               equipment_name="Microscope", category_id="optics", requester_id="stu-2")
        # on time
        _entry(db, 3, RETURN, now, return_date=now, date_to_return=now + timedelta(days=1),
               equipment_name="Scale")
        # no due date recorded
        _entry(db, 4, RETURN, now, return_date=now, equipment_name="Scale")
        # not a return
        _entry(db, 5, RELEASE, now, date_to_return=now - timedelta(days=9))

        summary = HistoryLog().late_returns()

        assert summary["total_late_returns"] == 2
        assert sorted(x["days_late"] for x in summary["items"]) == [2, 4]
        assert summary["average_days_late"] == 3
        assert summary["late_by_equipment"] == {"Microscope": 2}
        assert summary["late_by_category"] == {"optics": 2}
        assert summary["late_by_borrower"] == {"stu-1": 1, "stu-2": 1}
        first = next(x for x in summary["items"] if x["request_id"] == 1)
        assert first["delay_reason"] == "late"
        assert first["notes"] == "forgot"

    def test_since_filters_old_entries(self, db):
        now = datetime.utcnow()
        old = now - timedelta(days=60)
        _entry(db, 1, RETURN, old, return_date=old, date_to_return=old - timedelta(days=1))

        assert HistoryLog().late_returns(since=now - timedelta(days=30))["total_late_returns"] == 0
        assert HistoryLog().late_returns()["total_late_returns"] == 1

    def test_empty(self, db):
        summary = HistoryLog().late_returns()
        assert summary["total_late_returns"] == 0
        assert summary["average_days_late"] == 0
