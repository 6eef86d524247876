from datetime import datetime, timedelta

import pytest

from labloan.errors import EquipmentNotFound, InvalidQuantity, InvalidTransition, PartialWriteFailure, RequestNotFound
from labloan.models.loan_request import LoanRequest, APPROVED, PENDING, REJECTED
from labloan.models.notification import Notification, NEW_REQUEST
from labloan.services.equipment_service import EquipmentService
from labloan.services.notification_service import NotificationService
from labloan.services.request_service import RequestService


class TestSubmit:
    def test_creates_pending_request_and_notifies_lab(self, make_equipment, recording_notifier):
        eq = make_equipment(total=3)
        r = RequestService(notifier=recording_notifier).submit(eq.id, "stu-1", quantity=2)

        assert r.id is not None
        assert r.status == PENDING
        assert r.category_id == eq.category_id
        assert [t for t, _ in recording_notifier.sent] == [NEW_REQUEST]
        n = Notification.query.one()
        assert n.recipient_user_id == "mgr-1"
        assert "Microscope" in n.message

    def test_submit_does_not_reserve(self, make_equipment, borrowed):
        eq = make_equipment(total=3)
        RequestService().submit(eq.id, "stu-1", quantity=3)
        assert borrowed(eq.id) == 0

    @pytest.mark.parametrize("qty", [0, -1, "abc", True, 2.9, "2.5", 0.5, [2]])
    def test_rejects_bad_quantity(self, make_equipment, qty):
        eq = make_equipment(total=3)
        with pytest.raises(InvalidQuantity):
            RequestService().submit(eq.id, "stu-1", quantity=qty)
        assert LoanRequest.query.count() == 0

    def test_fractional_quantity_is_not_truncated(self, make_equipment):
        eq = make_equipment(total=5)
        with pytest.raises(InvalidQuantity):
            RequestService().submit(eq.id, "stu-1", quantity=2.9)
        assert LoanRequest.query.count() == 0

    @pytest.mark.parametrize("qty,stored", [(2.0, 2), ("3", 3), (" 1 ", 1), (None, 1)])
    def test_accepts_whole_numbers(self, make_equipment, qty, stored):
        eq = make_equipment(total=5)
        r = RequestService().submit(eq.id, "stu-1", quantity=qty)
        assert r.quantity == stored

    def test_unknown_equipment(self, db):
        with pytest.raises(EquipmentNotFound):
            RequestService().submit(404, "stu-1")

    def test_category_mismatch(self, make_equipment):
        eq = make_equipment(total=3, category_id="optics")
        with pytest.raises(EquipmentNotFound):
            RequestService().submit(eq.id, "stu-1", category_id="glassware")

    def test_return_date_before_use_date(self, make_equipment):
        eq = make_equipment(total=3)
        start = datetime.utcnow() + timedelta(days=2)
        with pytest.raises(ValueError):
            RequestService().submit(eq.id, "stu-1", date_to_be_used=start, date_to_return=start - timedelta(days=1))


class TestSubmitBatch:
    def test_members_share_batch_id(self, make_equipment):
        a = make_equipment(total=3, name="Microscope")
        b = make_equipment(total=3, name="Beaker", category_id="glassware")

        batch_id, rows = RequestService().submit_batch(
            [{"equipment_id": a.id, "quantity": 1}, {"equipment_id": b.id, "quantity": 2}],
            "stu-1",
        )

        assert len(rows) == 2
        assert {r.batch_id for r in rows} == {batch_id}
        assert {r.batch_size for r in rows} == {2}
        assert Notification.query.filter_by(type=NEW_REQUEST).count() == 2

    def test_one_bad_item_writes_nothing(self, make_equipment):
        a = make_equipment(total=3)
        with pytest.raises(InvalidQuantity):
            RequestService().submit_batch(
                [{"equipment_id": a.id, "quantity": 1}, {"equipment_id": a.id, "quantity": 0}],
                "stu-1",
            )
        assert LoanRequest.query.count() == 0

    def test_empty(self, db):
        with pytest.raises(ValueError):
            RequestService().submit_batch([], "stu-1")


class TestCancel:
    @pytest.mark.parametrize("status", [PENDING, REJECTED])
    def test_deletes(self, make_equipment, make_request, db, status):
        eq = make_equipment(total=3)
        r = make_request(eq, status=status)
        rid = r.id

        RequestService().cancel(rid)

        assert db.session.get(LoanRequest, rid) is None

    def test_approved_cannot_be_deleted(self, make_equipment, make_request):
        eq = make_equipment(total=3)
        r = make_request(eq, status=APPROVED)
        with pytest.raises(InvalidTransition):
            RequestService().cancel(r.id)

    def test_missing(self, db):
        with pytest.raises(RequestNotFound):
            RequestService().cancel(12345)


class TestEquipmentService:
    def test_create_starts_with_nothing_borrowed(self, lab):
        eq = EquipmentService.create_equipment(
            {"name": "Centrifuge", "category_id": "lab", "lab_id": lab.lab_id, "quantity": 4, "quantity_borrowed": 3}
        )
        assert eq.quantity_borrowed == 0
        assert eq.available == 4

    def test_quantity_cannot_drop_below_borrowed(self, make_equipment, db):
        eq = make_equipment(total=5)
        eq.quantity_borrowed = 3
        db.session.commit()

        with pytest.raises(InvalidQuantity):
            EquipmentService.update_equipment(eq.id, {"quantity": 2})

        updated = EquipmentService.update_equipment(eq.id, {"quantity": 3, "name": "Scope"})
        assert updated.quantity == 3
        assert updated.name == "Scope"

    def test_get_missing(self, db):
        with pytest.raises(EquipmentNotFound):
            EquipmentService.get_equipment(999)

    def test_fractional_total_is_refused(self, make_equipment):
        eq = make_equipment(total=5)
        with pytest.raises(InvalidQuantity):
            EquipmentService.update_equipment(eq.id, {"quantity": 4.5})
        assert EquipmentService.get_equipment(eq.id).quantity == 5


class FailFirstNotifier(NotificationService):
    def __init__(self):
        super().__init__()
        self.calls = 0

    def notify(self, notif_type, context):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("notification store unavailable")
        return super().notify(notif_type, context)


def test_batch_notifications_continue_after_a_failure(make_equipment):
    eq = make_equipment(total=5)
    notifier = FailFirstNotifier()

    with pytest.raises(PartialWriteFailure) as exc:
        RequestService(notifier=notifier).submit_batch([{"equipment_id": eq.id}] * 3, "stu-1")

    assert notifier.calls == 3
    assert len(exc.value.failures) == 1
    assert "1 of 3" in str(exc.value)
    # requests are committed, the other two notifications were written
    assert LoanRequest.query.count() == 3
    assert Notification.query.filter_by(type=NEW_REQUEST).count() == 2
