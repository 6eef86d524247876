from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from flask import current_app

from labloan.errors import EquipmentNotFound, InvalidTransition, RequestNotFound
from labloan.models.loan_request import LoanRequest, PENDING, REJECTED
from labloan.models.notification import NEW_REQUEST
from labloan.repositories.equipment_repo import EquipmentRepo
from labloan.repositories.request_repo import RequestRepo
from labloan.utils.validation import parse_quantity
from labloan.services.notification_service import NotificationService, notification_context

# no reservation exists in these states, deleting is free
CANCELLABLE = (PENDING, REJECTED)


class RequestService:
    def __init__(self, requests: RequestRepo | None = None, equipment: EquipmentRepo | None = None,
                 notifier: NotificationService | None = None):
        self.requests = requests or RequestRepo()
        self.equipment = equipment or EquipmentRepo()
        self.notifier = notifier or NotificationService()

    def get(self, request_id):
        r = self.requests.get(request_id)
        if not r:
            raise RequestNotFound(request_id)
        return r

    def list_active(self, requester_id=None, status=None):
        return self.requests.list_active(requester_id=requester_id, status=status)

    def _build(self, equipment_id, requester_id, quantity=1, category_id=None, date_to_be_used=None,
               date_to_return=None, purpose=None) -> LoanRequest:
        quantity = parse_quantity(1 if quantity is None else quantity)

        if not requester_id:
            raise ValueError("requester_id is required")

        eq = self.equipment.get(equipment_id)
        if not eq or (category_id and eq.category_id != category_id):
            raise EquipmentNotFound(equipment_id)

        if date_to_be_used and date_to_return and date_to_return < date_to_be_used:
            raise ValueError("date_to_return cannot be before date_to_be_used")

        return LoanRequest(
            equipment_id=eq.id,
            category_id=eq.category_id,
            requester_id=str(requester_id),
            quantity=quantity,
            status=PENDING,
            purpose=purpose,
            requested_at=datetime.utcnow(),
            date_to_be_used=date_to_be_used,
            date_to_return=date_to_return,
        )

    def submit(self, equipment_id, requester_id, quantity=1, category_id=None, date_to_be_used=None,
               date_to_return=None, purpose=None):
        r = self._build(equipment_id, requester_id, quantity, category_id, date_to_be_used, date_to_return, purpose)
        self.requests.create(r)
        current_app.logger.info(f"[request] submitted request={r.id} equipment={r.equipment_id} qty={r.quantity}")

        self.notifier.dispatch([(NEW_REQUEST, notification_context(r))], result=r)
        return r

    def submit_batch(self, items: list, requester_id, date_to_be_used=None, date_to_return=None, purpose=None):
        """
        items: [{"equipment_id": .., "quantity": .., "category_id": ..}, ...]
        All rows are written in one commit and share a fresh batch id.
        """
        if not items:
            raise ValueError("items must not be empty")

        batch_id = uuid4().hex
        rows = []
        try:
            for item in items:
                if not isinstance(item, dict) or "equipment_id" not in item:
                    raise ValueError("equipment_id is required for every item")
                r = self._build(
                    item["equipment_id"],
                    requester_id,
                    item.get("quantity", 1),
                    item.get("category_id"),
                    date_to_be_used,
                    date_to_return,
                    purpose,
                )
                r.batch_id = batch_id
                r.batch_size = len(items)
                rows.append(self.requests.add(r))
            self.requests.commit()
        except Exception:
            self.requests.rollback()
            raise

        current_app.logger.info(f"[request] submitted batch={batch_id} size={len(rows)}")
        self.notifier.dispatch([(NEW_REQUEST, notification_context(r)) for r in rows], result=rows)
        return batch_id, rows

    def cancel(self, request_id):
        r = self.get(request_id)
        if r.status not in CANCELLABLE:
            raise InvalidTransition(r.status, "deleted", "only pending or rejected requests can be deleted")
        self.requests.delete(r)
        self.requests.commit()
        current_app.logger.info(f"[request] deleted request={request_id}")
