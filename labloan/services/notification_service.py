from __future__ import annotations

from datetime import datetime

from flask import current_app

from labloan.errors import PartialWriteFailure
from labloan.extensions import db
from labloan.models.notification import (
    Notification,
    NEW_REQUEST,
    REQUEST_APPROVED,
    REQUEST_REJECTED,
    EQUIPMENT_RETURNED,
    EQUIPMENT_OVERDUE,
)
from labloan.repositories.notification_repo import NotificationRepo


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


def notification_context(loan_request, **extra) -> dict:
    """
    Plain-dict snapshot of a request for notify(). Taken before commit, since
    a returned request row is gone afterwards.
    """
    equipment = loan_request.equipment
    lab = equipment.laboratory if equipment else None
    ctx = {
        "request_id": loan_request.id,
        "equipment_id": loan_request.equipment_id,
        "equipment_name": loan_request.item_name or "Unknown item",
        "borrower": loan_request.requester_id or "Unknown Student",
        "lab_id": equipment.lab_id if equipment else None,
        "lab_name": lab.lab_name if lab else None,
        "manager_user_id": lab.manager_user_id if lab else None,
        "requested_at": _iso(loan_request.requested_at),
        "date_to_be_used": _iso(loan_request.date_to_be_used),
        "date_to_return": _iso(loan_request.date_to_return),
    }
    ctx.update(extra)
    return ctx


class NotificationService:
    """
    ``notify(type, context)``: writes one row to ``notifications`` for the lab
    manager. Delivery and read tracking live elsewhere.
    """

    def __init__(self, repo: NotificationRepo | None = None):
        self.repo = repo or NotificationRepo()

    @staticmethod
    def _compose(notif_type: str, ctx: dict):
        item = ctx.get("equipment_name")
        borrower = ctx.get("borrower")
        actor = ctx.get("actor") or "Admin"
        now = datetime.utcnow().isoformat()
        meta = {"requestId": ctx.get("request_id"), "studentName": borrower, "equipmentName": item}

        if notif_type == NEW_REQUEST:
            title = "New Equipment Request"
            message = (f'Student {borrower} has requested to borrow "{item}" from {ctx.get("lab_name")}. '
                       f"Please review the request.")
            meta["requestDate"] = ctx.get("requested_at") or ctx.get("date_to_be_used")
        elif notif_type == REQUEST_APPROVED:
            title = "Equipment Request Approved"
            message = (f'The request for "{item}" by {borrower} has been approved by {actor}. '
                       f"Please prepare the equipment for release.")
            meta.update({"approvedBy": actor, "approvedAt": now, "expectedReturnDate": ctx.get("date_to_return")})
        elif notif_type == REQUEST_REJECTED:
            title = "Equipment Request Rejected"
            message = f'The request for "{item}" by {borrower} has been rejected by {actor}.'
            meta.update({"rejectedBy": actor, "rejectedAt": now})
        elif notif_type == EQUIPMENT_RETURNED:
            title = "Equipment Returned"
            message = f'"{item}" has been returned by {borrower}. Please check the equipment condition.'
            meta.update({"returnedAt": now, "returnDetails": ctx.get("return_details")})
        elif notif_type == EQUIPMENT_OVERDUE:
            days = int(ctx.get("days_overdue") or 0)
            due = (ctx.get("date_to_return") or "")[:10]
            title = "Equipment Overdue"
            message = (f'"{item}" borrowed by {borrower} is {days} day{"s" if days > 1 else ""} overdue. '
                       f"Expected return date was {due}.")
            meta.update({"expectedReturnDate": ctx.get("date_to_return"), "daysOverdue": days, "overdueSince": now})
        else:
            raise ValueError(f"Unknown notification type: {notif_type}")

        meta["createdAt"] = now
        return title, message, meta

    def notify(self, notif_type: str, context: dict) -> Notification | None:
        title, message, meta = self._compose(notif_type, context)

        if not context.get("lab_id") or not context.get("lab_name"):
            current_app.logger.info(
                f"[notify] No lab information for request={context.get('request_id')}, {notif_type} skipped"
            )
            return None

        row = Notification(
            type=notif_type,
            title=title,
            message=message,
            lab_id=context["lab_id"],
            lab_name=context["lab_name"],
            recipient_user_id=context.get("manager_user_id"),
            request_id=context.get("request_id"),
            meta=meta,
        )
        self.repo.log(row)
        current_app.logger.info(f"[notify] {notif_type} request={context.get('request_id')} -> {row.recipient_user_id}")
        return row

    def dispatch(self, events, result=None):
        """
        Sends (type, context) pairs collected by an already committed change.
        Every pair is attempted; failures cannot undo that change and are
        reported together as one PartialWriteFailure.
        """
        events = list(events)
        failures = []
        for notif_type, context in events:
            try:
                self.notify(notif_type, context)
            except Exception as e:
                db.session.rollback()
                current_app.logger.exception(
                    f"[notify] {notif_type} failed after commit (request={context.get('request_id')}): {e}"
                )
                failures.append((notif_type, context.get("request_id"), e))

        if failures:
            listed = ", ".join(f"{t} for request {rid} ({e})" for t, rid, e in failures)
            raise PartialWriteFailure(
                f"Status saved, but {len(failures)} of {len(events)} notification(s) could not be written: {listed}",
                request=result,
                cause=failures[0][2],
                failures=failures,
            ) from failures[0][2]

    @staticmethod
    def mark_read(notification_id: int) -> Notification:
        row = db.session.get(Notification, notification_id)
        if not row:
            raise ValueError("Notification not found")
        if not row.is_read:
            row.is_read = True
            row.read_at = datetime.utcnow()
            db.session.commit()
        return row
