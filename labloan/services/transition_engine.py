from __future__ import annotations

from datetime import datetime

from flask import current_app

from labloan.errors import InvalidTransition, RequestNotFound
from labloan.models.loan_request import (
    STATUSES,
    PENDING,
    APPROVED,
    RELEASED,
    REJECTED,
    IN_PROGRESS,
    RETURNED,
)
from labloan.models.notification import REQUEST_APPROVED, REQUEST_REJECTED
from labloan.repositories.request_repo import RequestRepo
from labloan.services.history_log import HistoryLog
from labloan.services.inventory_ledger import InventoryLedger
from labloan.services.notification_service import NotificationService, notification_context

RESERVE = "reserve"
RELEASE = "release"

# (from, to) -> ledger effect. Every RESERVE edge has exactly one RELEASE edge
# that undoes it (approved->rejected, released/in_progress->returned).
EDGES = {
    (PENDING, APPROVED): RESERVE,
    (PENDING, REJECTED): None,
    (APPROVED, REJECTED): RELEASE,
    (APPROVED, RELEASED): None,
    (RELEASED, IN_PROGRESS): None,
    (RELEASED, RETURNED): RELEASE,
    (IN_PROGRESS, RETURNED): RELEASE,
    (REJECTED, APPROVED): RESERVE,
}


def allowed_targets(status: str):
    return [to for (frm, to) in EDGES if frm == status]


class StatusTransitionEngine:
    """
    Loan request state machine.

    ``transition`` validates the edge, moves the ledger, writes history and
    updates the request inside one database transaction, then emits the
    notifications. Guard failures roll everything back.

    The status change is a conditional UPDATE on the stored status, so two
    callers holding the same stale row cannot both apply an edge.
    """

    def __init__(
        self,
        requests: RequestRepo | None = None,
        ledger: InventoryLedger | None = None,
        history: HistoryLog | None = None,
        notifier: NotificationService | None = None,
    ):
        self.requests = requests or RequestRepo()
        self.ledger = ledger or InventoryLedger()
        self.history = history or HistoryLog()
        self.notifier = notifier or NotificationService()

    def get_request(self, request_id):
        loan_request = self.requests.get(request_id)
        if not loan_request:
            raise RequestNotFound(request_id)
        return loan_request

    @staticmethod
    def _actor(reviewed_by):
        return reviewed_by or current_app.config.get("DEFAULT_PROCESSOR", "Admin")

    def transition(self, request_id, target_status: str, reviewed_by: str | None = None):
        loan_request = self.get_request(request_id)
        previous = loan_request.status

        try:
            events = self.stage(loan_request, target_status, reviewed_by=reviewed_by)
            self.requests.commit()
        except Exception:
            self.requests.rollback()
            raise

        current_app.logger.info(f"[transition] request={request_id} {previous} -> {target_status}")
        self.notifier.dispatch(events, result=loan_request)
        return loan_request

    def stage(self, loan_request, target_status: str, reviewed_by: str | None = None,
              now: datetime | None = None, allow_return: bool = False):
        """
        Apply one edge to ``loan_request`` in the current transaction without
        committing. Returns the (type, context) notifications to send once the
        caller commits.
        """
        current = loan_request.status
        if target_status not in STATUSES:
            raise InvalidTransition(current, target_status, "unknown status")

        edge = (current, target_status)
        if edge not in EDGES:
            allowed = ", ".join(allowed_targets(current)) or "none"
            raise InvalidTransition(current, target_status, f"allowed: {allowed}")

        if target_status == RETURNED and not allow_return:
            raise InvalidTransition(current, target_status, "returns need return details, use the return processor")

        now = now or datetime.utcnow()
        actor = self._actor(reviewed_by)

        # a concurrent caller that already moved this request off ``current``
        # wins; this one must not touch the ledger a second time
        if not self.requests.claim_status(loan_request.id, current, target_status):
            current_app.logger.warning(
                f"[transition] request={loan_request.id} no longer '{current}', {target_status} refused"
            )
            raise InvalidTransition(current, target_status, "the request was changed by someone else, reload it")

        effect = EDGES[edge]
        if effect == RESERVE:
            self.ledger.reserve(loan_request.equipment_id, loan_request.quantity)
        elif effect == RELEASE:
            self.ledger.release(loan_request.equipment_id, loan_request.quantity)

        if target_status == REJECTED:
            self.history.append(HistoryLog.rejection_entry(loan_request, now, actor))
        elif target_status == RELEASED:
            loan_request.released_at = now
            self.history.append(HistoryLog.release_entry(loan_request, now, actor))
        elif target_status == APPROVED and current == REJECTED:
            self.history.retract_rejection(loan_request.id)

        loan_request.status = target_status
        loan_request.updated_at = now
        loan_request.reviewed_by = actor
        self.requests.flush()

        events = []
        if target_status == APPROVED:
            events.append((REQUEST_APPROVED, notification_context(loan_request, actor=actor)))
        elif target_status == REJECTED:
            events.append((REQUEST_REJECTED, notification_context(loan_request, actor=actor)))
        return events
