from __future__ import annotations

import math
from collections import Counter
from datetime import datetime

from flask import current_app

from labloan.models.history_entry import HistoryEntry, RELEASE, RETURN, REJECTION
from labloan.repositories.history_repo import HistoryRepo


CONDITION_LABELS = {
    "good": "Returned in good condition",
    "damaged": "Returned damaged",
    "lost": "Item lost/missing",
    "missing": "Item lost/missing",
}


def condition_label(condition) -> str:
    return CONDITION_LABELS.get((condition or "").strip().lower(), "Returned")


class HistoryLog:
    """
    Append-only audit trail of release / return / rejection events.

    The only deletion is ``retract_rejection`` (a rejected request moved back
    to approved). Writes are flushed into the caller's transaction.
    """

    def __init__(self, repo: HistoryRepo | None = None):
        self.repo = repo or HistoryRepo()

    # -----------------------------
    # Writes
    # -----------------------------
    def append(self, entry: HistoryEntry) -> HistoryEntry:
        return self.repo.add(entry)

    def retract_rejection(self, request_id: int) -> int:
        removed = self.repo.delete_matching(request_id, REJECTION)
        current_app.logger.info(f"[history] retracted {removed} rejection entr(y/ies) for request={request_id}")
        return removed

    # -----------------------------
    # Reads
    # -----------------------------
    def has_entry(self, request_id: int, entry_type: str) -> bool:
        return self.repo.exists(request_id, entry_type)

    def entries_for(self, request_id: int):
        return self.repo.list_for_request(request_id)

    def list_entries(self, limit: int | None = None):
        return self.repo.list_all(limit)

    def late_returns(self, since: datetime | None = None) -> dict:
        """
        Lateness of returned items, from the ``date_to_return`` copied onto
        each return entry. Days late are rounded up.
        """
        late = []
        for e in self.repo.list_by_type(RETURN, since):
            if not e.date_to_return:
                continue
            returned_on = e.return_date or e.timestamp
            if returned_on <= e.date_to_return:
                continue

            days_late = math.ceil((returned_on - e.date_to_return).total_seconds() / 86400)
            details = e.return_details or {}
            late.append({
                "request_id": e.request_id,
                "equipment_name": e.equipment_name or "Unknown",
                "category_id": e.category_id,
                "borrower": e.requester_id or "Unknown",
                "days_late": days_late,
                "delay_reason": details.get("delay_reason") or "",
                "notes": details.get("notes") or "",
                "return_date": returned_on,
                "due_date": e.date_to_return,
            })

        return {
            "total_late_returns": len(late),
            "average_days_late": round(sum(x["days_late"] for x in late) / len(late)) if late else 0,
            "late_by_equipment": dict(Counter(x["equipment_name"] for x in late)),
            "late_by_category": dict(Counter(x["category_id"] or "Unknown" for x in late)),
            "late_by_borrower": dict(Counter(x["borrower"] for x in late)),
            "items": late,
        }

    # -----------------------------
    # Entry builders
    # -----------------------------
    @staticmethod
    def _base(loan_request, entry_type: str, status: str, action: str) -> HistoryEntry:
        return HistoryEntry(
            request_id=loan_request.id,
            equipment_id=loan_request.equipment_id,
            category_id=loan_request.category_id,
            equipment_name=loan_request.item_name or "Unknown item",
            requester_id=loan_request.requester_id,
            entry_type=entry_type,
            status=status,
            action=action,
            quantity=loan_request.quantity or 1,
            date_to_return=loan_request.date_to_return,
        )

    @staticmethod
    def release_entry(loan_request, released_at: datetime, processed_by: str) -> HistoryEntry:
        e = HistoryLog._base(loan_request, RELEASE, "Released", "Item Released")
        e.timestamp = released_at
        e.released_date = released_at
        e.return_date = None
        e.condition = "Item released to borrower"
        e.processed_by = processed_by
        return e

    @staticmethod
    def rejection_entry(loan_request, rejected_at: datetime, processed_by: str) -> HistoryEntry:
        e = HistoryLog._base(loan_request, REJECTION, "Rejected", "Request Rejected")
        e.timestamp = rejected_at
        e.condition = "Request rejected by Lab in charge"
        e.processed_by = processed_by
        return e

    @staticmethod
    def return_entry(loan_request, returned_at: datetime, released_at: datetime | None,
                     return_details: dict) -> HistoryEntry:
        e = HistoryLog._base(loan_request, RETURN, "Returned", "Item Returned")
        e.timestamp = returned_at
        e.released_date = released_at
        e.return_date = returned_at
        e.condition = condition_label(return_details.get("condition"))
        e.return_details = return_details
        e.processed_by = return_details.get("processed_by")
        return e
