from __future__ import annotations

from datetime import datetime

from flask import current_app

from labloan.errors import InvalidTransition, LoanError
from labloan.models.history_entry import RELEASE
from labloan.models.loan_request import RELEASED, IN_PROGRESS, RETURNED
from labloan.models.notification import EQUIPMENT_RETURNED
from labloan.services.history_log import HistoryLog
from labloan.services.notification_service import notification_context
from labloan.services.transition_engine import StatusTransitionEngine


class ReturnProcessor:
    def __init__(self, engine: StatusTransitionEngine | None = None, history: HistoryLog | None = None):
        self.engine = engine or StatusTransitionEngine()
        self.history = history or self.engine.history

    @staticmethod
    def normalize_details(return_details: dict | None) -> dict:
        d = return_details or {}
        if not isinstance(d, dict):
            raise LoanError("return details must be an object")
        condition = d.get("condition") or "good"
        if not isinstance(condition, str):
            raise LoanError(f"condition must be a string, got {condition!r}")
        return {
            "condition": condition.strip().lower(),
            "delay_reason": d.get("delay_reason") or d.get("delayReason") or "",
            "notes": d.get("notes") or "",
            "processed_by": str(d.get("processed_by") or d.get("processedBy")
                                or current_app.config.get("DEFAULT_PROCESSOR", "Admin")),
        }

    def process_return(self, request_id, return_details: dict | None = None):
        """
        Finalize a released loan: free the reservation, write the history pair,
        drop the request from the active store. Returns the ``return`` entry.
        """
        loan_request = self.engine.get_request(request_id)
        if loan_request.status not in (RELEASED, IN_PROGRESS):
            raise InvalidTransition(loan_request.status, RETURNED, "only released or in-progress requests can be returned")

        details = self.normalize_details(return_details)
        now = datetime.utcnow()
        # before stage() bumps updated_at / reviewed_by
        released_at = loan_request.released_at or loan_request.updated_at or loan_request.requested_at or now
        released_by = loan_request.reviewed_by or details["processed_by"]

        try:
            self.engine.stage(loan_request, RETURNED, reviewed_by=details["processed_by"], now=now, allow_return=True)
            loan_request.return_details = details

            # the approved->released edge normally logged this already
            if not self.history.has_entry(loan_request.id, RELEASE):
                self.history.append(HistoryLog.release_entry(loan_request, released_at, released_by))
                current_app.logger.warning(f"[return] request={request_id} had no release entry, backfilled")

            entry = self.history.append(HistoryLog.return_entry(loan_request, now, released_at, details))
            events = [(EQUIPMENT_RETURNED, notification_context(loan_request, return_details=details))]

            self.engine.requests.delete(loan_request)
            self.engine.requests.commit()
        except Exception:
            self.engine.requests.rollback()
            raise

        current_app.logger.info(f"[return] request={request_id} returned ({entry.condition})")
        self.engine.notifier.dispatch(events, result=entry)
        return entry
