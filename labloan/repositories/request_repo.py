from datetime import datetime

from sqlalchemy import update

from labloan.models.loan_request import LoanRequest, APPROVED, RELEASED, IN_PROGRESS
from labloan.extensions import db

class RequestRepo:
    def get(self, request_id: int):
        return db.session.get(LoanRequest, request_id)

    def claim_status(self, request_id: int, expected: str, target: str) -> bool:
        """Moves the stored status only if it still reads ``expected``."""
        stmt = (
            update(LoanRequest)
            .where(LoanRequest.id == request_id, LoanRequest.status == expected)
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
        return db.session.execute(stmt).rowcount == 1

    def list_active(self, requester_id: str | None = None, status: str | None = None):
        q = LoanRequest.query
        if requester_id:
            q = q.filter_by(requester_id=requester_id)
        if status:
            q = q.filter_by(status=status)
        return q.order_by(LoanRequest.id.desc()).all()

    def list_by_batch(self, batch_id: str):
        # submission order
        return LoanRequest.query.filter_by(batch_id=batch_id).order_by(LoanRequest.id.asc()).all()

    def find_overdue(self, now: datetime):
        return LoanRequest.query.filter(
            LoanRequest.status.in_((APPROVED, RELEASED, IN_PROGRESS)),
            LoanRequest.date_to_return.isnot(None),
            LoanRequest.date_to_return < now,
        ).order_by(LoanRequest.date_to_return.asc()).all()

    def add(self, loan_request: LoanRequest):
        db.session.add(loan_request)
        db.session.flush()
        return loan_request

    def create(self, loan_request: LoanRequest):
        db.session.add(loan_request)
        db.session.commit()
        return loan_request

    def delete(self, loan_request: LoanRequest):
        db.session.delete(loan_request)
        db.session.flush()

    def flush(self):
        db.session.flush()

    def commit(self):
        db.session.commit()

    def rollback(self):
        db.session.rollback()
