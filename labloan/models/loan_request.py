from datetime import datetime
from labloan.extensions import db

PENDING = "pending"
APPROVED = "approved"
RELEASED = "released"
REJECTED = "rejected"
IN_PROGRESS = "in_progress"
RETURNED = "returned"

STATUSES = (PENDING, APPROVED, RELEASED, REJECTED, IN_PROGRESS, RETURNED)


class LoanRequest(db.Model):
    __tablename__ = "loan_requests"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_loan_requests_quantity"),
    )

    id = db.Column(db.Integer, primary_key=True)

    equipment_id = db.Column(db.Integer, db.ForeignKey("equipment.id"), nullable=False, index=True)
    category_id = db.Column(db.String(64), nullable=False, index=True)
    requester_id = db.Column(db.String(64), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    status = db.Column(db.String(20), nullable=False, default=PENDING, index=True)

    batch_id = db.Column(db.String(64), nullable=True, index=True)
    batch_size = db.Column(db.Integer, nullable=True)

    purpose = db.Column(db.String(500), nullable=True)

    requested_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=True)
    released_at = db.Column(db.DateTime, nullable=True)
    date_to_be_used = db.Column(db.DateTime, nullable=True)
    date_to_return = db.Column(db.DateTime, nullable=True)

    reviewed_by = db.Column(db.String(200), nullable=True)
    return_details = db.Column(db.JSON, nullable=True)

    equipment = db.relationship("Equipment", backref="requests")

    @property
    def item_name(self):
        return self.equipment.name if self.equipment else None
