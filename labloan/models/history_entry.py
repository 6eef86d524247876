from datetime import datetime
from labloan.extensions import db

RELEASE = "release"
RETURN = "return"
REJECTION = "rejection"


class HistoryEntry(db.Model):
    __tablename__ = "history_entries"

    id = db.Column(db.Integer, primary_key=True)

    # no FK: the request row is deleted once returned, history outlives it
    request_id = db.Column(db.Integer, nullable=False, index=True)
    equipment_id = db.Column(db.Integer, nullable=True, index=True)
    category_id = db.Column(db.String(64), nullable=True)
    equipment_name = db.Column(db.String(200), nullable=True)
    requester_id = db.Column(db.String(64), nullable=True)

    entry_type = db.Column(db.String(20), nullable=False, index=True)  # release/return/rejection
    status = db.Column(db.String(50), nullable=False)   # Released / Returned / Rejected
    action = db.Column(db.String(100), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)

    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    released_date = db.Column(db.DateTime, nullable=True)
    return_date = db.Column(db.DateTime, nullable=True)
    date_to_return = db.Column(db.DateTime, nullable=True)

    condition = db.Column(db.String(500), nullable=True)
    return_details = db.Column(db.JSON, nullable=True)
    processed_by = db.Column(db.String(200), nullable=True)
