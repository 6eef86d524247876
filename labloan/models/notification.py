# labloan/models/notification.py
from datetime import datetime
from labloan.extensions import db

NEW_REQUEST = "new_request"
REQUEST_APPROVED = "request_approved"
REQUEST_REJECTED = "request_rejected"
EQUIPMENT_RETURNED = "equipment_returned"
EQUIPMENT_OVERDUE = "equipment_overdue"


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)

    type = db.Column(db.String(50), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.String(1000), nullable=False)

    lab_id = db.Column(db.String(64), nullable=True, index=True)
    lab_name = db.Column(db.String(200), nullable=True)
    recipient_user_id = db.Column(db.String(64), nullable=True, index=True)

    # request rows disappear on return, so plain column instead of FK
    request_id = db.Column(db.Integer, nullable=True, index=True)

    # "metadata" is reserved on declarative models
    meta = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime, nullable=True)
