from datetime import datetime
from labloan.models.notification import Notification
from labloan.extensions import db

class NotificationRepo:
    @staticmethod
    def already_sent(request_id: int, notif_type: str, since: datetime | None = None) -> bool:
        q = Notification.query.filter_by(request_id=request_id, type=notif_type)
        if since is not None:
            q = q.filter(Notification.created_at >= since)
        return q.first() is not None

    @staticmethod
    def log(entry: Notification):
        db.session.add(entry)
        db.session.commit()
        return entry

    @staticmethod
    def list_for_recipient(user_id: str, only_unread: bool = False):
        q = Notification.query.filter_by(recipient_user_id=user_id)
        if only_unread:
            q = q.filter(Notification.is_read.is_(False))
        return q.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    @staticmethod
    def list_all(limit: int = 200):
        return Notification.query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()
