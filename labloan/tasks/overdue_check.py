# labloan/tasks/overdue_check.py
import math
from datetime import datetime

from flask import current_app

from labloan.extensions import db
from labloan.models.notification import EQUIPMENT_OVERDUE
from labloan.repositories.notification_repo import NotificationRepo
from labloan.repositories.request_repo import RequestRepo
from labloan.services.notification_service import NotificationService, notification_context


def _calc_days_overdue(date_to_return, now_utc: datetime) -> int:
    if not date_to_return or date_to_return >= now_utc:
        return 0
    return math.ceil((now_utc - date_to_return).total_seconds() / 86400)


def check_overdue(now: datetime | None = None, notifier: NotificationService | None = None) -> dict:
    """
    Approved / released / in-progress requests past date_to_return get one
    equipment_overdue notification per calendar day.
    """
    now = now or datetime.utcnow()
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    notifier = notifier or NotificationService()

    rows = RequestRepo().find_overdue(now)

    notified = 0
    skipped = 0
    for r in rows:
        # already told the lab today
        if NotificationRepo.already_sent(r.id, EQUIPMENT_OVERDUE, since=start_of_day):
            skipped += 1
            continue

        days = _calc_days_overdue(r.date_to_return, now)
        if notifier.notify(EQUIPMENT_OVERDUE, notification_context(r, days_overdue=days)):
            notified += 1
        else:
            skipped += 1

    current_app.logger.info(f"[overdue_check] overdue={len(rows)} notified={notified} skipped={skipped}")
    return {"overdue": len(rows), "notified": notified, "skipped": skipped}


def run_overdue_check_job(app):
    with app.app_context():
        try:
            check_overdue()
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception(f"[overdue_check] Error: {e}")
