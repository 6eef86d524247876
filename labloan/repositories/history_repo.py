from datetime import datetime
from labloan.models.history_entry import HistoryEntry
from labloan.extensions import db

class HistoryRepo:
    def add(self, entry: HistoryEntry):
        db.session.add(entry)
        db.session.flush()
        return entry

    def exists(self, request_id: int, entry_type: str) -> bool:
        return HistoryEntry.query.filter_by(request_id=request_id, entry_type=entry_type).first() is not None

    def list_for_request(self, request_id: int):
        return HistoryEntry.query.filter_by(request_id=request_id).order_by(
            HistoryEntry.timestamp.desc(), HistoryEntry.id.desc()
        ).all()

    def list_all(self, limit: int | None = None):
        q = HistoryEntry.query.order_by(HistoryEntry.timestamp.desc(), HistoryEntry.id.desc())
        if limit:
            q = q.limit(limit)
        return q.all()

    def list_by_type(self, entry_type: str, since: datetime | None = None):
        q = HistoryEntry.query.filter(HistoryEntry.entry_type == entry_type)
        if since is not None:
            q = q.filter(HistoryEntry.timestamp >= since)
        return q.order_by(HistoryEntry.timestamp.desc()).all()

    def delete_matching(self, request_id: int, entry_type: str) -> int:
        rows = HistoryEntry.query.filter_by(request_id=request_id, entry_type=entry_type).all()
        for row in rows:
            db.session.delete(row)
        db.session.flush()
        return len(rows)
