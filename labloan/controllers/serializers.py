from datetime import datetime, timezone


def _dt(value):
    return value.isoformat() if value else None


def parse_dt(value, field: str):
    """ISO-8601 string (or None) -> naive UTC datetime."""
    if value in (None, ""):
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"{field} must be an ISO-8601 date")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def request_json(r):
    return {
        "id": r.id,
        "equipment_id": r.equipment_id,
        "category_id": r.category_id,
        "item_name": r.item_name,
        "requester_id": r.requester_id,
        "quantity": r.quantity,
        "status": r.status,
        "batch_id": r.batch_id,
        "batch_size": r.batch_size,
        "purpose": r.purpose,
        "requested_at": _dt(r.requested_at),
        "updated_at": _dt(r.updated_at),
        "released_at": _dt(r.released_at),
        "date_to_be_used": _dt(r.date_to_be_used),
        "date_to_return": _dt(r.date_to_return),
        "reviewed_by": r.reviewed_by,
    }


def equipment_json(e):
    return {
        "id": e.id,
        "name": e.name,
        "category_id": e.category_id,
        "lab_id": e.lab_id,
        "quantity": e.quantity,
        "quantity_borrowed": e.quantity_borrowed,
        "available": e.available,
    }


def history_json(h):
    return {
        "id": h.id,
        "request_id": h.request_id,
        "equipment_id": h.equipment_id,
        "category_id": h.category_id,
        "equipment_name": h.equipment_name,
        "requester_id": h.requester_id,
        "entry_type": h.entry_type,
        "status": h.status,
        "action": h.action,
        "quantity": h.quantity,
        "timestamp": _dt(h.timestamp),
        "released_date": _dt(h.released_date),
        "return_date": _dt(h.return_date),
        "date_to_return": _dt(h.date_to_return),
        "condition": h.condition,
        "return_details": h.return_details,
        "processed_by": h.processed_by,
    }


def notification_json(n):
    return {
        "id": n.id,
        "type": n.type,
        "title": n.title,
        "message": n.message,
        "lab_id": n.lab_id,
        "lab_name": n.lab_name,
        "recipient_user_id": n.recipient_user_id,
        "request_id": n.request_id,
        "metadata": n.meta,
        "created_at": _dt(n.created_at),
        "is_read": bool(n.is_read),
        "read_at": _dt(n.read_at),
    }
