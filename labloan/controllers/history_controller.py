from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from labloan.controllers.serializers import history_json, parse_dt
from labloan.services.history_log import HistoryLog
from labloan.utils.decorators import role_required, MANAGER_ROLES

history_bp = Blueprint("history", __name__)


@history_bp.get("/")
@jwt_required()
@role_required(*MANAGER_ROLES)
def list_history():
    log = HistoryLog()
    request_id = request.args.get("request_id", type=int)
    if request_id:
        rows = log.entries_for(request_id)
    else:
        rows = log.list_entries(limit=request.args.get("limit", 500, type=int))
    return jsonify({"success": True, "data": [history_json(h) for h in rows]})


@history_bp.get("/late-returns")
@jwt_required()
@role_required(*MANAGER_ROLES)
def late_returns():
    try:
        since = parse_dt(request.args.get("since"), "since")
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    summary = HistoryLog().late_returns(since)
    for item in summary["items"]:
        item["return_date"] = item["return_date"].isoformat()
        item["due_date"] = item["due_date"].isoformat()
    return jsonify({"success": True, "data": summary})
