from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required, get_jwt_identity, get_jwt

from labloan.controllers.serializers import notification_json
from labloan.repositories.notification_repo import NotificationRepo
from labloan.services.notification_service import NotificationService
from labloan.tasks.overdue_check import check_overdue
from labloan.utils.decorators import role_required, MANAGER_ROLES

notif_bp = Blueprint("notifications", __name__)


@notif_bp.get("/")
@jwt_required()
def my_notifications():
    if (get_jwt() or {}).get("role") == "admin" and request.args.get("all") == "1":
        rows = NotificationRepo.list_all()
    else:
        rows = NotificationRepo.list_for_recipient(
            get_jwt_identity(), only_unread=request.args.get("only_unread", "0") == "1"
        )
    return jsonify({"success": True, "data": [notification_json(n) for n in rows]})


@notif_bp.post("/<int:notification_id>/read")
@jwt_required()
def mark_read(notification_id: int):
    try:
        n = NotificationService.mark_read(notification_id)
        return jsonify({"success": True, "data": notification_json(n)})
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 404


@notif_bp.post("/run-overdue-check")
@jwt_required()
@role_required(*MANAGER_ROLES)
def run_overdue_check():
    result = check_overdue()
    return jsonify({"success": True, "message": "Overdue check finished", "data": result})
