# labloan/controllers/request_controller.py

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity, get_jwt

from labloan.controllers.serializers import request_json, history_json, parse_dt
from labloan.errors import BatchError, LoanError
from labloan.models.loan_request import RETURNED
from labloan.services.batch_coordinator import BatchCoordinator
from labloan.services.request_service import RequestService
from labloan.services.return_processor import ReturnProcessor
from labloan.services.transition_engine import StatusTransitionEngine
from labloan.utils.decorators import role_required, current_actor, MANAGER_ROLES

request_bp = Blueprint("requests", __name__)


def _json_error(message, code=400, **extra):
    body = {"success": False, "message": message}
    body.update(extra)
    return jsonify(body), code


def _loan_error(e: ValueError):
    return _json_error(str(e), getattr(e, "http_status", 400))


def _is_manager():
    return (get_jwt() or {}).get("role") in MANAGER_ROLES


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _target_status(data: dict):
    """Lower-cased ``status`` field, None when missing or not a string."""
    target = data.get("status")
    if not isinstance(target, str) or not target.strip():
        return None
    return target.strip().lower()


def _return_details(raw) -> dict:
    if not isinstance(raw, dict):
        raise LoanError("return details must be an object")
    details = dict(raw)
    details.setdefault("processed_by", current_actor())
    return details


# -----------------------------
# Submission / listing
# -----------------------------
@request_bp.post("/")
@jwt_required()
def submit_request():
    data = _body()
    try:
        r = RequestService().submit(
            equipment_id=int(data["equipment_id"]),
            requester_id=get_jwt_identity(),
            quantity=data.get("quantity", 1),
            category_id=data.get("category_id"),
            date_to_be_used=parse_dt(data.get("date_to_be_used"), "date_to_be_used"),
            date_to_return=parse_dt(data.get("date_to_return"), "date_to_return"),
            purpose=data.get("purpose"),
        )
        return jsonify({"success": True, "data": request_json(r)}), 201
    except (KeyError, TypeError):
        return _json_error("equipment_id is required", 400)
    except ValueError as e:
        return _loan_error(e)


@request_bp.post("/batch")
@jwt_required()
def submit_batch():
    data = _body()
    items = data.get("items")
    if not isinstance(items, list) or not items:
        return _json_error("items must be a non-empty list", 400)
    try:
        batch_id, rows = RequestService().submit_batch(
            items=items,
            requester_id=get_jwt_identity(),
            date_to_be_used=parse_dt(data.get("date_to_be_used"), "date_to_be_used"),
            date_to_return=parse_dt(data.get("date_to_return"), "date_to_return"),
            purpose=data.get("purpose"),
        )
        return jsonify({"success": True, "batch_id": batch_id, "data": [request_json(r) for r in rows]}), 201
    except ValueError as e:
        return _loan_error(e)


@request_bp.get("/")
@jwt_required()
def list_requests():
    status = request.args.get("status") or None
    # managers see everything, borrowers only their own
    requester_id = None if _is_manager() else get_jwt_identity()
    rows = RequestService().list_active(requester_id=requester_id, status=status)
    return jsonify({"success": True, "data": [request_json(r) for r in rows]})


@request_bp.get("/<int:request_id>")
@jwt_required()
def get_request(request_id: int):
    try:
        r = RequestService().get(request_id)
    except ValueError as e:
        return _loan_error(e)
    if not _is_manager() and r.requester_id != get_jwt_identity():
        return _json_error("Forbidden", 403)
    return jsonify({"success": True, "data": request_json(r)})


@request_bp.delete("/<int:request_id>")
@jwt_required()
def delete_request(request_id: int):
    service = RequestService()
    try:
        r = service.get(request_id)
        if not _is_manager() and r.requester_id != get_jwt_identity():
            return _json_error("Forbidden", 403)
        service.cancel(request_id)
        return jsonify({"success": True})
    except ValueError as e:
        return _loan_error(e)


# -----------------------------
# Lifecycle (lab managers)
# -----------------------------
@request_bp.post("/<int:request_id>/status")
@jwt_required()
@role_required(*MANAGER_ROLES)
def update_status(request_id: int):
    data = _body()
    target = _target_status(data)
    if not target:
        return _json_error("status is required and must be a string", 400)

    try:
        if target == RETURNED:
            entry = ReturnProcessor().process_return(request_id, _return_details(data.get("return_details") or {}))
            return jsonify({"success": True, "data": history_json(entry)})

        r = StatusTransitionEngine().transition(request_id, target, reviewed_by=current_actor())
        return jsonify({"success": True, "data": request_json(r)})
    except ValueError as e:
        return _loan_error(e)


@request_bp.post("/<int:request_id>/return")
@jwt_required()
@role_required(*MANAGER_ROLES)
def return_request(request_id: int):
    raw = request.get_json(silent=True)
    try:
        entry = ReturnProcessor().process_return(request_id, _return_details(raw if raw is not None else {}))
        return jsonify({"success": True, "data": history_json(entry)})
    except ValueError as e:
        return _loan_error(e)


@request_bp.post("/batches/<batch_id>/status")
@jwt_required()
@role_required(*MANAGER_ROLES)
def update_batch_status(batch_id: str):
    data = _body()
    target = _target_status(data)
    if not target:
        return _json_error("status is required and must be a string", 400)

    try:
        count = BatchCoordinator().apply_to_batch(
            batch_id, target, reviewed_by=current_actor(), policy=data.get("policy")
        )
        return jsonify({"success": True, "applied": count})
    except BatchError as e:
        return _json_error(str(e), e.http_status, applied=e.applied, failed_request_id=e.failed_request_id)
    except ValueError as e:
        return _loan_error(e)
