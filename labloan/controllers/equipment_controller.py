# labloan/controllers/equipment_controller.py

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from labloan.controllers.serializers import equipment_json
from labloan.services.equipment_service import EquipmentService
from labloan.services.inventory_ledger import InventoryLedger
from labloan.utils.decorators import role_required, MANAGER_ROLES

equipment_bp = Blueprint("equipment", __name__)


@equipment_bp.get("/")
def list_equipment():
    rows = EquipmentService.list_equipment(request.args.get("category_id"))
    return jsonify({"success": True, "data": [equipment_json(e) for e in rows]})


@equipment_bp.get("/<int:equipment_id>")
def get_equipment(equipment_id: int):
    try:
        e = EquipmentService.get_equipment(equipment_id)
        return jsonify({"success": True, "data": equipment_json(e)})
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 404


@equipment_bp.get("/<int:equipment_id>/availability")
def availability(equipment_id: int):
    try:
        return jsonify({"success": True, "available": InventoryLedger().available(equipment_id)})
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 404


@equipment_bp.post("/")
@jwt_required()
@role_required(*MANAGER_ROLES)
def create_equipment():
    data = request.get_json(silent=True) or {}
    try:
        e = EquipmentService.create_equipment(data)
        return jsonify({"success": True, "data": equipment_json(e)}), 201
    except KeyError:
        return jsonify({"success": False, "message": "name and category_id are required"}), 400
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400


@equipment_bp.put("/<int:equipment_id>")
@jwt_required()
@role_required(*MANAGER_ROLES)
def update_equipment(equipment_id: int):
    data = request.get_json(silent=True) or {}
    try:
        e = EquipmentService.update_equipment(equipment_id, data)
        return jsonify({"success": True, "data": equipment_json(e)})
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), getattr(e, "http_status", 400)


@equipment_bp.post("/laboratories")
@jwt_required()
@role_required("admin")
def create_laboratory():
    data = request.get_json(silent=True) or {}
    try:
        lab = EquipmentService.create_laboratory(data)
        return jsonify({"success": True, "lab_id": lab.lab_id}), 201
    except KeyError:
        return jsonify({"success": False, "message": "lab_id and lab_name are required"}), 400
