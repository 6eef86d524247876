from labloan.errors import EquipmentNotFound, InvalidQuantity
from labloan.models.equipment import Equipment
from labloan.models.laboratory import Laboratory
from labloan.repositories.equipment_repo import EquipmentRepo
from labloan.utils.validation import parse_quantity

class EquipmentService:
    """Equipment management. quantity_borrowed is the ledger's, never set here."""

    repo = EquipmentRepo()

    @staticmethod
    def _quantity(value) -> int:
        return parse_quantity(value, minimum=0)

    @staticmethod
    def list_equipment(category_id=None):
        if category_id:
            return EquipmentService.repo.list_by_category(category_id)
        return EquipmentService.repo.list_all()

    @staticmethod
    def get_equipment(equipment_id: int):
        eq = EquipmentService.repo.get(equipment_id)
        if not eq:
            raise EquipmentNotFound(equipment_id)
        return eq

    @staticmethod
    def create_equipment(data: dict):
        eq = Equipment(
            name=data["name"],
            category_id=str(data["category_id"]),
            lab_id=data.get("lab_id"),
            quantity=EquipmentService._quantity(data.get("quantity", 1)),
            quantity_borrowed=0,
        )
        return EquipmentService.repo.create(eq)

    @staticmethod
    def update_equipment(equipment_id: int, data: dict):
        eq = EquipmentService.get_equipment(equipment_id)
        for k in ["name", "lab_id"]:
            if k in data:
                setattr(eq, k, data[k])
        if "category_id" in data:
            eq.category_id = str(data["category_id"])

        if "quantity" in data:
            q = EquipmentService._quantity(data["quantity"])
            if q < (eq.quantity_borrowed or 0):
                raise InvalidQuantity(
                    f"quantity cannot go below the {eq.quantity_borrowed} currently borrowed"
                )
            eq.quantity = q

        EquipmentService.repo.commit()
        return eq

    @staticmethod
    def create_laboratory(data: dict):
        lab = Laboratory(
            lab_id=str(data["lab_id"]),
            lab_name=data["lab_name"],
            manager_user_id=data.get("manager_user_id"),
        )
        return EquipmentService.repo.create_lab(lab)
