from sqlalchemy import case, select, update

from labloan.models.equipment import Equipment
from labloan.models.laboratory import Laboratory
from labloan.extensions import db

class EquipmentRepo:
    def get(self, equipment_id: int):
        return db.session.get(Equipment, equipment_id)

    def get_in_category(self, category_id: str, equipment_id: int):
        return Equipment.query.filter_by(id=equipment_id, category_id=category_id).first()

    def list_all(self):
        return Equipment.query.order_by(Equipment.id.desc()).all()

    def list_by_category(self, category_id: str):
        return Equipment.query.filter_by(category_id=category_id).order_by(Equipment.name.asc()).all()

    def get_lab(self, lab_id: str):
        if not lab_id:
            return None
        return db.session.get(Laboratory, lab_id)

    def create(self, equipment: Equipment):
        db.session.add(equipment)
        db.session.commit()
        return equipment

    def create_lab(self, lab: Laboratory):
        db.session.add(lab)
        db.session.commit()
        return lab

    def commit(self):
        db.session.commit()

    def _run(self, stmt, equipment_id) -> bool:
        ok = db.session.execute(stmt).rowcount == 1
        # drop the cached counter so the next read comes from the row
        cached = db.session.identity_map.get(db.session.identity_key(Equipment, equipment_id))
        if cached is not None:
            db.session.expire(cached, ["quantity_borrowed"])
        return ok

    # -----------------------------
    # Ledger writes: one conditional statement each, the WHERE clause is the guard
    # -----------------------------
    def try_increment_borrowed(self, equipment_id: int, qty: int) -> bool:
        stmt = (
            update(Equipment)
            .where(
                Equipment.id == equipment_id,
                Equipment.quantity - Equipment.quantity_borrowed >= qty,
            )
            .values(quantity_borrowed=Equipment.quantity_borrowed + qty)
            .execution_options(synchronize_session=False)
        )
        return self._run(stmt, equipment_id)

    def try_decrement_borrowed(self, equipment_id: int, qty: int) -> bool:
        stmt = (
            update(Equipment)
            .where(Equipment.id == equipment_id, Equipment.quantity_borrowed >= qty)
            .values(quantity_borrowed=Equipment.quantity_borrowed - qty)
            .execution_options(synchronize_session=False)
        )
        return self._run(stmt, equipment_id)

    def decrement_borrowed_clamped(self, equipment_id: int, qty: int) -> bool:
        remaining = Equipment.quantity_borrowed - qty
        stmt = (
            update(Equipment)
            .where(Equipment.id == equipment_id)
            .values(quantity_borrowed=case((remaining < 0, 0), else_=remaining))
            .execution_options(synchronize_session=False)
        )
        return self._run(stmt, equipment_id)

    def read_counts(self, equipment_id: int):
        """Fresh (quantity, quantity_borrowed) straight from the table, or None."""
        row = db.session.execute(
            select(Equipment.quantity, Equipment.quantity_borrowed).where(Equipment.id == equipment_id)
        ).first()
        if row is None:
            return None
        return int(row.quantity or 0), int(row.quantity_borrowed or 0)
