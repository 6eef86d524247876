from __future__ import annotations

from flask import current_app

from labloan.errors import EquipmentNotFound, InsufficientStock, InvalidQuantity, LedgerUnderflow
from labloan.repositories.equipment_repo import EquipmentRepo


class InventoryLedger:
    """
    Owner of ``quantity_borrowed``. Nothing else writes that column.

    ``reserve`` / ``release`` are single conditional UPDATEs, so the
    availability guard is checked against the stored value at write time and
    two concurrent approvals cannot over-allocate. Neither method commits:
    the caller's transaction decides.
    """

    def __init__(self, equipment_repo: EquipmentRepo | None = None, strict_release: bool | None = None):
        self.equipment = equipment_repo or EquipmentRepo()
        self._strict_release = strict_release

    @property
    def strict_release(self) -> bool:
        if self._strict_release is not None:
            return self._strict_release
        return bool(current_app.config.get("LEDGER_STRICT_RELEASE", False))

    @staticmethod
    def _check_qty(qty) -> int:
        if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
            raise InvalidQuantity(f"Quantity must be a positive integer, got {qty!r}")
        return qty

    def _counts(self, equipment_id):
        counts = self.equipment.read_counts(equipment_id)
        if counts is None:
            raise EquipmentNotFound(equipment_id)
        return counts

    def available(self, equipment_id) -> int:
        total, borrowed = self._counts(equipment_id)
        return total - borrowed

    def reserve(self, equipment_id, qty: int):
        qty = self._check_qty(qty)

        if not self.equipment.try_increment_borrowed(equipment_id, qty):
            total, borrowed = self._counts(equipment_id)
            raise InsufficientStock(equipment_id, available=total - borrowed, requested=qty)

        current_app.logger.info(f"[ledger] reserved equipment={equipment_id} qty={qty}")
        return self.equipment.get(equipment_id)

    def release(self, equipment_id, qty: int):
        qty = self._check_qty(qty)

        if self.equipment.try_decrement_borrowed(equipment_id, qty):
            current_app.logger.info(f"[ledger] released equipment={equipment_id} qty={qty}")
            return self.equipment.get(equipment_id)

        # over-release (or missing row)
        _total, borrowed = self._counts(equipment_id)
        if self.strict_release:
            raise LedgerUnderflow(equipment_id, borrowed=borrowed, requested=qty)

        self.equipment.decrement_borrowed_clamped(equipment_id, qty)
        current_app.logger.warning(
            f"[ledger] over-release clamped to 0: equipment={equipment_id} borrowed={borrowed} qty={qty}"
        )
        return self.equipment.get(equipment_id)
