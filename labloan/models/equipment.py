from datetime import datetime
from labloan.extensions import db

class Equipment(db.Model):
    __tablename__ = "equipment"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_equipment_quantity"),
        db.CheckConstraint("quantity_borrowed >= 0", name="ck_equipment_borrowed_min"),
        db.CheckConstraint("quantity_borrowed <= quantity", name="ck_equipment_borrowed_max"),
    )

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.String(64), nullable=False, index=True)
    lab_id = db.Column(db.String(64), db.ForeignKey("laboratories.lab_id"), nullable=True, index=True)
    name = db.Column(db.String(200), nullable=False, index=True)

    # total stock / reserved by approved-but-not-returned requests
    quantity = db.Column(db.Integer, nullable=False, default=0)
    quantity_borrowed = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    laboratory = db.relationship("Laboratory", backref="equipment")

    @property
    def available(self) -> int:
        return (self.quantity or 0) - (self.quantity_borrowed or 0)
