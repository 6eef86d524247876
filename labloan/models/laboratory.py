from labloan.extensions import db

class Laboratory(db.Model):
    __tablename__ = "laboratories"

    lab_id = db.Column(db.String(64), primary_key=True)
    lab_name = db.Column(db.String(200), nullable=False)

    # notifications for this lab go to its manager
    manager_user_id = db.Column(db.String(64), nullable=True, index=True)
