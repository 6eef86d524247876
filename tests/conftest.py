"""
Pytest fixtures for the loan core.

Every test gets a fresh app on in-memory SQLite with the schema created by
``db.create_all()``; the scheduler and the MSSQL trigger bootstrap are off
(``TestConfig``).
"""
from datetime import datetime, timedelta

import pytest
from flask_jwt_extended import create_access_token

from labloan import create_app
from labloan.config import TestConfig
from labloan.extensions import db as _db
from labloan.models.equipment import Equipment
from labloan.models.laboratory import Laboratory
from labloan.models.loan_request import LoanRequest, PENDING
from labloan.repositories.equipment_repo import EquipmentRepo
from labloan.services.notification_service import NotificationService


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def lab(db):
    lab = Laboratory(lab_id="LAB-CHEM", lab_name="Chemistry Lab", manager_user_id="mgr-1")
    db.session.add(lab)
    db.session.commit()
    return lab


@pytest.fixture
def make_equipment(db, lab):
    def _make(total=5, name="Microscope", category_id="optics", with_lab=True):
        eq = Equipment(
            name=name,
            category_id=category_id,
            lab_id=lab.lab_id if with_lab else None,
            quantity=total,
            quantity_borrowed=0,
        )
        db.session.add(eq)
        db.session.commit()
        return eq
    return _make


@pytest.fixture
def make_request(db):
    def _make(equipment, quantity=1, status=PENDING, requester_id="stu-1", batch_id=None,
              date_to_return=None):
        r = LoanRequest(
            equipment_id=equipment.id,
            category_id=equipment.category_id,
            requester_id=requester_id,
            quantity=quantity,
            status=status,
            batch_id=batch_id,
            requested_at=datetime.utcnow() - timedelta(days=1),
            date_to_return=date_to_return,
        )
        db.session.add(r)
        db.session.commit()
        return r
    return _make


@pytest.fixture
def borrowed():
    """Reads quantity_borrowed straight from the table."""
    def _read(equipment_id):
        return EquipmentRepo().read_counts(equipment_id)[1]
    return _read


class RecordingNotifier(NotificationService):
    def __init__(self):
        super().__init__()
        self.sent = []

    def notify(self, notif_type, context):
        self.sent.append((notif_type, context))
        return super().notify(notif_type, context)


class FailingNotifier(NotificationService):
    def notify(self, notif_type, context):
        raise RuntimeError("notification store unavailable")


@pytest.fixture
def recording_notifier(app):
    return RecordingNotifier()


@pytest.fixture
def failing_notifier(app):
    return FailingNotifier()


@pytest.fixture
def token_for(app):
    def _token(identity, role="student", username=None):
        claims = {"role": role, "username": username or identity}
        return create_access_token(identity=identity, additional_claims=claims)
    return _token


@pytest.fixture
def auth_headers(token_for):
    def _headers(identity="stu-1", role="student", username=None):
        return {"Authorization": f"Bearer {token_for(identity, role, username)}"}
    return _headers
