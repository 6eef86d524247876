from flask import Flask, jsonify
from labloan.config import Config
from labloan.extensions import db, migrate, jwt
from labloan.db_objects_mssql import ensure_db_objects_mssql


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # 1) db first (db.engine / db.session)
    db.init_app(app)

    # models must be imported before migrations / create_all see the metadata
    from labloan import models  # noqa: F401

    # 2) MSSQL ledger guard (after db init)
    if app.config.get("ENSURE_DB_OBJECTS", True):
        ensure_db_objects_mssql(app)

    # 3) other extensions
    migrate.init_app(app, db)
    jwt.init_app(app)

    # 4) blueprints
    from labloan.controllers.request_controller import request_bp
    from labloan.controllers.equipment_controller import equipment_bp
    from labloan.controllers.history_controller import history_bp
    from labloan.controllers.notification_controller import notif_bp
    app.register_blueprint(request_bp, url_prefix="/requests")
    app.register_blueprint(equipment_bp, url_prefix="/equipment")
    app.register_blueprint(history_bp, url_prefix="/history")
    app.register_blueprint(notif_bp, url_prefix="/notifications")

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    # overdue scan
    from labloan.tasks.scheduler import start_scheduler
    start_scheduler(app)

    return app
