from sqlalchemy import text
from labloan.extensions import db

# Rejects any write that leaves quantity_borrowed outside [0, quantity],
# whoever issued it. Created only once the equipment table exists.
TRIGGER_SQL = r"""
IF OBJECT_ID(N'dbo.equipment', N'U') IS NOT NULL
   AND OBJECT_ID(N'dbo.trg_equipment_ledger_guard', N'TR') IS NULL
BEGIN
    EXEC('
    CREATE TRIGGER dbo.trg_equipment_ledger_guard
    ON dbo.equipment
    AFTER INSERT, UPDATE
    AS
    BEGIN
        SET NOCOUNT ON;

        IF EXISTS (
            SELECT 1
            FROM inserted i
            WHERE i.quantity_borrowed < 0
               OR i.quantity_borrowed > i.quantity
        )
        BEGIN
            RAISERROR(''Ledger guard: quantity_borrowed out of range'', 16, 1);
            ROLLBACK TRAN;
            RETURN;
        END
    END
    ')
END
"""


def ensure_db_objects_mssql(app):
    with app.app_context():
        if db.engine.dialect.name != "mssql":
            app.logger.info(f"[db_objects_mssql] dialect={db.engine.dialect.name}, skipped.")
            return

        conn = db.engine.connect()
        trans = conn.begin()
        try:
            conn.execute(text(TRIGGER_SQL))
            trans.commit()
            app.logger.info("[db_objects_mssql] Ledger guard trigger ensured.")
        except Exception as e:
            trans.rollback()
            app.logger.error(f"[db_objects_mssql] ERROR: {e}")
            raise
        finally:
            conn.close()
