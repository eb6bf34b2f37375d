"""
Module: inventory_kernel.db.triggers
Responsibility: Installing, removing, and verifying PostgreSQL immutability
    triggers.  This is the database-level complement to the ORM-level
    listeners in db/immutability.py.
Architecture position: Kernel > DB.  May import from db/ only.  MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - stock_ledger_entries rows: no UPDATE, no DELETE, ever.

Failure modes:
    - PostgreSQL RAISE EXCEPTION on any trigger violation (surfaced by
      SQLAlchemy as InternalError / DBAPIError).

Audit relevance:
    Raw SQL, bulk statements and direct psql sessions bypass the ORM
    listeners.  The trigger keeps the ledger append-only regardless of the
    access path.  SQLite has no equivalent installed; the ORM listeners are
    the only guard there.
"""

from sqlalchemy import text
from sqlalchemy.engine import Engine

from inventory_kernel.logging_config import get_logger

logger = get_logger("db.triggers")

ALL_TRIGGER_NAMES = [
    "trg_stock_ledger_entry_immutability_update",
    "trg_stock_ledger_entry_immutability_delete",
]

_INSTALL_SQL = """
CREATE OR REPLACE FUNCTION prevent_stock_ledger_entry_mutation()
RETURNS TRIGGER AS $$
BEGIN
    RAISE EXCEPTION 'IMMUTABILITY_VIOLATION: stock ledger entry % cannot be %',
        OLD.id, lower(TG_OP);
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS trg_stock_ledger_entry_immutability_update
    ON stock_ledger_entries;
CREATE TRIGGER trg_stock_ledger_entry_immutability_update
    BEFORE UPDATE ON stock_ledger_entries
    FOR EACH ROW EXECUTE FUNCTION prevent_stock_ledger_entry_mutation();

DROP TRIGGER IF EXISTS trg_stock_ledger_entry_immutability_delete
    ON stock_ledger_entries;
CREATE TRIGGER trg_stock_ledger_entry_immutability_delete
    BEFORE DELETE ON stock_ledger_entries
    FOR EACH ROW EXECUTE FUNCTION prevent_stock_ledger_entry_mutation();
"""

_DROP_SQL = """
DROP TRIGGER IF EXISTS trg_stock_ledger_entry_immutability_update
    ON stock_ledger_entries;
DROP TRIGGER IF EXISTS trg_stock_ledger_entry_immutability_delete
    ON stock_ledger_entries;
DROP FUNCTION IF EXISTS prevent_stock_ledger_entry_mutation();
"""


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install database-level immutability triggers.

    Preconditions: Tables must exist (call after create_all()).
        Engine must be connected to PostgreSQL.
    Postconditions: All triggers in ALL_TRIGGER_NAMES are installed.
        The trigger function is created with CREATE OR REPLACE (idempotent).
    """
    with engine.connect() as conn:
        conn.execute(text(_INSTALL_SQL))
        conn.commit()
    logger.info("immutability_triggers_installed", extra={"triggers": ALL_TRIGGER_NAMES})


def uninstall_immutability_triggers(engine: Engine) -> None:
    """
    Remove database-level immutability triggers.

    WARNING: Only use this for test teardown or migrations.
    """
    with engine.connect() as conn:
        conn.execute(text(_DROP_SQL))
        conn.commit()


def triggers_installed(engine: Engine) -> bool:
    """Check if all immutability triggers are installed."""
    return not get_missing_triggers(engine)


def get_missing_triggers(engine: Engine) -> list[str]:
    """Get list of immutability triggers that should be installed but aren't."""
    with engine.connect() as conn:
        rows = conn.execute(
            text("SELECT tgname FROM pg_trigger WHERE tgname = ANY(:names)"),
            {"names": ALL_TRIGGER_NAMES},
        )
        installed = {row[0] for row in rows}
    return [name for name in ALL_TRIGGER_NAMES if name not in installed]
