# rx_companion/db/medication_store.py
import logging
import sqlite3
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from rx_companion.core.errors import PersistenceError
from rx_companion.db.db_config import get_sqlite_connection
from rx_companion.schemas.models import Medication

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS medications (
    id TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""


class MedicationStore:
    """
    Durable list of Medication records for the one device owner.
    Iteration order is insertion order; an update keeps a record's position.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        with self.conn:
            self.conn.execute(_SCHEMA)

    @classmethod
    def open(cls, path: Optional[Path | str] = None) -> "MedicationStore":
        return cls(get_sqlite_connection(path))

    def list(self) -> List[Medication]:
        try:
            rows = self.conn.execute("SELECT data FROM medications ORDER BY rowid").fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not load medications: {e}") from e
        return [Medication.model_validate_json(r[0]) for r in rows]

    def get(self, medication_id: str) -> Optional[Medication]:
        try:
            row = self.conn.execute(
                "SELECT data FROM medications WHERE id = ?", (medication_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not load medication {medication_id}: {e}") from e
        return Medication.model_validate_json(row[0]) if row else None

    def put(self, med: Medication) -> None:
        now = datetime.now(timezone.utc).isoformat(timespec="seconds")
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT INTO medications (id, data, created_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(id) DO UPDATE SET data = excluded.data",
                    (med.id, med.model_dump_json(), now),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not save medication {med.id}: {e}") from e
        logger.info("Stored medication %s (%s)", med.id, med.name)

    def delete(self, medication_id: str) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM medications WHERE id = ?", (medication_id,))
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not delete medication {medication_id}: {e}") from e
        logger.info("Deleted medication %s", medication_id)


@lru_cache(maxsize=1)
def get_store() -> MedicationStore:
    return MedicationStore.open()
