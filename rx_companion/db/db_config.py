# rx_companion/db/db_config.py

import sqlite3
from pathlib import Path
from typing import Optional

from rx_companion.core.config import RX_CHECKPOINT_DB_FILE, RX_DATA_DIR, RX_DB_FILE


def db_path(filename: str) -> Path:
    RX_DATA_DIR.mkdir(parents=True, exist_ok=True)
    return RX_DATA_DIR / filename


# Record store (medications)
DB_PATH = db_path(RX_DB_FILE)

# LangGraph checkpoints for the intake workflow
CHECKPOINT_DB_PATH = db_path(RX_CHECKPOINT_DB_FILE)


def get_sqlite_connection(path: Optional[Path | str] = None) -> sqlite3.Connection:
    """
    Create and configure SQLite connection with recommended PRAGMA settings.
    """
    conn = sqlite3.connect(str(path or DB_PATH), check_same_thread=False)

    # Performance & concurrency settings
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA busy_timeout=5000;")

    return conn
