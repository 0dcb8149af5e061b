"""
SQLite connection management.

``get_connection()`` is the only way the rest of the code base opens the
store. One connection is one unit of work: a CLI command, an admin request, or
a pipeline stage run.

The yielded connection:
  - uses ``sqlite3.Row`` so rows behave like mappings,
  - has a busy timeout so concurrent writers wait instead of failing,
  - runs in WAL mode (optional) so queries can read during a sync,
  - commits on clean exit and rolls back on exception.

Usage::

    from item_sync.db.connection import get_connection

    with get_connection("data/db/item_sync.db") as conn:
        ItemRepository(conn).count()
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Context manager yielding a configured SQLite connection.

    The database file (and any parent directories) are created if missing.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.
        wal_mode: If ``True``, enable WAL journal mode.
        busy_timeout_ms: Milliseconds to wait on a locked database before
            raising ``OperationalError``.

    Yields:
        An open, configured ``sqlite3.Connection``.
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row
    logger.debug("Opened SQLite connection to %s", db_path)

    try:
        conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
        if wal_mode and db_path != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL;")

        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        raise

    finally:
        conn.close()
