"""SQLiteStore: local file-based store for single-host deployments and CI.

Schema:
  attention_set_updates: one row per update. Rows are only ever inserted;
                          the autoincrement id is the append order.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Sequence

from attnset_core.models import AttentionSetUpdate, Operation
from attnset_store.base import BaseStore, StoreError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS attention_set_updates (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    change_id   TEXT NOT NULL,
    account     TEXT NOT NULL,
    operation   TEXT NOT NULL,
    reason      TEXT NOT NULL,
    timestamp   TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_updates_change ON attention_set_updates (change_id);
"""


class SQLiteStore(BaseStore):
    """Stores attention set history in a local SQLite database file.

    The database file path defaults to `.attnset.db` in the current working
    directory. Configure via .attnset.yml: `store_path: /path/to/attnset.db`.
    """

    def __init__(self, db_path: str = ".attnset.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def append(self, change_id: str, updates: Sequence[AttentionSetUpdate]) -> None:
        rows = [(change_id, u.account, u.operation.value, u.reason, u.timestamp.isoformat()) for u in updates]
        try:
            # One transaction per batch: either every row lands or none does.
            with self._conn:
                self._conn.executemany(
                    """
                    INSERT INTO attention_set_updates
                      (change_id, account, operation, reason, timestamp)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    rows,
                )
        except sqlite3.Error as e:
            raise StoreError(f"could not append {len(rows)} update(s) to {change_id}: {e}") from e

    def list_updates(self, change_id: str) -> list[AttentionSetUpdate]:
        rows = self._conn.execute(
            "SELECT * FROM attention_set_updates WHERE change_id=? ORDER BY id",
            (change_id,),
        ).fetchall()
        return [self._row_to_update(r) for r in rows]

    def list_changes(self) -> list[str]:
        rows = self._conn.execute(
            "SELECT change_id FROM attention_set_updates GROUP BY change_id ORDER BY MIN(id)"
        ).fetchall()
        return [r["change_id"] for r in rows]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_update(row: sqlite3.Row) -> AttentionSetUpdate:
        return AttentionSetUpdate(
            timestamp=datetime.fromisoformat(row["timestamp"]),
            account=row["account"],
            operation=Operation(row["operation"]),
            reason=row["reason"],
        )
