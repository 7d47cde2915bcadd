from __future__ import annotations

import sqlite3

from infrastructure.db.database import SqlDatabase


class SqliteDatabase(SqlDatabase):
    """
    SQLite driver for the SQL repositories.

    The database file is created on first use and the schema is
    self-initialising.
    """

    def __init__(self, db_path: str) -> None:
        super().__init__()
        self._db_path = db_path
        self.ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)
