from __future__ import annotations

import psycopg2

from infrastructure.db.database import SqlDatabase


class PostgresDatabase(SqlDatabase):
    """
    Postgres driver for the SQL repositories.

    Accepts either a DSN string or the keyword parameters understood by
    `psycopg2.connect`. Repository SQL uses `?` placeholders, which are
    rewritten to psycopg2's `%s` style.
    """

    def __init__(self, dsn: str = "", **db_params) -> None:
        super().__init__()
        self._dsn = dsn
        self._db_params = db_params
        self.ensure_schema()

    def _connect(self):
        return psycopg2.connect(self._dsn, **self._db_params)

    def _prepare(self, sql: str) -> str:
        return sql.replace("?", "%s")
