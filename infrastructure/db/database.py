from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence

from infrastructure.db.schema import SCHEMA

logger = logging.getLogger(__name__)


class SqlDatabase:
    """
    Connection handling shared by the SQL repositories.

    Outside `atomic()` every statement runs on its own short-lived
    connection and is committed immediately. Inside `atomic()` the
    calling thread is pinned to one connection, so writes made by any
    repository using this database commit or roll back together.

    Repositories write SQL with `?` placeholders; drivers that use a
    different paramstyle translate them in `_prepare`.
    """

    def __init__(self) -> None:
        self._local = threading.local()
        self._schema_lock = threading.Lock()
        self._schema_ready = False

    def _connect(self):
        raise NotImplementedError

    def _prepare(self, sql: str) -> str:
        return sql

    def _active_connection(self):
        return getattr(self._local, "conn", None)

    @contextmanager
    def connection(self) -> Iterator[Any]:
        active = self._active_connection()
        if active is not None:
            yield active
            return

        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if self._active_connection() is not None:
            # Nested blocks join the outer transaction.
            yield
            return

        conn = self._connect()
        self._local.conn = conn
        try:
            yield
            conn.commit()
        except Exception:
            conn.rollback()
            logger.warning("Transaction rolled back")
            raise
        finally:
            self._local.conn = None
            conn.close()

    def ensure_schema(self) -> None:
        """Create all tables if needed. Safe to call repeatedly."""

        with self._schema_lock:
            if self._schema_ready:
                return
            with self.connection() as conn:
                cur = conn.cursor()
                for statement in SCHEMA:
                    cur.execute(statement)
            self._schema_ready = True

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        with self.connection() as conn:
            cur = conn.cursor()
            cur.execute(self._prepare(sql), tuple(params))
            return cur.rowcount

    def executemany(self, sql: str, rows: List[Sequence[Any]]) -> None:
        if not rows:
            return
        with self.connection() as conn:
            cur = conn.cursor()
            cur.executemany(self._prepare(sql), [tuple(r) for r in rows])

    def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[Sequence[Any]]:
        with self.connection() as conn:
            cur = conn.cursor()
            cur.execute(self._prepare(sql), tuple(params))
            return cur.fetchone()

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> List[Sequence[Any]]:
        with self.connection() as conn:
            cur = conn.cursor()
            cur.execute(self._prepare(sql), tuple(params))
            return list(cur.fetchall())
