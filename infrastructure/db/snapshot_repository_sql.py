from __future__ import annotations

import uuid
from typing import List, Optional

from domain.models import GuestSessionSnapshot, SessionSnapshot
from domain.repositories import SnapshotRepository
from infrastructure.db.database import SqlDatabase


class SqlSnapshotRepository(SnapshotRepository):
    """
    SQL implementation of `SnapshotRepository`.

    Rows are only ever inserted. Player and guest snapshots live in
    separate tables because guests have no lifetime identity.
    """

    def __init__(self, db: SqlDatabase) -> None:
        self._db = db
        self._db.ensure_schema()

    def add_snapshots(
        self,
        snapshots: List[SessionSnapshot],
        guest_snapshots: List[GuestSessionSnapshot],
    ) -> None:
        self._db.executemany(
            """
            INSERT INTO session_snapshots
                (id, participant_id, game_id, cash_in, cash_out, session_net, snapshotted_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    uuid.uuid4().hex,
                    s.participant_id,
                    s.game_id,
                    s.cash_in,
                    s.cash_out,
                    s.session_net,
                    s.snapshotted_at,
                )
                for s in snapshots
            ],
        )
        self._db.executemany(
            """
            INSERT INTO guest_session_snapshots
                (id, guest_name, game_id, cash_in, cash_out, session_net, snapshotted_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    uuid.uuid4().hex,
                    s.guest_name,
                    s.game_id,
                    s.cash_in,
                    s.cash_out,
                    s.session_net,
                    s.snapshotted_at,
                )
                for s in guest_snapshots
            ],
        )

    def list_snapshots(
        self,
        game_id: str,
        participant_id: Optional[str] = None,
    ) -> List[SessionSnapshot]:
        sql = """
            SELECT participant_id, game_id, cash_in, cash_out, session_net, snapshotted_at
            FROM session_snapshots
            WHERE game_id = ?
        """
        params: tuple = (game_id,)
        if participant_id is not None:
            sql += " AND participant_id = ?"
            params += (participant_id,)
        sql += " ORDER BY snapshotted_at ASC, participant_id ASC"

        rows = self._db.fetchall(sql, params)
        return [
            SessionSnapshot(
                participant_id=str(row[0]),
                game_id=str(row[1]),
                cash_in=float(row[2]),
                cash_out=float(row[3]),
                session_net=float(row[4]),
                snapshotted_at=row[5],
            )
            for row in rows
        ]

    def list_guest_snapshots(self, game_id: str) -> List[GuestSessionSnapshot]:
        rows = self._db.fetchall(
            """
            SELECT guest_name, game_id, cash_in, cash_out, session_net, snapshotted_at
            FROM guest_session_snapshots
            WHERE game_id = ?
            ORDER BY snapshotted_at ASC, guest_name ASC
            """,
            (game_id,),
        )
        return [
            GuestSessionSnapshot(
                guest_name=row[0],
                game_id=str(row[1]),
                cash_in=float(row[2]),
                cash_out=float(row[3]),
                session_net=float(row[4]),
                snapshotted_at=row[5],
            )
            for row in rows
        ]
