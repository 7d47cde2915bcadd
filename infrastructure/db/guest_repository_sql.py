from __future__ import annotations

from typing import List, Optional, Sequence

from domain.models import Guest
from domain.repositories import GuestRepository
from infrastructure.db.database import SqlDatabase


class SqlGuestRepository(GuestRepository):
    """SQL implementation of `GuestRepository` over the `guests` table."""

    def __init__(self, db: SqlDatabase) -> None:
        self._db = db
        self._db.ensure_schema()

    @staticmethod
    def _to_domain(row: Sequence) -> Guest:
        return Guest(
            id=str(row[0]),
            game_id=str(row[1]),
            name=row[2],
            cash_in=float(row[3]),
            cash_out=float(row[4]),
        )

    def get_guest(self, guest_id: str) -> Optional[Guest]:
        row = self._db.fetchone(
            "SELECT id, game_id, name, cash_in, cash_out FROM guests WHERE id = ?",
            (guest_id,),
        )
        if not row:
            return None
        return self._to_domain(row)

    def list_guests(self, game_id: str) -> List[Guest]:
        rows = self._db.fetchall(
            "SELECT id, game_id, name, cash_in, cash_out FROM guests WHERE game_id = ? ORDER BY name",
            (game_id,),
        )
        return [self._to_domain(row) for row in rows]

    def add_guest(self, guest: Guest) -> None:
        self._db.execute(
            """
            INSERT INTO guests (id, game_id, name, cash_in, cash_out)
            VALUES (?, ?, ?, ?, ?)
            """,
            (guest.id, guest.game_id, guest.name, guest.cash_in, guest.cash_out),
        )

    def save_guest(self, guest: Guest) -> None:
        self._db.execute(
            "UPDATE guests SET name = ?, cash_in = ?, cash_out = ? WHERE id = ?",
            (guest.name, guest.cash_in, guest.cash_out, guest.id),
        )

    def delete_guest(self, guest_id: str) -> None:
        self._db.execute("DELETE FROM guests WHERE id = ?", (guest_id,))

    def delete_guests_for_game(self, game_id: str) -> None:
        self._db.execute("DELETE FROM guests WHERE game_id = ?", (game_id,))
