from __future__ import annotations

from typing import List, Optional, Sequence

from domain.models import Profile, ProfitHistoryEntry
from domain.repositories import ProfileRepository
from infrastructure.db.database import SqlDatabase

_COLUMNS = "id, display_name, venmo_handle, net_profit, profile_public"


class SqlProfileRepository(ProfileRepository):
    """
    SQL implementation of `ProfileRepository`.

    `net_profit` is only changed by `apply_profit_delta`, which adds the
    delta in place and appends a `game_profit_history` row. Run it inside
    the caller's `atomic()` block so both writes land together.
    """

    def __init__(self, db: SqlDatabase) -> None:
        self._db = db
        self._db.ensure_schema()

    @staticmethod
    def _to_domain(row: Sequence) -> Profile:
        return Profile(
            id=str(row[0]),
            display_name=row[1],
            venmo_handle=row[2],
            net_profit=float(row[3]),
            profile_public=bool(row[4]),
        )

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        row = self._db.fetchone(f"SELECT {_COLUMNS} FROM profiles WHERE id = ?", (profile_id,))
        if not row:
            return None
        return self._to_domain(row)

    def add_profile(self, profile: Profile) -> None:
        self._db.execute(
            f"""
            INSERT INTO profiles ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT (id) DO NOTHING
            """,
            (
                profile.id,
                profile.display_name,
                profile.venmo_handle,
                profile.net_profit,
                profile.profile_public,
            ),
        )

    def update_profile(self, profile: Profile) -> None:
        self._db.execute(
            """
            UPDATE profiles
            SET display_name = ?, venmo_handle = ?, profile_public = ?
            WHERE id = ?
            """,
            (profile.display_name, profile.venmo_handle, profile.profile_public, profile.id),
        )

    def apply_profit_delta(self, entry: ProfitHistoryEntry) -> None:
        self._db.execute(
            """
            INSERT INTO profiles (id, net_profit)
            VALUES (?, ?)
            ON CONFLICT (id)
            DO UPDATE SET net_profit = profiles.net_profit + excluded.net_profit
            """,
            (entry.profile_id, entry.profit_delta),
        )
        self._db.execute(
            """
            INSERT INTO game_profit_history (id, profile_id, game_id, profit_delta, recorded_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (entry.id, entry.profile_id, entry.game_id, entry.profit_delta, entry.recorded_at),
        )

    def list_profit_history(self, profile_id: str) -> List[ProfitHistoryEntry]:
        rows = self._db.fetchall(
            """
            SELECT id, profile_id, game_id, profit_delta, recorded_at
            FROM game_profit_history
            WHERE profile_id = ?
            ORDER BY recorded_at ASC
            """,
            (profile_id,),
        )
        return [
            ProfitHistoryEntry(
                id=str(row[0]),
                profile_id=str(row[1]),
                game_id=str(row[2]),
                profit_delta=float(row[3]),
                recorded_at=row[4],
            )
            for row in rows
        ]

    def top_public_profiles(self, limit: int) -> List[Profile]:
        rows = self._db.fetchall(
            f"""
            SELECT {_COLUMNS} FROM profiles
            WHERE profile_public = ?
            ORDER BY net_profit DESC
            LIMIT ?
            """,
            (True, limit),
        )
        return [self._to_domain(row) for row in rows]
