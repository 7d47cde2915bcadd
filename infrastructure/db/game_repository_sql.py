from __future__ import annotations

from typing import List, Optional, Sequence

from domain.models import Game, GameStatus
from domain.repositories import GameRepository
from infrastructure.db.database import SqlDatabase

_COLUMNS = "id, short_code, host_id, description, status, created_at, ended_at"


class SqlGameRepository(GameRepository):
    """
    SQL implementation of `GameRepository` over the `games` table.

    Works with any `SqlDatabase` driver (SQLite or Postgres).
    """

    def __init__(self, db: SqlDatabase) -> None:
        self._db = db
        self._db.ensure_schema()

    @staticmethod
    def _to_domain(row: Sequence) -> Game:
        return Game(
            id=str(row[0]),
            short_code=row[1],
            host_id=str(row[2]),
            description=row[3],
            status=GameStatus(row[4]),
            created_at=row[5],
            ended_at=row[6],
        )

    def get_game(self, game_id: str) -> Optional[Game]:
        row = self._db.fetchone(f"SELECT {_COLUMNS} FROM games WHERE id = ?", (game_id,))
        if not row:
            return None
        return self._to_domain(row)

    def get_game_by_code(self, short_code: str) -> Optional[Game]:
        row = self._db.fetchone(
            f"SELECT {_COLUMNS} FROM games WHERE short_code = ?",
            (short_code,),
        )
        if not row:
            return None
        return self._to_domain(row)

    def add_game(self, game: Game) -> None:
        self._db.execute(
            f"""
            INSERT INTO games ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                game.id,
                game.short_code,
                game.host_id,
                game.description,
                game.status.value,
                game.created_at,
                game.ended_at,
            ),
        )

    def set_status(
        self,
        game_id: str,
        status: GameStatus,
        ended_at: Optional[str] = None,
        expected: Optional[GameStatus] = None,
    ) -> bool:
        sql = """
            UPDATE games
            SET status = ?, ended_at = COALESCE(?, ended_at)
            WHERE id = ?
            """
        params = [status.value, ended_at, game_id]
        if expected is not None:
            # Only a game still in `expected` is moved.
            sql += "  AND status = ?\n"
            params.append(expected.value)
        return self._db.execute(sql, params) > 0

    def set_host(self, game_id: str, host_id: str) -> None:
        self._db.execute("UPDATE games SET host_id = ? WHERE id = ?", (host_id, game_id))

    def list_games_for_participant(self, participant_id: str) -> List[Game]:
        rows = self._db.fetchall(
            f"""
            SELECT {_COLUMNS}
            FROM games
            WHERE status <> 'ended'
              AND id IN (
                  SELECT game_id FROM game_players
                  WHERE participant_id = ? AND status = 'approved'
              )
            ORDER BY created_at DESC
            """,
            (participant_id,),
        )
        return [self._to_domain(row) for row in rows]
