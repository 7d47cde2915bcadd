from __future__ import annotations

from typing import List, Optional, Sequence

from domain.models import Participant, ParticipantStatus
from domain.repositories import ParticipantRepository
from infrastructure.db.database import SqlDatabase

_COLUMNS = (
    "game_id, participant_id, status, cash_in, cash_out, "
    "requested_cash_in, requested_cash_out"
)


def _amount(value) -> Optional[float]:
    return None if value is None else float(value)


class SqlParticipantRepository(ParticipantRepository):
    """
    SQL implementation of `ParticipantRepository` over `game_players`.

    This is the single place where player rows are normalised into the
    `Participant` model: numeric columns come back as floats, and an unset
    requested amount falls back to the confirmed one. Display names are
    not stored here; the application resolves them from profiles.
    """

    def __init__(self, db: SqlDatabase) -> None:
        self._db = db
        self._db.ensure_schema()

    @staticmethod
    def _to_domain(row: Sequence) -> Participant:
        confirmed_in = _amount(row[3])
        confirmed_out = _amount(row[4])
        requested_in = _amount(row[5])
        requested_out = _amount(row[6])
        return Participant(
            game_id=str(row[0]),
            participant_id=str(row[1]),
            status=ParticipantStatus(row[2]),
            confirmed_cash_in=confirmed_in,
            confirmed_cash_out=confirmed_out,
            requested_cash_in=requested_in if requested_in is not None else confirmed_in,
            requested_cash_out=requested_out if requested_out is not None else confirmed_out,
        )

    def get_participant(self, game_id: str, participant_id: str) -> Optional[Participant]:
        row = self._db.fetchone(
            f"SELECT {_COLUMNS} FROM game_players WHERE game_id = ? AND participant_id = ?",
            (game_id, participant_id),
        )
        if not row:
            return None
        return self._to_domain(row)

    def list_participants(
        self,
        game_id: str,
        status: Optional[ParticipantStatus] = None,
    ) -> List[Participant]:
        if status is None:
            rows = self._db.fetchall(
                f"SELECT {_COLUMNS} FROM game_players WHERE game_id = ? ORDER BY participant_id",
                (game_id,),
            )
        else:
            rows = self._db.fetchall(
                f"""
                SELECT {_COLUMNS} FROM game_players
                WHERE game_id = ? AND status = ?
                ORDER BY participant_id
                """,
                (game_id, status.value),
            )
        return [self._to_domain(row) for row in rows]

    def add_participant(self, participant: Participant) -> bool:
        return self._db.execute(
            f"""
            INSERT INTO game_players ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (game_id, participant_id) DO NOTHING
            """,
            self._params(participant),
        ) > 0

    def save_participant(self, participant: Participant) -> None:
        self._db.execute(
            """
            UPDATE game_players
            SET status = ?,
                cash_in = ?,
                cash_out = ?,
                requested_cash_in = ?,
                requested_cash_out = ?
            WHERE game_id = ? AND participant_id = ?
            """,
            (
                participant.status.value,
                participant.confirmed_cash_in,
                participant.confirmed_cash_out,
                participant.requested_cash_in,
                participant.requested_cash_out,
                participant.game_id,
                participant.participant_id,
            ),
        )

    def clear_amounts(self, game_id: str) -> None:
        self._db.execute(
            """
            UPDATE game_players
            SET cash_in = NULL,
                cash_out = NULL,
                requested_cash_in = NULL,
                requested_cash_out = NULL
            WHERE game_id = ?
            """,
            (game_id,),
        )

    @staticmethod
    def _params(participant: Participant) -> tuple:
        return (
            participant.game_id,
            participant.participant_id,
            participant.status.value,
            participant.confirmed_cash_in,
            participant.confirmed_cash_out,
            participant.requested_cash_in,
            participant.requested_cash_out,
        )
