from __future__ import annotations

from typing import List, Optional

from domain.repositories import IdentityRepository
from infrastructure.db.database import SqlDatabase


class SqlIdentityRepository(IdentityRepository):
    """
    SQL implementation of `IdentityRepository`.

    Stores mappings from (provider, provider_user_id) to profile IDs in a
    `user_identities` table.
    """

    def __init__(self, db: SqlDatabase) -> None:
        self._db = db
        self._db.ensure_schema()

    def find_profile_id(self, provider: str, provider_user_id: str) -> Optional[str]:
        row = self._db.fetchone(
            """
            SELECT profile_id
            FROM user_identities
            WHERE provider = ? AND provider_user_id = ?
            """,
            (provider, provider_user_id),
        )
        if not row:
            return None
        return str(row[0])

    def set_external_identity(self, provider: str, provider_user_id: str, profile_id: str) -> None:
        """
        Upsert a mapping from external identity to profile ID.
        """

        self._db.execute(
            """
            INSERT INTO user_identities (provider, provider_user_id, profile_id)
            VALUES (?, ?, ?)
            ON CONFLICT (provider, provider_user_id)
            DO UPDATE SET profile_id = excluded.profile_id
            """,
            (provider, provider_user_id, profile_id),
        )

    def get_external_ids(self, provider: str, profile_id: str) -> List[str]:
        """
        Return all external IDs for the given profile and provider.
        """

        rows = self._db.fetchall(
            """
            SELECT provider_user_id
            FROM user_identities
            WHERE provider = ? AND profile_id = ?
            """,
            (provider, profile_id),
        )
        return [str(row[0]) for row in rows]
