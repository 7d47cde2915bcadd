from __future__ import annotations

import logging
from typing import Optional, Tuple

from application.profiles import ProfileCache, ProfileResolver
from application.stores import Stores
from domain.repositories import ChangeNotifier
from infrastructure.config import Settings
from infrastructure.db.database import SqlDatabase
from infrastructure.db.game_repository_sql import SqlGameRepository
from infrastructure.db.guest_repository_sql import SqlGuestRepository
from infrastructure.db.identity_repository_sql import SqlIdentityRepository
from infrastructure.db.participant_repository_sql import SqlParticipantRepository
from infrastructure.db.profile_repository_sql import SqlProfileRepository
from infrastructure.db.snapshot_repository_sql import SqlSnapshotRepository
from infrastructure.notifications import InProcessChangeNotifier

logger = logging.getLogger(__name__)


def open_database(settings: Settings) -> SqlDatabase:
    if settings.db_backend == "postgres":
        # Imported lazily so SQLite deployments need no Postgres driver at runtime.
        from infrastructure.db.database_postgres import PostgresDatabase

        logger.info("Using Postgres database")
        return PostgresDatabase(settings.database_url or "")

    from infrastructure.db.database_sqlite import SqliteDatabase

    logger.info("Using SQLite database at %s", settings.db_path)
    return SqliteDatabase(settings.db_path)


def build_sql_stores(
    db: SqlDatabase,
    notifier: Optional[ChangeNotifier] = None,
    cache_ttl: Optional[float] = None,
) -> Stores:
    profiles = SqlProfileRepository(db)
    cache = ProfileCache(cache_ttl) if cache_ttl is not None else ProfileCache()
    return Stores(
        games=SqlGameRepository(db),
        participants=SqlParticipantRepository(db),
        guests=SqlGuestRepository(db),
        snapshots=SqlSnapshotRepository(db),
        profiles=profiles,
        uow=db,
        notifier=notifier,
        resolver=ProfileResolver(profiles, cache),
    )


def build_stores(settings: Settings) -> Tuple[Stores, SqlIdentityRepository]:
    db = open_database(settings)
    stores = build_sql_stores(
        db,
        notifier=InProcessChangeNotifier(),
        cache_ttl=settings.profile_cache_ttl_seconds,
    )
    return stores, SqlIdentityRepository(db)
