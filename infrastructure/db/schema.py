"""
Table definitions shared by the SQLite and Postgres drivers.

Only column types both engines accept are used. Timestamps are stored as
ISO-8601 UTC strings, which sort chronologically as text.
"""

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        display_name TEXT,
        venmo_handle TEXT,
        net_profit DOUBLE PRECISION NOT NULL DEFAULT 0,
        profile_public BOOLEAN NOT NULL DEFAULT TRUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS games (
        id TEXT PRIMARY KEY,
        short_code TEXT NOT NULL UNIQUE,
        host_id TEXT NOT NULL,
        description TEXT,
        status TEXT NOT NULL,
        created_at TEXT,
        ended_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS game_players (
        game_id TEXT NOT NULL,
        participant_id TEXT NOT NULL,
        status TEXT NOT NULL,
        cash_in DOUBLE PRECISION,
        cash_out DOUBLE PRECISION,
        requested_cash_in DOUBLE PRECISION,
        requested_cash_out DOUBLE PRECISION,
        PRIMARY KEY (game_id, participant_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS guests (
        id TEXT PRIMARY KEY,
        game_id TEXT NOT NULL,
        name TEXT NOT NULL,
        cash_in DOUBLE PRECISION NOT NULL DEFAULT 0,
        cash_out DOUBLE PRECISION NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS session_snapshots (
        id TEXT PRIMARY KEY,
        participant_id TEXT NOT NULL,
        game_id TEXT NOT NULL,
        cash_in DOUBLE PRECISION NOT NULL,
        cash_out DOUBLE PRECISION NOT NULL,
        session_net DOUBLE PRECISION NOT NULL,
        snapshotted_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS guest_session_snapshots (
        id TEXT PRIMARY KEY,
        guest_name TEXT NOT NULL,
        game_id TEXT NOT NULL,
        cash_in DOUBLE PRECISION NOT NULL,
        cash_out DOUBLE PRECISION NOT NULL,
        session_net DOUBLE PRECISION NOT NULL,
        snapshotted_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS game_profit_history (
        id TEXT PRIMARY KEY,
        profile_id TEXT NOT NULL,
        game_id TEXT NOT NULL,
        profit_delta DOUBLE PRECISION NOT NULL,
        recorded_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_identities (
        provider TEXT NOT NULL,
        provider_user_id TEXT NOT NULL,
        profile_id TEXT NOT NULL,
        PRIMARY KEY (provider, provider_user_id)
    )
    """,
]
