"""
Session history: immutable snapshots taken when a session closes or a game
ends, and the read views built from them.

Snapshots are the only source for per-session and per-game figures. Live
confirmed amounts are never treated as history, and lifetime net profit is
kept separately on the profile (see `session.end`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from application.stores import Stores, require_game
from domain.models import (
    Guest,
    GuestSessionSnapshot,
    Participant,
    ParticipantStatus,
    Payout,
    PlayerEntry,
    Profile,
    ProfitHistoryEntry,
    SessionSnapshot,
)
from domain.settlement import calc_payouts, guest_label, unique_name

logger = logging.getLogger(__name__)


@dataclass
class SessionRecord:
    """All snapshot rows sharing one close/end timestamp."""

    snapshotted_at: str
    players: List[PlayerEntry] = field(default_factory=list)
    payout: Optional[Payout] = None


@dataclass
class Standing:
    participant_id: str
    display_name: str
    game_net: float
    was_kicked: bool = False


@dataclass
class TimelinePoint:
    snapshotted_at: str
    session_net: float
    cumulative_net: float


def record_snapshots(
    stores: Stores,
    game_id: str,
    participants: Iterable[Participant],
    guests: Iterable[Guest],
    snapshotted_at: str,
) -> int:
    """
    Append one snapshot per approved participant and settle-eligible guest.

    Meant to run inside the caller's `atomic()` block. Returns the number
    of rows written.
    """

    snapshots = [
        SessionSnapshot(
            participant_id=p.participant_id,
            game_id=game_id,
            cash_in=p.cash_in,
            cash_out=p.cash_out,
            session_net=p.cash_out - p.cash_in,
            snapshotted_at=snapshotted_at,
        )
        for p in participants
        if p.status == ParticipantStatus.APPROVED
    ]
    guest_snapshots = [
        GuestSessionSnapshot(
            guest_name=g.name,
            game_id=game_id,
            cash_in=g.cash_in,
            cash_out=g.cash_out,
            session_net=g.cash_out - g.cash_in,
            snapshotted_at=snapshotted_at,
        )
        for g in guests
        if g.is_settle_eligible()
    ]
    stores.snapshots.add_snapshots(snapshots, guest_snapshots)
    logger.info(
        "Snapshotted %d player(s) and %d guest(s) for game %s",
        len(snapshots),
        len(guest_snapshots),
        game_id,
    )
    return len(snapshots) + len(guest_snapshots)


def session_history(stores: Stores, game_id: str) -> List[SessionRecord]:
    """Every recorded session of a game, oldest first, with its payouts recomputed."""

    require_game(stores, game_id)
    sessions: Dict[str, SessionRecord] = {}
    taken: Dict[str, set] = {}

    for s in stores.snapshots.list_snapshots(game_id):
        record = sessions.setdefault(s.snapshotted_at, SessionRecord(s.snapshotted_at))
        names = taken.setdefault(s.snapshotted_at, set())
        record.players.append(
            PlayerEntry(
                name=unique_name(stores.resolver.display_name(s.participant_id), names),
                cash_in=s.cash_in,
                cash_out=s.cash_out,
            )
        )
    for gs in stores.snapshots.list_guest_snapshots(game_id):
        record = sessions.setdefault(gs.snapshotted_at, SessionRecord(gs.snapshotted_at))
        names = taken.setdefault(gs.snapshotted_at, set())
        record.players.append(
            PlayerEntry(
                name=unique_name(guest_label(gs.guest_name), names),
                cash_in=gs.cash_in,
                cash_out=gs.cash_out,
            )
        )

    ordered = [sessions[key] for key in sorted(sessions)]
    for record in ordered:
        if len(record.players) >= 2:
            record.payout = calc_payouts(record.players)
    return ordered


def game_standings(stores: Stores, game_id: str, limit: Optional[int] = 3) -> List[Standing]:
    """Per-player totals of session nets across the game's snapshots, best first."""

    require_game(stores, game_id)
    totals: Dict[str, float] = {}
    for s in stores.snapshots.list_snapshots(game_id):
        totals[s.participant_id] = totals.get(s.participant_id, 0.0) + s.session_net

    statuses = {
        p.participant_id: p.status for p in stores.participants.list_participants(game_id)
    }
    standings = [
        Standing(
            participant_id=pid,
            display_name=stores.resolver.display_name(pid),
            game_net=net,
            was_kicked=statuses.get(pid) == ParticipantStatus.DENIED,
        )
        for pid, net in totals.items()
        if statuses.get(pid) != ParticipantStatus.PENDING
    ]
    standings.sort(key=lambda s: s.game_net, reverse=True)
    if limit is not None:
        standings = standings[:limit]
    return standings


def participant_timeline(stores: Stores, game_id: str, participant_id: str) -> List[TimelinePoint]:
    """One player's per-session nets with a running total."""

    points: List[TimelinePoint] = []
    cumulative = 0.0
    for s in stores.snapshots.list_snapshots(game_id, participant_id):
        cumulative += s.session_net
        points.append(
            TimelinePoint(
                snapshotted_at=s.snapshotted_at,
                session_net=s.session_net,
                cumulative_net=cumulative,
            )
        )
    return points


def leaderboard(stores: Stores, limit: int = 10) -> List[Profile]:
    """Public profiles by lifetime net profit."""

    return stores.profiles.top_public_profiles(limit)


def profit_history(stores: Stores, profile_id: str) -> List[ProfitHistoryEntry]:
    return stores.profiles.list_profit_history(profile_id)
