"""
Text rendering and argument parsing for the Discord bot.

Kept free of any discord.py types so it can be tested on its own.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from application.history import SessionRecord, Standing
from application.ledger import validate_amount
from domain.models import AmountField, Guest, Participant, ParticipantStatus, Payout, Profile

HELP_TEXT = (
    "!newgame [description]        - start a game in this channel (you are host)\n"
    "!join <code>                  - ask to join a game by its code\n"
    "!players                      - list players and their amounts\n"
    "!games                        - list the open games you play in\n"
    "!request <in> <out>           - report your own cash in / cash out\n"
    "!rejoin                       - ask again after being denied\n"
    "!venmo <handle>               - set the handle used in payouts\n"
    "!visibility public|private    - show or hide yourself on the leaderboard\n"
    "\n"
    "Host only:\n"
    "!approve @player / !deny @player / !kick @player\n"
    "!set @player <in> <out>       - set confirmed amounts\n"
    "!accept @player in|out        - accept a requested change\n"
    "!reject @player in|out        - reject a requested change\n"
    "!guest add <name> [in] [out]  - add a guest for this session\n"
    "!guest set <id> <in> <out>    - change a guest's amounts\n"
    "!guest remove <id>            - remove a guest\n"
    "!close / !reopen              - lock the session / start a new one\n"
    "!end                          - settle and finish the game\n"
    "!host @player                 - hand the game to another player\n"
    "\n"
    "Anyone:\n"
    "!payout / !history / !standings / !leaderboard\n"
)

_FIELD_ALIASES = {
    "in": AmountField.CASH_IN,
    "cash_in": AmountField.CASH_IN,
    "buyin": AmountField.CASH_IN,
    "out": AmountField.CASH_OUT,
    "cash_out": AmountField.CASH_OUT,
    "cashout": AmountField.CASH_OUT,
}

GUEST_ID_LENGTH = 8


def parse_amount(raw: str) -> float:
    """Accepts '20', '20.50', '$20' and '1,200'."""

    text = (raw or "").strip().lstrip("$").replace(",", "")
    return validate_amount(text)


def parse_field(raw: str) -> AmountField:
    field = _FIELD_ALIASES.get((raw or "").strip().lower())
    if field is None:
        raise ValueError("Field must be `in` or `out`.")
    return field


def money(value: float) -> str:
    return f"{value:.2f}"


def signed(value: float) -> str:
    return f"{value:+.2f}"


def format_participants(
    participants: Sequence[Participant],
    host_id: str,
    guests: Sequence[Guest] = (),
) -> str:
    if not participants and not guests:
        return "No players yet."

    order = {ParticipantStatus.APPROVED: 0, ParticipantStatus.PENDING: 1, ParticipantStatus.DENIED: 2}
    lines = []
    for p in sorted(participants, key=lambda p: order[p.status]):
        name = p.display_name or p.participant_id[:8]
        if p.participant_id == host_id:
            name += " (host)"

        if p.status == ParticipantStatus.APPROVED:
            line = f"{name}: in {money(p.cash_in)} / out {money(p.cash_out)}"
            if p.has_pending_request():
                line += (
                    f" [requested in {money(p.requested_cash_in or 0.0)}"
                    f" / out {money(p.requested_cash_out or 0.0)}]"
                )
        else:
            line = f"{name}: {p.status.value}"
        lines.append(line)

    for g in guests:
        lines.append(f"{g.name} (guest {g.id[:GUEST_ID_LENGTH]}): in {money(g.cash_in)} / out {money(g.cash_out)}")

    approved = [p for p in participants if p.status == ParticipantStatus.APPROVED]
    total_in = sum(p.cash_in for p in approved) + sum(g.cash_in for g in guests)
    total_out = sum(p.cash_out for p in approved) + sum(g.cash_out for g in guests)
    lines.append(f"Total: in {money(total_in)} / out {money(total_out)}")
    return "\n".join(lines)


def format_payout(payout: Payout) -> str:
    if not payout.players:
        return "Nothing to settle."

    lines = []
    if abs(payout.slippage) >= 0.005:
        lines.append(f"Slippage {signed(payout.slippage)} split evenly across {len(payout.players)} players")

    for p in sorted(payout.players, key=lambda r: r.net, reverse=True):
        lines.append(f"{p.display_name}: {signed(p.net)}")

    transfers = [(p.display_name, t) for p in payout.players for t in p.paid_to]
    if transfers:
        lines.append("")
        lines.append("Transfers:")
        for payer, t in transfers:
            lines.append(f"  {payer} pays {t.target.lstrip('@$')} {money(t.value)}")
    else:
        lines.append("No transfers needed.")
    return "\n".join(lines)


def format_history(records: Sequence[SessionRecord]) -> str:
    if not records:
        return "No sessions recorded yet."

    blocks = []
    for number, record in enumerate(records, start=1):
        lines = [f"Session {number} ({record.snapshotted_at[:16].replace('T', ' ')})"]
        for entry in record.players:
            lines.append(
                f"  {entry.name}: in {money(entry.cash_in)} / out {money(entry.cash_out)}"
                f" ({signed(entry.cash_out - entry.cash_in)})"
            )
        if record.payout is not None:
            transfers = [(p.display_name, t) for p in record.payout.players for t in p.paid_to]
            for payer, t in transfers:
                lines.append(f"    {payer} -> {t.target.lstrip('@$')}: {money(t.value)}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def format_standings(standings: Sequence[Standing]) -> str:
    if not standings:
        return "No finished sessions yet."

    lines = []
    for rank, s in enumerate(standings, start=1):
        suffix = " (kicked)" if s.was_kicked else ""
        lines.append(f"{rank}. {s.display_name}{suffix}: {signed(s.game_net)}")
    return "\n".join(lines)


def format_leaderboard(
    profiles: Sequence[Profile],
    name_for: Optional[Callable[[str], str]] = None,
) -> str:
    if not profiles:
        return "Leaderboard is empty."

    lines: List[str] = []
    for rank, profile in enumerate(profiles, start=1):
        name = name_for(profile.id) if name_for else (profile.display_name or profile.id[:8])
        lines.append(f"{rank}. {name}: {signed(profile.net_profit)}")
    return "\n".join(lines)
