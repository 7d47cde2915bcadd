"""
Debt netting for a finished (or in-progress) poker session.

Given every party's cash in and cash out, `calc_payouts` works out each
party's net result and the smallest list of person-to-person transfers
that settles them:

1. slippage = total cash in - total cash out. A balanced ledger has zero
   slippage; anything else is an entry error and is reported, not fixed.
2. net = cash_out - cash_in + slippage / N, so the imbalance is shared
   evenly and the nets always sum to zero.
3. Parties are sorted by net and matched greedily from both ends: the
   biggest loser pays the biggest winner until one of them is square.

The greedy matching produces at most N - 1 transfers. Everything here is
pure; no repositories are involved.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import InsufficientParticipants
from .models import Guest, Participant, PlayerEntry, PlayerResult, Payout, Transfer

EPSILON = 1e-9

# Settlement names that begin with a payment-app sigil (@venmo, $cashapp)
# are shown without it.
_HANDLE_SIGILS = ("@", "$")


def is_zero(value: float) -> bool:
    """True for values within EPSILON of zero, including -0.0."""

    return abs(value) < EPSILON


def _display_name(name: str) -> str:
    if name and name[0] in _HANDLE_SIGILS:
        return name[1:]
    return name


def calc_payouts(players: Sequence[PlayerEntry]) -> Payout:
    """
    Net out `players` and return who pays whom.

    Never raises for numeric input: an empty or all-zero ledger simply
    yields no transfers. The result lists players by ascending net.
    """

    if not players:
        return Payout(slippage=0.0, players=[])

    slippage = sum(p.cash_in - p.cash_out for p in players)
    share = slippage / len(players)

    results = [
        PlayerResult(
            name=p.name,
            display_name=_display_name(p.name),
            cash_in=p.cash_in,
            cash_out=p.cash_out,
            net=p.cash_out - p.cash_in + share,
        )
        for p in players
    ]
    results.sort(key=lambda r: r.net)
    balances = [r.net for r in results]

    left = 0
    right = len(results) - 1
    while left < right:
        loser = results[left]
        winner = results[right]
        payment = min(-balances[left], balances[right])
        if payment > EPSILON:
            balances[left] += payment
            balances[right] -= payment
            loser.paid_to.append(Transfer(target=winner.name, value=payment))
            winner.paid_by.append(Transfer(target=loser.name, value=payment))

        moved = False
        if is_zero(balances[left]):
            left += 1
            moved = True
        if is_zero(balances[right]):
            right -= 1
            moved = True
        if not moved:
            # Floating residue larger than EPSILON with nothing left to match.
            break

    for result in results:
        if is_zero(result.net):
            result.net = 0.0

    return Payout(slippage=slippage, players=results)


def settle_ledger(players: Sequence[PlayerEntry]) -> Payout:
    """Like `calc_payouts`, but refuses to settle fewer than two parties."""

    if len(players) < 2:
        raise InsufficientParticipants(len(players))
    return calc_payouts(players)


def participant_label(
    participant_id: str,
    display_name: Optional[str] = None,
    venmo_handle: Optional[str] = None,
) -> str:
    """Preferred settlement label: @handle, then display name, then a short id."""

    if venmo_handle:
        return f"@{venmo_handle}"
    if display_name:
        return display_name
    return f"Player_{participant_id[:8]}"


def guest_label(name: str) -> str:
    return f"{name} (guest)"


def unique_name(base: str, taken: set) -> str:
    name = base
    n = 0
    while name in taken:
        n += 1
        name = f"{base}_{n}"
    taken.add(name)
    return name


def build_settlement_entries(
    participants: Iterable[Participant],
    guests: Iterable[Guest],
    labels: Mapping[str, str],
) -> Tuple[List[PlayerEntry], Dict[str, Optional[str]]]:
    """
    Turn approved participants and eligible guests into settlement entries.

    `labels` maps participant ids to their preferred label. Duplicate labels
    get a numeric suffix. The second return value maps every entry name back
    to its participant id, or to None for guests.
    """

    taken: set = set()
    entries: List[PlayerEntry] = []
    identities: Dict[str, Optional[str]] = {}

    for p in participants:
        base = labels.get(p.participant_id) or participant_label(p.participant_id)
        name = unique_name(base, taken)
        entries.append(PlayerEntry(name=name, cash_in=p.cash_in, cash_out=p.cash_out))
        identities[name] = p.participant_id

    for g in guests:
        name = unique_name(guest_label(g.name), taken)
        entries.append(PlayerEntry(name=name, cash_in=g.cash_in, cash_out=g.cash_out))
        identities[name] = None

    return entries, identities


def transfer_count(payout: Payout) -> int:
    return sum(len(p.paid_to) for p in payout.players)


def sum_net(payout: Payout) -> float:
    return sum(p.net for p in payout.players)
