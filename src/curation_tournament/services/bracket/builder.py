"""Single-elimination bracket construction and bookkeeping.

All functions are stateless. The ones that take a session mutate it in place;
callers own the copy they pass in.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from curation_tournament.core.config import PairingPolicy
from curation_tournament.core.errors import InvalidTournamentSize, InvalidWorkId, RoundNotReady
from curation_tournament.models import Bracket, BracketSlot, TournamentSession, Work
from curation_tournament.services.judge.curators import get_curator

MIN_WORKS = 4


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def nearest_valid_sizes(count: int) -> list[int]:
    """Valid tournament sizes closest to ``count`` (below if any, and above)."""
    if count <= MIN_WORKS:
        return [MIN_WORKS]
    upper = 2 ** math.ceil(math.log2(count))
    if upper == count:
        return [count]
    lower = upper // 2
    return [lower, upper] if lower >= MIN_WORKS else [upper]


def standard_seed_order(n: int) -> list[int]:
    """Seed numbers (1-indexed) in bracket slot order.

    Top seeds land in opposite halves, so seeds 1 and 2 can only meet in the
    final: n=8 gives 1,8,4,5,3,6,2,7.
    """
    if n == 2:  # noqa: PLR2004
        return [1, 2]
    order: list[int] = []
    for seed in standard_seed_order(n // 2):
        order.extend((seed, n + 1 - seed))
    return order


def default_title(work_id: str) -> str:
    return f"Work {work_id[-4:]}"


def _to_slot(entry: str | Work) -> BracketSlot:
    if isinstance(entry, Work):
        return BracketSlot(work_id=entry.id, title=entry.title)
    return BracketSlot(work_id=entry, title=default_title(entry))


def _validate_entries(entries: Sequence[str | Work]) -> None:
    count = len(entries)
    if count < MIN_WORKS or not is_power_of_two(count):
        raise InvalidTournamentSize(count, nearest_valid_sizes(count))

    seen: set[str] = set()
    for entry in entries:
        work_id = entry.id if isinstance(entry, Work) else entry
        if not isinstance(work_id, str) or not work_id.strip():
            raise InvalidWorkId(str(work_id), "work IDs must be non-empty strings")
        if work_id in seen:
            raise InvalidWorkId(work_id, "work IDs must be unique")
        seen.add(work_id)


def order_entries(
    entries: Sequence[str | Work], pairing: PairingPolicy
) -> list[str | Work]:
    """Order entries so that consecutive pairs form the round-1 matchups.

    ``consecutive`` keeps the caller's order. ``seeded`` ranks by score
    (unscored works last, input order breaks ties) and places seeds with the
    standard bracket layout.
    """
    if pairing == "consecutive":
        return list(entries)

    def sort_key(indexed: tuple[int, str | Work]) -> tuple[int, int, int]:
        index, entry = indexed
        entry_score = entry.score if isinstance(entry, Work) else None
        if entry_score is None:
            return (1, 0, index)
        return (0, -entry_score, index)

    ranked = [entry for _, entry in sorted(enumerate(entries), key=sort_key)]
    return [ranked[seed - 1] for seed in standard_seed_order(len(ranked))]


def build_bracket(
    entries: Sequence[str | Work],
    curator: str,
    name: str | None = None,
    pairing: PairingPolicy = "consecutive",
) -> TournamentSession:
    """Build a full tournament skeleton in SETUP status.

    Round 1 brackets pair consecutive entries of the (policy-ordered) list.
    Every later round is created up front with pending slots.

    Args:
        entries: Work IDs or Work records. Count must be a power of two >= 4.
        curator: Curator persona key.
        name: Display name. Defaults to "<CURATOR> Tournament <date>".
        pairing: Pairing policy.

    Returns:
        New TournamentSession with ``work_count - 1`` brackets.

    Raises:
        InvalidTournamentSize: If the count is not a power of two >= 4.
        InvalidWorkId: If a work ID is blank or duplicated.
        UnknownCuratorError: If the curator is not a built-in persona.
    """
    _validate_entries(entries)
    profile = get_curator(curator, action="create")

    ordered = order_entries(entries, pairing)
    work_count = len(ordered)
    total_rounds = int(math.log2(work_count))

    brackets: list[Bracket] = []
    bracket_number = 1
    for position in range(work_count // 2):
        brackets.append(
            Bracket(
                id=f"bracket-{bracket_number}",
                round=1,
                position=position,
                slot_a=_to_slot(ordered[2 * position]),
                slot_b=_to_slot(ordered[2 * position + 1]),
            )
        )
        bracket_number += 1

    for round_number in range(2, total_rounds + 1):
        for position in range(work_count // 2**round_number):
            brackets.append(
                Bracket(id=f"bracket-{bracket_number}", round=round_number, position=position)
            )
            bracket_number += 1

    now = datetime.now(UTC)
    return TournamentSession(
        id=f"tournament-{uuid.uuid4().hex}",
        name=name or f"{profile.name} Tournament {now.date().isoformat()}",
        curator=profile.key,
        work_count=work_count,
        total_rounds=total_rounds,
        pairing=pairing,
        brackets=brackets,
        created_at=now,
        updated_at=now,
    )


def feeder_target(position: int) -> tuple[int, str]:
    """Where the winner of the bracket at ``position`` goes in the next round.

    Returns:
        Tuple of (next_round_position, slot attribute name).
    """
    return position // 2, "slot_a" if position % 2 == 0 else "slot_b"


def propagate_winner(session: TournamentSession, bracket: Bracket) -> None:
    """Seat a resolved bracket's winner in its next-round bracket."""
    if bracket.winner_id is None or bracket.round >= session.total_rounds:
        return
    winner_slot = bracket.slot_for(bracket.winner_id)
    if winner_slot is None:
        msg = f"Winner {bracket.winner_id} is not seated in {bracket.id}"
        raise ValueError(msg)

    next_position, slot_name = feeder_target(bracket.position)
    target = session.round_brackets(bracket.round + 1)[next_position]
    setattr(target, slot_name, winner_slot.model_copy())


def ensure_round_ready(session: TournamentSession, round_number: int, action: str) -> None:
    """Enforce the round barrier before resolving ``round_number``.

    Raises:
        RoundNotReady: If any bracket of the previous round has no winner.
    """
    if round_number <= 1:
        return
    pending = session.unresolved(round_number - 1)
    if pending:
        raise RoundNotReady(session.id, round_number - 1, [b.id for b in pending], action)


def reset_brackets(session: TournamentSession) -> None:
    """Clear all results and restore pending slots for rounds > 1."""
    for bracket in session.brackets:
        bracket.clear(keep_slots=bracket.round == 1)
    session.current_round = 1
    session.final_winner = None
    session.forced_completion = False
