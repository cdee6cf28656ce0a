"""Tournament session and bracket records."""

from __future__ import annotations

import math
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class SessionStatus(str, Enum):
    """Tournament session lifecycle status."""

    SETUP = "SETUP"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.CANCELLED)


class BracketSlot(BaseModel):
    """A work seated in one side of a bracket."""

    work_id: str
    title: str


class Bracket(BaseModel):
    """One pairwise matchup within one round.

    A slot of ``None`` is pending: its feeder bracket has not resolved yet.

    Attributes:
        id: Unique within the session (``bracket-<n>``).
        round: 1-indexed round number.
        position: 0-indexed position within the round.
        slot_a: First work, or None while pending.
        slot_b: Second work, or None while pending.
        winner_id: Set once, together with ``reasoning``.
        reasoning: Judge rationale for the winner.
        resolved_at: When the winner was recorded.
        overridden: True when the winner came from an administrative override.
    """

    id: str
    round: int = Field(..., ge=1)
    position: int = Field(..., ge=0)
    slot_a: BracketSlot | None = None
    slot_b: BracketSlot | None = None
    winner_id: str | None = None
    reasoning: str | None = None
    resolved_at: datetime | None = None
    overridden: bool = False

    @property
    def is_ready(self) -> bool:
        """Both slots hold a work."""
        return self.slot_a is not None and self.slot_b is not None

    @property
    def is_resolved(self) -> bool:
        return self.winner_id is not None

    def work_ids(self) -> list[str]:
        return [s.work_id for s in (self.slot_a, self.slot_b) if s is not None]

    def slot_for(self, work_id: str) -> BracketSlot | None:
        for slot in (self.slot_a, self.slot_b):
            if slot is not None and slot.work_id == work_id:
                return slot
        return None

    def resolve(
        self,
        winner_id: str,
        reasoning: str,
        *,
        overridden: bool = False,
        at: datetime | None = None,
    ) -> None:
        """Record the winner and its rationale in one step."""
        self.winner_id, self.reasoning, self.resolved_at, self.overridden = (
            winner_id,
            reasoning,
            at or datetime.now(UTC),
            overridden,
        )

    def clear(self, *, keep_slots: bool) -> None:
        """Drop the result and, unless ``keep_slots``, the seated works."""
        self.winner_id = None
        self.reasoning = None
        self.resolved_at = None
        self.overridden = False
        if not keep_slots:
            self.slot_a = None
            self.slot_b = None


class TournamentSession(BaseModel):
    """Aggregate root for one single-elimination tournament run."""

    id: str
    name: str
    curator: str
    status: SessionStatus = SessionStatus.SETUP
    work_count: int
    total_rounds: int
    current_round: int = 1
    pairing: str = "consecutive"
    brackets: list[Bracket] = Field(default_factory=list)
    final_winner: str | None = None
    forced_completion: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def round_brackets(self, round_number: int) -> list[Bracket]:
        """Brackets of one round, ordered by position."""
        return sorted(
            (b for b in self.brackets if b.round == round_number),
            key=lambda b: b.position,
        )

    def get_bracket(self, bracket_id: str) -> Bracket | None:
        return next((b for b in self.brackets if b.id == bracket_id), None)

    def unresolved(self, round_number: int) -> list[Bracket]:
        return [b for b in self.round_brackets(round_number) if not b.is_resolved]

    def is_round_complete(self, round_number: int) -> bool:
        return not self.unresolved(round_number)

    def entrant_ids(self) -> list[str]:
        """Work IDs seated in round 1, in bracket order."""
        return [wid for b in self.round_brackets(1) for wid in b.work_ids()]

    def touch(self) -> None:
        self.updated_at = datetime.now(UTC)


class TournamentPage(BaseModel):
    """One page of sessions, newest first."""

    sessions: list[TournamentSession]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0
