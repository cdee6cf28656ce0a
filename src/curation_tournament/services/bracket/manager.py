"""Tournament session manager: the lifecycle state machine."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Literal

import structlog

from curation_tournament.core.config import TournamentConfig
from curation_tournament.core.errors import (
    ConcurrentAdvanceConflict,
    FeatureDisabledError,
    InvalidTransition,
    InvalidWorkId,
    RoundNotReady,
    SessionNotFound,
    TournamentError,
)
from curation_tournament.models import (
    Bracket,
    SessionStatus,
    TournamentPage,
    TournamentSession,
    Work,
)
from curation_tournament.services.bracket.builder import (
    build_bracket,
    ensure_round_ready,
    propagate_winner,
    reset_brackets,
)
from curation_tournament.services.bracket.engine import RoundResolver
from curation_tournament.services.judge import Judge
from curation_tournament.services.storage import SessionStore, StoredSession

logger = structlog.get_logger()

Action = Literal["advance", "reset", "complete", "cancel"]
ACTIONS: tuple[str, ...] = ("advance", "reset", "complete", "cancel")

OVERRIDE_REASONING = "Administrative override"

_OPEN = (SessionStatus.SETUP, SessionStatus.ACTIVE)


class TournamentManager:
    """Owns every tournament session transition.

    Reads go straight to the store. Transitions load a copy, mutate it, and
    write it back with the version that was read, so a lost race surfaces as
    ``ConcurrentAdvanceConflict`` instead of a silent overwrite. Transitions on
    one session are also refused while another is in flight in this process.
    """

    def __init__(
        self,
        store: SessionStore,
        judge: Judge,
        config: TournamentConfig | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            store: Session persistence.
            judge: Judge used to resolve brackets.
            config: Engine configuration. Defaults to ``TournamentConfig()``.
        """
        self.config = config or TournamentConfig()
        self.store = store
        self.judge = judge
        self.resolver = RoundResolver.from_config(judge, self.config)
        self._in_flight: set[str] = set()

    # ==================== Guards ====================

    def _require_enabled(self) -> None:
        features = self.config.features
        if not features.curation_enabled:
            raise FeatureDisabledError("curation_enabled")
        if not features.tournament_mode_enabled:
            raise FeatureDisabledError("tournament_mode_enabled")

    @staticmethod
    def _require_status(
        session: TournamentSession, action: str, *allowed: SessionStatus
    ) -> None:
        if session.status not in allowed:
            raise InvalidTransition(session.id, action, session.status.value)

    @asynccontextmanager
    async def _exclusive(self, session_id: str, action: str) -> AsyncIterator[None]:
        """Claim the session for one transition.

        The claim is taken before the first await, so of two callers racing in
        the same event loop exactly one gets through.
        """
        if session_id in self._in_flight:
            logger.warning("transition_conflict", session_id=session_id, action=action)
            raise ConcurrentAdvanceConflict(session_id, action)
        self._in_flight.add(session_id)
        try:
            yield
        finally:
            self._in_flight.discard(session_id)

    async def _load(self, session_id: str, action: str | None) -> StoredSession:
        stored = await self.store.get(session_id)
        if stored is None:
            raise SessionNotFound(session_id, action)
        return stored

    # ==================== Queries ====================

    async def create_tournament(
        self,
        works: Sequence[str | Work],
        curator: str,
        name: str | None = None,
    ) -> TournamentSession:
        """Validate the entrants, build the bracket tree and persist it.

        Args:
            works: Work IDs (or Work records) in the desired seeding order.
            curator: Curator persona key.
            name: Optional display name.

        Returns:
            The new session in SETUP status.

        Raises:
            FeatureDisabledError: If tournaments are switched off.
            InvalidTournamentSize: If the count is not a power of two >= 4.
            InvalidWorkId: If an ID is blank or duplicated.
            UnknownCuratorError: If the curator is unknown.
        """
        self._require_enabled()
        session = build_bracket(works, curator, name=name, pairing=self.config.pairing)
        await self.store.put(session, None)
        logger.info(
            "tournament_created",
            session_id=session.id,
            curator=session.curator,
            works=session.work_count,
            rounds=session.total_rounds,
            pairing=session.pairing,
        )
        return session

    async def get_tournament(self, session_id: str) -> TournamentSession:
        """Fetch a session. Never mutates state.

        Raises:
            SessionNotFound: If no such session exists.
        """
        self._require_enabled()
        stored = await self._load(session_id, None)
        return stored.session

    async def list_tournaments(
        self,
        status: SessionStatus | None = None,
        page: int = 1,
        limit: int | None = None,
    ) -> TournamentPage:
        """List sessions newest first.

        ``page`` is clamped to >= 1 and ``limit`` to 1..max_page_limit.
        """
        self._require_enabled()
        page = max(page, 1)
        limit = limit if limit is not None else self.config.default_page_limit
        limit = min(max(limit, 1), self.config.max_page_limit)

        sessions, total = await self.store.list(status, offset=(page - 1) * limit, limit=limit)
        return TournamentPage(sessions=sessions, total=total, page=page, limit=limit)

    # ==================== Transitions ====================

    async def advance_tournament(
        self,
        session_id: str,
        action: Action = "advance",
        forced_winner: str | None = None,
        bracket_id: str | None = None,
    ) -> TournamentSession:
        """Apply one lifecycle action to a session.

        Actions:
            advance: Resolve every unresolved bracket of the current round
                concurrently. From SETUP this also starts the tournament.
            reset: Clear all results and return to SETUP (ACTIVE only).
            complete: With ``bracket_id``, force that bracket's winner.
                Without it, force the tournament's final winner.
            cancel: Abandon the tournament.

        Args:
            session_id: Session to act on.
            action: One of ``advance``, ``reset``, ``complete``, ``cancel``.
            forced_winner: Winner for ``complete``.
            bracket_id: Bracket to override with ``complete``.

        Returns:
            The session as persisted after the transition.

        Raises:
            SessionNotFound: If no such session exists.
            InvalidTransition: If the status forbids the action.
            RoundNotReady: If a round barrier blocks the action, or some
                brackets stayed unresolved after retries. Resolved brackets
                are persisted before this is raised.
            InvalidWorkId: If ``forced_winner`` is not eligible.
            ConcurrentAdvanceConflict: If another transition got there first.
        """
        if action not in ACTIONS:
            msg = f"Unknown action {action!r}; expected one of {', '.join(ACTIONS)}"
            raise ValueError(msg)
        self._require_enabled()

        async with self._exclusive(session_id, action):
            stored = await self._load(session_id, action)
            session = stored.session
            previous = session.status

            deferred: RoundNotReady | None = None
            if action == "advance":
                deferred = await self._advance(session)
            elif action == "reset":
                self._reset(session)
            elif action == "complete":
                self._complete(session, forced_winner, bracket_id)
            else:
                self._cancel(session)

            session.touch()
            await self.store.put(session, stored.version)

        logger.info(
            "tournament_transition",
            session_id=session.id,
            action=action,
            status_from=previous.value,
            status_to=session.status.value,
            current_round=session.current_round,
        )
        if deferred is not None:
            raise deferred
        return session

    async def run_to_completion(self, session_id: str) -> TournamentSession:
        """Advance repeatedly until the session completes.

        Stops at the first error, e.g. a round the judge could not finish.
        """
        session = await self.get_tournament(session_id)
        while session.status is not SessionStatus.COMPLETED:
            session = await self.advance_tournament(session_id, "advance")
        return session

    # ==================== Action handlers ====================

    async def _advance(self, session: TournamentSession) -> RoundNotReady | None:
        self._require_status(session, "advance", *_OPEN)
        round_number = session.current_round
        ensure_round_ready(session, round_number, "advance")

        if session.status is SessionStatus.SETUP:
            session.status = SessionStatus.ACTIVE

        pending = session.unresolved(round_number)
        logger.info(
            "round_start",
            session_id=session.id,
            round=round_number,
            brackets=len(pending),
        )
        outcomes = await self.resolver.resolve_round(pending, session.curator)

        # Applied only once the whole round has returned
        resolved_at = datetime.now(UTC)
        failed: list[str] = []
        for bracket, outcome in zip(pending, outcomes, strict=True):
            if outcome.judgment is None:
                failed.append(bracket.id)
                continue
            bracket.resolve(
                outcome.judgment.winner_id, outcome.judgment.reasoning, at=resolved_at
            )
            propagate_winner(session, bracket)

        if failed:
            logger.warning(
                "round_incomplete",
                session_id=session.id,
                round=round_number,
                unresolved=failed,
            )
            return RoundNotReady(session.id, round_number, failed)

        self._finish_round(session, round_number)
        return None

    def _finish_round(self, session: TournamentSession, round_number: int) -> None:
        logger.info("round_complete", session_id=session.id, round=round_number)
        if round_number < session.total_rounds:
            session.current_round = round_number + 1
            return

        final = session.round_brackets(round_number)[0]
        session.final_winner = final.winner_id
        session.status = SessionStatus.COMPLETED
        logger.info("tournament_completed", session_id=session.id, winner=final.winner_id)

    def _reset(self, session: TournamentSession) -> None:
        self._require_status(session, "reset", SessionStatus.ACTIVE)
        reset_brackets(session)
        session.status = SessionStatus.SETUP

    def _cancel(self, session: TournamentSession) -> None:
        self._require_status(session, "cancel", *_OPEN)
        session.status = SessionStatus.CANCELLED

    def _complete(
        self,
        session: TournamentSession,
        forced_winner: str | None,
        bracket_id: str | None,
    ) -> None:
        self._require_status(session, "complete", *_OPEN)
        if not forced_winner:
            raise TournamentError(
                "complete requires a forced winner",
                session_id=session.id,
                action="complete",
            )

        if bracket_id is not None:
            self._override_bracket(session, bracket_id, forced_winner)
            return

        if forced_winner not in session.entrant_ids():
            raise InvalidWorkId(
                forced_winner,
                "not an entrant of this tournament",
                session_id=session.id,
                action="complete",
            )
        session.final_winner = forced_winner
        session.forced_completion = True
        session.status = SessionStatus.COMPLETED
        logger.warning(
            "tournament_force_completed",
            session_id=session.id,
            winner=forced_winner,
            unresolved=[b.id for b in session.brackets if not b.is_resolved],
        )

    def _override_bracket(
        self, session: TournamentSession, bracket_id: str, winner_id: str
    ) -> None:
        bracket: Bracket | None = session.get_bracket(bracket_id)
        if bracket is None:
            raise TournamentError(
                "Unknown bracket",
                session_id=session.id,
                action="complete",
                context={"bracket": bracket_id},
            )
        if bracket.is_resolved:
            raise TournamentError(
                "Bracket already has a winner",
                session_id=session.id,
                action="complete",
                context={"bracket": bracket_id, "winner": bracket.winner_id},
                suggestion="Reset the tournament to change settled results.",
            )
        ensure_round_ready(session, bracket.round, "complete")
        if winner_id not in bracket.work_ids():
            raise InvalidWorkId(
                winner_id,
                f"not seated in {bracket_id}",
                session_id=session.id,
                action="complete",
            )

        bracket.resolve(winner_id, OVERRIDE_REASONING, overridden=True)
        propagate_winner(session, bracket)
        if session.status is SessionStatus.SETUP:
            session.status = SessionStatus.ACTIVE
        logger.warning(
            "bracket_overridden",
            session_id=session.id,
            bracket=bracket_id,
            winner=winner_id,
        )

        if bracket.round == session.current_round and session.is_round_complete(
            bracket.round
        ):
            self._finish_round(session, bracket.round)
