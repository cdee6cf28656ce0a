"""Concurrent resolution of one tournament round.

Every bracket in a round is independent, so all of them are judged at once,
bounded by a semaphore. Each comparison gets its own timeout and its own
retry budget; a comparison that keeps failing is reported back instead of
raising, so the rest of the round still lands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from curation_tournament.core.config import TournamentConfig
from curation_tournament.core.errors import JudgeError, JudgeTimeoutError
from curation_tournament.models import Bracket
from curation_tournament.services.judge import Judge, Judgment

logger = structlog.get_logger()


@dataclass(frozen=True)
class BracketOutcome:
    """Result of judging one bracket.

    Attributes:
        bracket_id: Bracket that was judged.
        judgment: Winner and rationale, or None if every attempt failed.
        error: Last judge error when ``judgment`` is None.
        attempts: Number of judge calls made.
    """

    bracket_id: str
    judgment: Judgment | None = None
    error: JudgeError | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.judgment is not None


class RoundResolver:
    """Fans a round's comparisons out to the judge and gathers the outcomes."""

    def __init__(
        self,
        judge: Judge,
        max_concurrency: int = 5,
        timeout: float | None = 60.0,
        max_attempts: int = 3,
        backoff_min: float = 1.0,
        backoff_max: float = 30.0,
    ) -> None:
        """Initialize the resolver.

        Args:
            judge: Judge used for every comparison.
            max_concurrency: Maximum judge calls in flight.
            timeout: Per-call timeout in seconds; None disables it.
            max_attempts: Calls per comparison before giving up.
            backoff_min: Minimum wait between attempts, in seconds.
            backoff_max: Maximum wait between attempts, in seconds.
        """
        self.judge = judge
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_min = backoff_min
        self.backoff_max = backoff_max
        self._semaphore = asyncio.Semaphore(max_concurrency)

    @classmethod
    def from_config(cls, judge: Judge, config: TournamentConfig) -> RoundResolver:
        return cls(
            judge,
            max_concurrency=config.max_concurrency,
            timeout=config.judge.timeout_seconds,
            max_attempts=config.judge.max_attempts,
            backoff_min=config.judge.backoff_min,
            backoff_max=config.judge.backoff_max,
        )

    async def _compare_once(self, bracket: Bracket, curator: str) -> Judgment:
        """One judge call under the concurrency limit and timeout."""
        if bracket.slot_a is None or bracket.slot_b is None:
            msg = f"Bracket {bracket.id} has pending slots"
            raise ValueError(msg)

        async with self._semaphore:
            try:
                judgment = await asyncio.wait_for(
                    self.judge.compare(bracket.slot_a, bracket.slot_b, curator),
                    timeout=self.timeout,
                )
            except TimeoutError as e:
                msg = f"Judge timed out after {self.timeout}s"
                raise JudgeTimeoutError(msg, bracket.id) from e

        if judgment.winner_id not in bracket.work_ids():
            msg = f"Judge picked {judgment.winner_id!r}, which is not seated in {bracket.id}"
            raise JudgeError(msg, bracket.id)
        return judgment

    async def judge_bracket(self, bracket: Bracket, curator: str) -> BracketOutcome:
        """Judge one bracket with retries and exponential backoff.

        Returns:
            BracketOutcome; failures are captured, not raised.
        """
        attempts = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=1, min=self.backoff_min, max=self.backoff_max),
                retry=retry_if_exception_type(JudgeError),
                reraise=True,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    if attempts > 1:
                        logger.info("judge_retry", bracket=bracket.id, attempt=attempts)
                    judgment = await self._compare_once(bracket, curator)
        except JudgeError as e:
            logger.warning(
                "bracket_unresolved",
                bracket=bracket.id,
                attempts=attempts,
                timeout=isinstance(e, JudgeTimeoutError),
                error=str(e),
            )
            return BracketOutcome(bracket.id, error=e, attempts=attempts)

        logger.debug("bracket_judged", bracket=bracket.id, winner=judgment.winner_id)
        return BracketOutcome(bracket.id, judgment=judgment, attempts=attempts)

    async def resolve_round(self, brackets: list[Bracket], curator: str) -> list[BracketOutcome]:
        """Judge all brackets concurrently; returns outcomes in input order.

        If one comparison raises something other than a judge failure, the
        sibling comparisons are cancelled and awaited before it propagates.
        """
        tasks = [
            asyncio.create_task(self.judge_bracket(bracket, curator)) for bracket in brackets
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
