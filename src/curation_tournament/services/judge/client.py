"""Judge port: pairwise comparison of two works on behalf of a curator."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import httpx
import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError

from curation_tournament.core.config import JudgeConfig
from curation_tournament.core.errors import ConfigurationError, JudgeError, JudgeTimeoutError
from curation_tournament.models import BracketSlot
from curation_tournament.services.judge.curators import get_curator

logger = structlog.get_logger()

_FAKE_REASONINGS_PATH = Path(__file__).parent / "fake_reasonings.yaml"


class Judgment(BaseModel):
    """Outcome of one comparison.

    Attributes:
        winner_id: ID of the winning work; must be one of the two compared.
        reasoning: Human-readable rationale.
    """

    winner_id: str = Field(..., min_length=1)
    reasoning: str


def _load_fake_reasonings() -> dict[str, list[str]]:
    """Load rationale templates from YAML file (cached after first call)."""
    if not hasattr(_load_fake_reasonings, "_cache"):
        with _FAKE_REASONINGS_PATH.open(encoding="utf-8") as f:
            _load_fake_reasonings._cache = yaml.safe_load(f)
    return _load_fake_reasonings._cache


class Judge(ABC):
    """Abstract base class for async judges.

    The tournament engine treats a judge as a slow, fallible black box. It
    never guesses a winner on its behalf.
    """

    @abstractmethod
    async def compare(self, work_a: BracketSlot, work_b: BracketSlot, curator: str) -> Judgment:
        """Decide which of two works wins.

        Args:
            work_a: Work seated in slot A.
            work_b: Work seated in slot B.
            curator: Curator persona key.

        Returns:
            Judgment naming the winner and the rationale.

        Raises:
            JudgeError: If the comparison failed.
        """

    async def close(self) -> None:  # noqa: B027
        """Close any resources. Override if needed."""


class FakeJudge(Judge):
    """Deterministic offline judge for tests and dry runs.

    The decision depends only on the seed, the curator and the two work IDs,
    so concurrent comparisons give the same answers in any order.
    """

    def __init__(self, seed: int = 42) -> None:
        self.seed = seed
        self.call_count = 0

    async def compare(self, work_a: BracketSlot, work_b: BracketSlot, curator: str) -> Judgment:
        self.call_count += 1
        profile = get_curator(curator, action="advance")
        rng = random.Random(f"{self.seed}:{profile.key}:{work_a.work_id}:{work_b.work_id}")  # noqa: S311
        winner, loser = (work_a, work_b) if rng.random() < 0.5 else (work_b, work_a)  # noqa: PLR2004
        template = rng.choice(_load_fake_reasonings()[profile.key])
        return Judgment(
            winner_id=winner.work_id,
            reasoning=template.format(winner=winner.title, loser=loser.title),
        )


class HTTPJudge(Judge):
    """Client for a remote judging service.

    Posts both works and the curator persona as JSON and expects
    ``{"winner_id": ..., "reasoning": ...}`` back.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str | None = None,
        timeout: float | None = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize remote judge client.

        Args:
            endpoint: URL of the comparison endpoint.
            api_key: Optional bearer token.
            timeout: HTTP timeout in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.endpoint = endpoint
        self.api_key = api_key
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def _payload(self, work_a: BracketSlot, work_b: BracketSlot, curator: str) -> dict[str, Any]:
        profile = get_curator(curator, action="advance")
        return {
            "curator": profile.key,
            "persona": {
                "name": profile.name,
                "focus": list(profile.focus),
                "personality": profile.personality,
            },
            "work_a": work_a.model_dump(),
            "work_b": work_b.model_dump(),
        }

    async def compare(self, work_a: BracketSlot, work_b: BracketSlot, curator: str) -> Judgment:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        logger.debug("judge_request", a=work_a.work_id, b=work_b.work_id, curator=curator)
        try:
            response = await self.client.post(
                self.endpoint,
                headers=headers,
                json=self._payload(work_a, work_b, curator),
            )
            response.raise_for_status()
            return Judgment.model_validate(response.json())
        except httpx.TimeoutException as e:
            msg = f"Judge request timed out: {e}"
            raise JudgeTimeoutError(msg) from e
        except httpx.HTTPStatusError as e:
            msg = f"Judge returned HTTP {e.response.status_code}"
            raise JudgeError(msg) from e
        except httpx.HTTPError as e:
            msg = f"Judge request failed: {e}"
            raise JudgeError(msg) from e
        except (ValueError, ValidationError) as e:
            msg = f"Failed to parse judge response: {e}"
            raise JudgeError(msg) from e

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()


def create_judge(
    config: JudgeConfig,
    dry_run: bool = False,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Judge:
    """Create appropriate judge based on settings.

    Args:
        config: Judge configuration.
        dry_run: Use the fake judge regardless of ``config.kind``.
        transport: Optional httpx transport for the HTTP judge.

    Returns:
        Judge instance.

    Raises:
        ConfigurationError: If the HTTP judge has no endpoint.
    """
    if dry_run or config.kind == "fake":
        logger.info("using_fake_judge", seed=config.seed)
        return FakeJudge(seed=config.seed)

    if not config.endpoint:
        raise ConfigurationError(
            "HTTP judge requires an endpoint",
            "Set judge.endpoint in your configuration or use --dry-run.",
        )
    return HTTPJudge(
        config.endpoint,
        api_key=config.get_api_key(),
        timeout=config.timeout_seconds,
        transport=transport,
    )
