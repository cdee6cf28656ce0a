"""Built-in curator personas used for judging and weighted scoring."""

from __future__ import annotations

from dataclasses import dataclass

from curation_tournament.core.errors import UnknownCuratorError
from curation_tournament.models import MetricWeights


@dataclass(frozen=True)
class CuratorProfile:
    """A judging persona.

    Attributes:
        key: Identifier stored on sessions ("sue", "nina").
        name: Display name.
        focus: Areas the persona weighs most, in priority order.
        weights: Metric weights applied when scoring on the persona's behalf.
        personality: Short description passed to judging services.
    """

    key: str
    name: str
    focus: tuple[str, ...]
    weights: MetricWeights
    personality: str = ""


CURATORS: dict[str, CuratorProfile] = {
    "sue": CuratorProfile(
        key="sue",
        name="SUE",
        focus=(
            "Cultural Relevance",
            "Innovation Index",
            "Conceptual Depth",
            "Technical Excellence",
            "Critical Analysis",
        ),
        weights=MetricWeights(
            cultural=0.25, innovation=0.25, conceptual=0.20, technical=0.15, emotional=0.15
        ),
        personality="rigorous, culturally-aware, critically sharp",
    ),
    "nina": CuratorProfile(
        key="nina",
        name="NINA",
        focus=(
            "Emotional Resonance",
            "Aesthetic Innovation",
            "Conceptual Strength",
            "Technical Mastery",
            "Cultural Dialogue",
        ),
        weights=MetricWeights(
            emotional=0.30, innovation=0.25, conceptual=0.20, cultural=0.15, technical=0.10
        ),
        personality="intuitive, emotionally-attuned, aesthetically-focused",
    ),
}


def get_curator(key: str, action: str | None = None) -> CuratorProfile:
    """Look up a curator persona by key (case-insensitive).

    ``action`` names the operation that asked, for the error report.

    Raises:
        UnknownCuratorError: If the key is not a built-in persona.
    """
    profile = CURATORS.get(key.strip().lower())
    if profile is None:
        raise UnknownCuratorError(key, sorted(CURATORS), action=action)
    return profile
