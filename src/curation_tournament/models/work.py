"""Work records and their quality metrics."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Verdict(str, Enum):
    """Discrete quality label derived from a composite score."""

    MASTERWORK = "MASTERWORK"
    INCLUDE = "INCLUDE"
    MAYBE = "MAYBE"
    EXCLUDE = "EXCLUDE"


class Metrics(BaseModel):
    """Five curatorial sub-scores, each in [0, 100]."""

    cultural: int = Field(..., ge=0, le=100)
    technical: int = Field(..., ge=0, le=100)
    conceptual: int = Field(..., ge=0, le=100)
    emotional: int = Field(..., ge=0, le=100)
    innovation: int = Field(..., ge=0, le=100)


class MetricWeights(BaseModel):
    """Per-metric weights. Not renormalized; see ``scoring.score``."""

    cultural: float = Field(default=0.2, ge=0)
    technical: float = Field(default=0.2, ge=0)
    conceptual: float = Field(default=0.2, ge=0)
    emotional: float = Field(default=0.2, ge=0)
    innovation: float = Field(default=0.2, ge=0)


class Work(BaseModel):
    """A submitted content item under evaluation.

    Attributes:
        id: Stable caller-supplied identifier.
        title: Display label.
        metrics: Sub-scores, only present for works that can be scored.
        score: Weighted composite, absent until scored.
        verdict: Verdict for ``score``, absent until scored.
    """

    id: str = Field(..., min_length=1)
    title: str
    metrics: Metrics | None = None
    score: int | None = None
    verdict: Verdict | None = None

    @property
    def is_scored(self) -> bool:
        return self.score is not None
