from .client import FakeJudge, HTTPJudge, Judge, Judgment, create_judge
from .curators import CURATORS, CuratorProfile, get_curator

__all__ = [
    "CURATORS",
    "CuratorProfile",
    "FakeJudge",
    "HTTPJudge",
    "Judge",
    "Judgment",
    "create_judge",
    "get_curator",
]
