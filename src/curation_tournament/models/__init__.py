from .record import SessionRecord
from .tournament import (
    Bracket,
    BracketSlot,
    SessionStatus,
    TournamentPage,
    TournamentSession,
)
from .work import Metrics, MetricWeights, Verdict, Work

__all__ = [
    "Bracket",
    "BracketSlot",
    "MetricWeights",
    "Metrics",
    "SessionRecord",
    "SessionStatus",
    "TournamentPage",
    "TournamentSession",
    "Verdict",
    "Work",
]
