"""Curation Tournament.

Score artworks against a curator's weighted rubric and run single-elimination
tournaments judged pairwise by a curator persona.
"""

from curation_tournament.services.bracket import TournamentManager
from curation_tournament.services.scoring import apply_score, score_work, score_works

__version__ = "0.1.0"
__all__ = [
    "TournamentManager",
    "__version__",
    "apply_score",
    "score_work",
    "score_works",
]
