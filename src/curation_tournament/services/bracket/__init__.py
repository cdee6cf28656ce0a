from .builder import (
    MIN_WORKS,
    build_bracket,
    ensure_round_ready,
    feeder_target,
    is_power_of_two,
    nearest_valid_sizes,
    order_entries,
    propagate_winner,
    reset_brackets,
    standard_seed_order,
)
from .engine import BracketOutcome, RoundResolver
from .manager import ACTIONS, TournamentManager

__all__ = [
    "ACTIONS",
    "MIN_WORKS",
    "BracketOutcome",
    "RoundResolver",
    "TournamentManager",
    "build_bracket",
    "ensure_round_ready",
    "feeder_target",
    "is_power_of_two",
    "nearest_valid_sizes",
    "order_entries",
    "propagate_winner",
    "reset_brackets",
    "standard_seed_order",
]
