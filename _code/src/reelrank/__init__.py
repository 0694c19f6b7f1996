"""reelrank: pairwise Elo ranking engine for film collections."""

__version__ = "0.1.0"

from reelrank.analytics import (
    ParticipantStats,
    Streak,
    Superlatives,
    Upset,
    biggest_upset,
    clutch_factor,
    confidence,
    longest_streak,
    longest_streak_holder,
    most_volatile,
    peak,
    profile,
    superlatives,
    trajectory,
    trough,
    volatility,
    win_rate,
)
from reelrank.arena import Arena, JudgmentResult, MutationInFlightError
from reelrank.engine_config import EngineConfig, EngineConfigError, load_config
from reelrank.ledger import apply_judgment, record, replay, verify_ledger
from reelrank.matchmaker import InsufficientDataError, Matchmaker, next_pair
from reelrank.models import (
    INITIAL_ELO,
    LOSS,
    WIN,
    MatchRecord,
    Participant,
    Pool,
    StaleReferenceError,
)
from reelrank.rating import (
    EloResult,
    calculate_new_ratings,
    compute_elo,
    expected_score,
    k_factor,
)
from reelrank.simulation import Projection, SimulationStep, Simulator, project, run_round
from reelrank.undo import UndoStack

__all__ = [
    # analytics
    "ParticipantStats",
    "Streak",
    "Superlatives",
    "Upset",
    "biggest_upset",
    "clutch_factor",
    "confidence",
    "longest_streak",
    "longest_streak_holder",
    "most_volatile",
    "peak",
    "profile",
    "superlatives",
    "trajectory",
    "trough",
    "volatility",
    "win_rate",
    # arena
    "Arena",
    "JudgmentResult",
    "MutationInFlightError",
    # engine_config
    "EngineConfig",
    "EngineConfigError",
    "load_config",
    # ledger
    "apply_judgment",
    "record",
    "replay",
    "verify_ledger",
    # matchmaker
    "InsufficientDataError",
    "Matchmaker",
    "next_pair",
    # models
    "INITIAL_ELO",
    "LOSS",
    "WIN",
    "MatchRecord",
    "Participant",
    "Pool",
    "StaleReferenceError",
    # rating
    "EloResult",
    "calculate_new_ratings",
    "compute_elo",
    "expected_score",
    "k_factor",
    # simulation
    "Projection",
    "SimulationStep",
    "Simulator",
    "project",
    "run_round",
    # undo
    "UndoStack",
]
