"""Configuration loader for the ranking engine.

Reads an optional YAML file and provides typed access to every tunable:
K-factor tiers, matchmaking, undo depth, simulation and analytics
parameters. Defaults reproduce the stock engine behaviour, so a missing
file is never an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from reelrank.models import INITIAL_ELO


class EngineConfigError(Exception):
    """Raised for malformed or invalid engine configuration."""


@dataclass(frozen=True)
class KFactorTiers:
    """Experience-tiered K-factors.

    A participant with fewer than ``placement_matches`` matches uses the
    placement K, fewer than ``calibration_matches`` the calibration K,
    otherwise the established K.
    """

    placement: float = 80
    calibration: float = 40
    established: float = 20
    placement_matches: int = 5
    calibration_matches: int = 15

    def for_matches(self, matches: int) -> float:
        """Return the K-factor for a participant with ``matches`` played."""
        if matches < self.placement_matches:
            return self.placement
        if matches < self.calibration_matches:
            return self.calibration
        return self.established


@dataclass(frozen=True)
class MatchmakingConfig:
    """Pair selection settings."""

    proximity_probability: float = 0.4
    proximity_sample: int = 20
    closest_pick: int = 3
    max_retries: int = 10
    queue_depth: int = 5


@dataclass(frozen=True)
class UndoConfig:
    """Undo history bound."""

    depth: int = 10


@dataclass(frozen=True)
class SimulationConfig:
    """Projection simulator settings."""

    perturbation: float = 5.0  # +/- points on the sort key only
    rounds: int = 100
    record_every: int = 1


@dataclass(frozen=True)
class AnalyticsConfig:
    """Windows and thresholds for derived statistics."""

    volatility_window: int = 10
    volatility_baseline: float = 20  # established-tier K
    clutch_threshold: float = 50
    confidence_full_at: int = 20
    most_volatile_min_matches: int = 5
    histogram_bin: int = 50


@dataclass(frozen=True)
class EngineConfig:
    """Top-level engine configuration."""

    initial_elo: float = INITIAL_ELO
    k_factors: KFactorTiers = field(default_factory=KFactorTiers)
    matchmaking: MatchmakingConfig = field(default_factory=MatchmakingConfig)
    undo: UndoConfig = field(default_factory=UndoConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)


def _build_sub(cls: type, data: dict[str, Any] | None) -> Any:
    """Build a frozen dataclass from a dict, ignoring unknown keys."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise EngineConfigError(f"{cls.__name__} section must be a mapping")
    valid = {f.name for f in cls.__dataclass_fields__.values()}
    filtered = {k: v for k, v in data.items() if k in valid}
    return cls(**filtered)


def _validate(config: EngineConfig) -> None:
    mm = config.matchmaking
    if not 0.0 <= mm.proximity_probability <= 1.0:
        raise EngineConfigError(
            f"matchmaking.proximity_probability must be in [0, 1], "
            f"got {mm.proximity_probability}"
        )
    for name, value in (
        ("matchmaking.proximity_sample", mm.proximity_sample),
        ("matchmaking.closest_pick", mm.closest_pick),
        ("matchmaking.max_retries", mm.max_retries),
        ("matchmaking.queue_depth", mm.queue_depth),
        ("undo.depth", config.undo.depth),
        ("simulation.record_every", config.simulation.record_every),
        ("analytics.volatility_window", config.analytics.volatility_window),
        ("analytics.confidence_full_at", config.analytics.confidence_full_at),
        ("analytics.histogram_bin", config.analytics.histogram_bin),
    ):
        if value < 1:
            raise EngineConfigError(f"{name} must be >= 1, got {value}")
    tiers = config.k_factors
    if tiers.placement_matches > tiers.calibration_matches:
        raise EngineConfigError(
            "k_factors.placement_matches must not exceed calibration_matches"
        )
    if min(tiers.placement, tiers.calibration, tiers.established) <= 0:
        raise EngineConfigError("k_factors values must be positive")


def load_config(config_path: Path | None = None) -> EngineConfig:
    """Load engine configuration from a YAML file.

    Args:
        config_path: Path to the YAML file. None or a missing file yields
            defaults.

    Returns:
        Populated EngineConfig.

    Raises:
        EngineConfigError: If the file is malformed or values are invalid.
    """
    if config_path is None or not config_path.exists():
        return EngineConfig()

    try:
        raw = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as exc:
        raise EngineConfigError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(raw, dict):
        return EngineConfig()

    try:
        config = EngineConfig(
            initial_elo=raw.get("initial_elo", INITIAL_ELO),
            k_factors=_build_sub(KFactorTiers, raw.get("k_factors")),
            matchmaking=_build_sub(MatchmakingConfig, raw.get("matchmaking")),
            undo=_build_sub(UndoConfig, raw.get("undo")),
            simulation=_build_sub(SimulationConfig, raw.get("simulation")),
            analytics=_build_sub(AnalyticsConfig, raw.get("analytics")),
        )
        _validate(config)
    except TypeError as exc:
        raise EngineConfigError(f"Invalid value in {config_path}: {exc}") from exc
    return config
