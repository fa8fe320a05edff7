"""Configuration for Pairwise Elo.

This module provides the Settings model: the base K-factor, the rating
heuristics, the matchmaking policy and the persistence options. Settings are
persisted next to the rating store and can also be loaded from YAML.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import Field, ValidationError, field_validator

from .exceptions import ConfigError
from .models import CamelModel


# ---------------------------------------------------------------------------
# Rating heuristics
# ---------------------------------------------------------------------------


class ProvisionalSettings(CamelModel):
    """Amplified K during an item's first matches.

    Attributes:
        enabled: Whether the provisional boost applies.
        matches: Number of matches an item stays provisional.
        multiplier: K multiplier while provisional.
    """

    enabled: bool = False
    matches: int = Field(default=10, ge=1)
    multiplier: float = Field(default=2.0, ge=1.0, le=5.0)


class DecaySettings(CamelModel):
    """Hyperbolic K decay with experience.

    Attributes:
        enabled: Whether K decays with match count.
        half_life: Match count at which K is halved.
        min_k: Floor for the decayed K.
    """

    enabled: bool = False
    half_life: int = Field(default=200, ge=1)
    min_k: int = Field(default=8, ge=1)


class UpsetBoostSettings(CamelModel):
    """Larger K when the lower-rated item wins across a wide gap."""

    enabled: bool = False
    threshold: int = Field(default=200, ge=0)
    multiplier: float = Field(default=1.25, ge=1.0, le=3.0)


class DrawGapBoostSettings(CamelModel):
    """Larger K when a draw happens across a wide gap."""

    enabled: bool = False
    threshold: int = Field(default=300, ge=0)
    multiplier: float = Field(default=1.25, ge=1.0, le=3.0)


class EloHeuristics(CamelModel):
    """All rating heuristics. With every one disabled the update is classic Elo."""

    provisional: ProvisionalSettings = Field(default_factory=ProvisionalSettings)
    decay: DecaySettings = Field(default_factory=DecaySettings)
    upset_boost: UpsetBoostSettings = Field(default_factory=UpsetBoostSettings)
    draw_gap_boost: DrawGapBoostSettings = Field(default_factory=DrawGapBoostSettings)


# ---------------------------------------------------------------------------
# Matchmaking
# ---------------------------------------------------------------------------


class LowMatchesBiasSettings(CamelModel):
    """Prefer anchors that have played fewer matches."""

    enabled: bool = True
    exponent: float = 1.0


class SimilarRatingsSettings(CamelModel):
    """Prefer opponents rated close to the anchor."""

    enabled: bool = True
    sample_size: int = Field(default=12, ge=0)


class UpsetProbesSettings(CamelModel):
    """Occasionally pair the anchor with a far-away rating to test it."""

    enabled: bool = True
    probability: float = Field(default=0.1, ge=0.0, le=1.0)
    min_gap: int = Field(default=300, ge=0)


class MatchmakingSettings(CamelModel):
    """Pair selection policy. When disabled, pairs are drawn uniformly."""

    enabled: bool = True
    low_matches_bias: LowMatchesBiasSettings = Field(default_factory=LowMatchesBiasSettings)
    similar_ratings: SimilarRatingsSettings = Field(default_factory=SimilarRatingsSettings)
    upset_probes: UpsetProbesSettings = Field(default_factory=UpsetProbesSettings)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class PersistenceSettings(CamelModel):
    """Where and how often the store is written.

    Attributes:
        path: Snapshot file used by the JSON file backend.
        debounce_seconds: Quiet period before a scheduled save is written.
    """

    path: str | None = None
    debounce_seconds: float = Field(default=0.3, ge=0.0, le=60.0)

    @field_validator("path")
    @classmethod
    def expand_path(cls, v: str | None) -> str | None:
        """Expand a leading ~ in the snapshot path."""
        if v is None:
            return v
        return str(Path(v).expanduser())


class Settings(CamelModel):
    """Configuration for Pairwise Elo.

    Attributes:
        k_factor: Base K-factor for rating updates.
        show_toasts: Whether the UI layer announces results (persisted only).
        heuristics: Rating heuristics applied on top of the base K.
        matchmaking: Pair selection policy.
        persistence: Snapshot location and write debounce.
    """

    k_factor: float = Field(default=24, gt=0, le=400)
    show_toasts: bool = True
    heuristics: EloHeuristics = Field(default_factory=EloHeuristics)
    matchmaking: MatchmakingSettings = Field(default_factory=MatchmakingSettings)
    persistence: PersistenceSettings = Field(default_factory=PersistenceSettings)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML file.

        Keys may be written in snake_case or camelCase.

        Args:
            path: Path to the YAML settings file.

        Returns:
            Settings instance.

        Raises:
            FileNotFoundError: If the settings file doesn't exist.
            ConfigError: If the YAML is invalid or a value is out of range.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Settings file not found: {path}")

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Invalid settings file: expected dict, got {type(data).__name__}")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            raise ConfigError(first["msg"], field=field) from e
