"""Visit rating engine configuration with sensible defaults.

Weights, financial thresholds, validation bounds and scheduler pacing are
all configurable. Environment overrides use the RATING_ prefix.
"""

import os
from dataclasses import dataclass, field


@dataclass
class ScoringConfig:
    """Per-visit star rating weights and financial thresholds.

    Mission openness is the primary signal, hospitality and financial
    generosity share the remainder. When no offering is taken the financial
    weight is split evenly between the other two components.
    """

    mission_openness_weight: float = 0.40
    hospitality_weight: float = 0.30
    financial_weight: float = 0.30

    # Average offering per person (RON) upper bounds for scores 1-4.
    # Anything at or above the last bound scores 5.
    financial_thresholds: tuple[float, float, float, float] = (10.0, 25.0, 50.0, 100.0)

    min_star_rating: int = 1
    max_star_rating: int = 5


@dataclass
class ValidationConfig:
    """Input sanity bounds shared by the validator and the scorer."""

    # attendees > members * ratio is suspicious
    max_attendee_ratio: float = 3.0
    # "reject" turns the ratio check into a field error, "warn" into a warning
    attendee_ratio_mode: str = "reject"

    large_offering_threshold: float = 100_000.0

    min_component_rating: int = 1
    max_component_rating: int = 5


@dataclass
class AggregationConfig:
    recent_window_days: int = 30
    extended_window_days: int = 90

    default_page_size: int = 10
    max_page_size: int = 100
    history_page_size: int = 20


@dataclass
class BatchProfile:
    group_size: int
    delay_seconds: float


def _default_batch_profiles() -> dict[str, BatchProfile]:
    return {
        "high": BatchProfile(group_size=5, delay_seconds=0.1),
        "normal": BatchProfile(group_size=3, delay_seconds=0.5),
        "low": BatchProfile(group_size=1, delay_seconds=1.0),
    }


@dataclass
class SchedulerConfig:
    debounce_seconds: float = 5.0
    batch_profiles: dict[str, BatchProfile] = field(default_factory=_default_batch_profiles)


@dataclass
class RatingEngineConfig:
    """Top-level rating engine configuration.

    Component weights must sum to 1.0 and the attendee ratio mode must be
    either "reject" or "warn". Validation is performed at construction time.
    """

    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)

    scoring_version: str = "visit-rating-v2"

    def __post_init__(self) -> None:
        total = (
            self.scoring.mission_openness_weight
            + self.scoring.hospitality_weight
            + self.scoring.financial_weight
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(
                f"Component weights must sum to 1.0, got {total:.4f}. "
                f"MissionOpenness={self.scoring.mission_openness_weight}, "
                f"Hospitality={self.scoring.hospitality_weight}, "
                f"Financial={self.scoring.financial_weight}"
            )
        if self.validation.attendee_ratio_mode not in ("reject", "warn"):
            raise ValueError(
                "attendee_ratio_mode must be 'reject' or 'warn', "
                f"got {self.validation.attendee_ratio_mode!r}"
            )
        if self.validation.max_attendee_ratio <= 0:
            raise ValueError("max_attendee_ratio must be positive")
        missing = {"high", "normal", "low"} - set(self.scheduler.batch_profiles)
        if missing:
            raise ValueError(f"Missing batch profiles: {sorted(missing)}")

    @classmethod
    def from_env(cls) -> "RatingEngineConfig":
        """Load config with environment variable overrides (RATING_ prefix)."""
        config = cls()

        if v := os.getenv("RATING_MISSION_OPENNESS_WEIGHT"):
            config.scoring.mission_openness_weight = float(v)
        if v := os.getenv("RATING_HOSPITALITY_WEIGHT"):
            config.scoring.hospitality_weight = float(v)
        if v := os.getenv("RATING_FINANCIAL_WEIGHT"):
            config.scoring.financial_weight = float(v)
        if v := os.getenv("RATING_MAX_ATTENDEE_RATIO"):
            config.validation.max_attendee_ratio = float(v)
        if v := os.getenv("RATING_ATTENDEE_RATIO_MODE"):
            config.validation.attendee_ratio_mode = v.lower()
        if v := os.getenv("RATING_DEBOUNCE_SECONDS"):
            config.scheduler.debounce_seconds = float(v)

        # Re-validate after overrides
        config.__post_init__()
        return config


default_config = RatingEngineConfig()
