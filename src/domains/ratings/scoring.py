"""Visit star rating engine.

Weighted three-component model (mission openness, hospitality, financial
generosity) producing a 1-5 star rating for a single visit. When no
offering was taken the financial component is inapplicable and its weight
is redistributed evenly to the two relational components, so a church is
judged on openness and hospitality alone rather than marked down.

Missionary support is a church-level counter and never feeds the stars.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import structlog

from .config import RatingEngineConfig, default_config
from .errors import RatingError, calculation_guard
from .models import (
    CalculatedRating,
    ComponentWeights,
    RatingBreakdown,
    VisitRatingInput,
)

logger = structlog.get_logger()

MISSION_OPENNESS_DESCRIPTIONS: dict[int, str] = {
    1: "Resistent la lucrarea de misiune, nu este interesat de outreach",
    2: "Interes minim, doar cooperare de bază",
    3: "Interes moderat, conștientizare de misiune",
    4: "Interes activ în lucrarea de misiune, cooperare bună",
    5: "Foarte orientat spre misiune, proactiv în evanghelizare",
}

HOSPITALITY_DESCRIPTIONS: dict[int, str] = {
    1: "Neospitalier, necooperant, mediu ostil",
    2: "Ospitalitate minimală, doar curtoazie de bază",
    3: "Ospitalitate standard, îndeplinește așteptările de bază",
    4: "Atmosferă primitoare, cooperare bună",
    5: "Ospitalitate excepțională, depășește așteptările",
}


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves going up (2.5 -> 3), unlike the builtin round()."""
    quantum = Decimal(1).scaleb(-digits)
    # round(.., 9) drops float noise such as 2.4999999999999996
    return float(Decimal(str(round(value, 9))).quantize(quantum, rounding=ROUND_HALF_UP))


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _offering_range(amount: float) -> str:
    if amount <= 0:
        return "none"
    if amount < 50:
        return "low"
    if amount < 200:
        return "medium"
    return "high"


def sanitize_for_logging(data: VisitRatingInput | None) -> dict[str, Any]:
    """Loggable view of a rating input: no raw offering amount, no notes."""
    if data is None:
        return {}
    offerings = data.offerings_amount if _is_number(data.offerings_amount) else 0
    return {
        "mission_openness_rating": data.mission_openness_rating,
        "hospitality_rating": data.hospitality_rating,
        "church_members": data.church_members,
        "attendees_count": data.attendees_count,
        "missionary_support_count": data.missionary_support_count,
        "has_offering": offerings > 0,
        "offerings_range": _offering_range(offerings),
    }


def describe_mission_openness(rating: int) -> str:
    return MISSION_OPENNESS_DESCRIPTIONS.get(rating, "")


def describe_hospitality(rating: int) -> str:
    return HOSPITALITY_DESCRIPTIONS.get(rating, "")


class VisitRatingScorer:
    """Computes the star rating for one visit."""

    def __init__(self, config: RatingEngineConfig | None = None) -> None:
        self._config = config or default_config

    def calculate_visit_rating(self, data: VisitRatingInput | None) -> CalculatedRating:
        """Compute the star rating, financial sub-score and breakdown.

        Args:
            data: The visit rating input. Expected to have passed validation.

        Returns:
            CalculatedRating with the effective weights used.

        Raises:
            RatingError: kind CALCULATION when a precondition is violated.
        """
        self._check_preconditions(data)
        with calculation_guard("visit rating calculation", sanitize_for_logging(data)):
            return self._perform_calculation(data)

    def effective_weights(self, financial_applicable: bool) -> ComponentWeights:
        """Base weights, or the redistributed pair when financial is inapplicable."""
        cfg = self._config.scoring
        if financial_applicable:
            return ComponentWeights(
                mission_openness=cfg.mission_openness_weight,
                hospitality=cfg.hospitality_weight,
                financial=cfg.financial_weight,
            )
        share = cfg.financial_weight / 2
        return ComponentWeights(
            mission_openness=cfg.mission_openness_weight + share,
            hospitality=cfg.hospitality_weight + share,
            financial=0.0,
        )

    def financial_score(self, offerings: float, members: float, attendees: float) -> int:
        """Map the average per-person offering to a 1-5 score (0 if no offering)."""
        if offerings <= 0:
            return 0
        if members <= 0 or attendees <= 0:
            raise RatingError.calculation("Invalid church members or attendees count")

        per_member = offerings / members
        per_attendee = offerings / attendees
        avg_ratio = (per_member + per_attendee) / 2

        score = 5
        for index, upper_bound in enumerate(self._config.scoring.financial_thresholds):
            if avg_ratio < upper_bound:
                score = index + 1
                break

        logger.debug(
            "financial_score_calculated",
            avg_ratio=round(avg_ratio, 2),
            score=score,
        )
        return score

    def _perform_calculation(self, data: VisitRatingInput) -> CalculatedRating:
        cfg = self._config.scoring
        openness = data.mission_openness_rating
        hospitality = data.hospitality_rating
        offerings = float(data.offerings_amount)

        financial_applicable = offerings > 0
        financial = (
            self.financial_score(offerings, data.church_members, data.attendees_count)
            if financial_applicable
            else 0
        )
        weights = self.effective_weights(financial_applicable)

        weighted = (
            openness * weights.mission_openness
            + hospitality * weights.hospitality
            + financial * weights.financial
        )
        star_rating = int(
            _clamp(round_half_up(weighted), cfg.min_star_rating, cfg.max_star_rating)
        )

        logger.info(
            "visit_rating_calculated",
            star_rating=star_rating,
            financial_score=financial,
            financial_applicable=financial_applicable,
            weighted_score=round(weighted, 2),
        )

        return CalculatedRating(
            star_rating=star_rating,
            financial_score=financial,
            financial_applicable=financial_applicable,
            breakdown=RatingBreakdown(
                mission_openness=openness,
                hospitality=hospitality,
                financial=financial,
            ),
            weights=weights,
        )

    def _check_preconditions(self, data: VisitRatingInput | None) -> None:
        if data is None:
            raise RatingError.calculation("Rating data is required")

        bounds = self._config.validation
        lo, hi = bounds.min_component_rating, bounds.max_component_rating

        for name, label in (
            ("mission_openness_rating", "Mission openness rating"),
            ("hospitality_rating", "Hospitality rating"),
        ):
            value = getattr(data, name)
            if not _is_number(value) or not lo <= value <= hi or value != int(value):
                raise RatingError.calculation(
                    f"{label} must be an integer between {lo} and {hi}",
                    {name: value},
                )

        if not _is_number(data.church_members) or data.church_members <= 0:
            raise RatingError.calculation("Church members count must be a positive number")
        if not _is_number(data.attendees_count) or data.attendees_count <= 0:
            raise RatingError.calculation("Attendees count must be a positive number")
        if not _is_number(data.offerings_amount) or data.offerings_amount < 0:
            raise RatingError.calculation("Offerings amount cannot be negative")
        if not _is_number(data.missionary_support_count) or data.missionary_support_count < 0:
            raise RatingError.calculation("Missionary support count cannot be negative")

        if data.missionary_support_count > data.attendees_count:
            raise RatingError.calculation(
                "Missionary support count cannot exceed attendees count"
            )

        if data.attendees_count > data.church_members * bounds.max_attendee_ratio:
            logger.warning(
                "attendees_unusually_high",
                attendees_count=data.attendees_count,
                church_members=data.church_members,
                max_ratio=bounds.max_attendee_ratio,
            )
        if data.offerings_amount > bounds.large_offering_threshold:
            logger.warning("offerings_unusually_high", offerings_range="high")


_default_scorer = VisitRatingScorer()


def calculate_visit_rating(data: VisitRatingInput | None) -> CalculatedRating:
    """Score a visit with the default configuration."""
    return _default_scorer.calculate_visit_rating(data)
