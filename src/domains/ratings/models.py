"""Pydantic models for the visit rating domain."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

Number = int | float

# --- Enums ---


class RecalculationOperation(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class RecalculationPriority(StrEnum):
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class RecalculationState(StrEnum):
    IDLE = "idle"
    PENDING = "pending"
    EXECUTING = "executing"


# --- Input Models ---


class VisitRatingInput(BaseModel):
    """One missionary's assessment of one visit.

    Numeric fields are deliberately loose (optional, int or float) so that
    range and integrality problems surface as field errors from the
    validator rather than as request parsing failures.
    """

    mission_openness_rating: Number | None = None
    hospitality_rating: Number | None = None
    missionary_support_count: Number | None = 0
    offerings_amount: Number | None = 0
    church_members: Number | None = None
    attendees_count: Number | None = None
    visit_duration_minutes: Number | None = None
    notes: str | None = None


class Actor(BaseModel):
    user_id: str
    role: str = "missionary"

    @property
    def is_admin(self) -> bool:
        return self.role == "administrator"


# --- Scoring Output Models ---


class RatingBreakdown(BaseModel):
    mission_openness: float = Field(ge=0, le=5)
    hospitality: float = Field(ge=0, le=5)
    financial: float = Field(ge=0, le=5)


class ComponentWeights(BaseModel):
    mission_openness: float = Field(ge=0, le=1)
    hospitality: float = Field(ge=0, le=1)
    financial: float = Field(ge=0, le=1)

    @property
    def total(self) -> float:
        return self.mission_openness + self.hospitality + self.financial


class CalculatedRating(BaseModel):
    star_rating: int = Field(ge=1, le=5)
    financial_score: int = Field(ge=0, le=5)
    financial_applicable: bool
    breakdown: RatingBreakdown
    weights: ComponentWeights


# --- Stored Records ---


class VisitRef(BaseModel):
    id: int
    church_id: int
    visited_by: str | None = None
    visit_date: datetime | None = None
    attendees_count: int | None = None
    is_rated: bool = False


class ChurchRef(BaseModel):
    id: int
    name: str


class VisitRatingRecord(BaseModel):
    id: int | None = None
    visit_id: int
    church_id: int
    missionary_id: str | None = None
    mission_openness_rating: int
    hospitality_rating: int
    missionary_support_count: int = 0
    offerings_amount: float = 0.0
    church_members: int
    attendees_count: int
    financial_score: float = 0.0
    calculated_star_rating: int
    visit_duration_minutes: int | None = None
    notes: str | None = None
    visit_date: datetime | None = None
    created_at: datetime | None = None

    @property
    def financial_applicable(self) -> bool:
        return self.financial_score > 0


# --- Aggregate Models ---


class ChurchRatingBreakdown(BaseModel):
    mission_openness: float = Field(ge=0, le=5, default=0.0)
    hospitality: float = Field(ge=0, le=5, default=0.0)
    financial_generosity: float = Field(ge=0, le=5, default=0.0)


class ChurchRatingSummary(BaseModel):
    church_id: int
    average_stars: float = Field(ge=0, le=5, default=0.0)
    total_visits: int = Field(ge=0, default=0)
    visits_last_30_days: int = Field(ge=0, default=0)
    visits_last_90_days: int = Field(ge=0, default=0)
    rating_breakdown: ChurchRatingBreakdown = Field(default_factory=ChurchRatingBreakdown)
    total_offerings_collected: float = Field(ge=0, default=0.0)
    avg_offerings_per_visit: float = Field(ge=0, default=0.0)
    missionary_support_count: int = Field(ge=0, default=0)
    last_visit_date: datetime | None = None
    last_calculated: datetime | None = None

    @property
    def has_ratings(self) -> bool:
        return self.total_visits > 0


class RatingDistributionBucket(BaseModel):
    stars: int
    count: int


class GlobalRatingStatistics(BaseModel):
    total_rated_churches: int = 0
    average_rating: float = 0.0
    total_visits: int = 0
    total_offerings: float = 0.0
    rating_distribution: list[RatingDistributionBucket] = Field(default_factory=list)


# --- Validation Models ---


class FieldError(BaseModel):
    field: str
    code: str
    message: str
    message_ro: str


class ValidationResult(BaseModel):
    errors: list[FieldError] = Field(default_factory=list)
    warnings: list[FieldError] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


# --- Scheduler Models ---


class RecalculationRequest(BaseModel):
    church_id: int
    operation: RecalculationOperation = RecalculationOperation.UPDATE
    visit_id: int | None = None
    actor_id: str | None = None
    reason: str = "visit rating update"


class BatchRecalculationError(BaseModel):
    church_id: int
    error: str


class BatchRecalculationResult(BaseModel):
    succeeded: int = 0
    failed: int = 0
    errors: list[BatchRecalculationError] = Field(default_factory=list)


# --- API Request Models ---


class BatchRecalculationRequest(BaseModel):
    church_ids: list[int] = Field(min_length=1, max_length=1000)
    priority: RecalculationPriority = RecalculationPriority.NORMAL
