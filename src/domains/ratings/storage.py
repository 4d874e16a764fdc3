"""Abstract storage collaborator consumed by the rating engine."""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import (
    CalculatedRating,
    ChurchRatingSummary,
    ChurchRef,
    GlobalRatingStatistics,
    VisitRatingInput,
    VisitRatingRecord,
    VisitRef,
)


class RatingStore(ABC):
    """Persistence interface for ratings, church summaries and the activity log.

    Implementations raise ``RatingError`` (kind PERSISTENCE or CONFLICT) on
    failure and never retry internally.
    """

    # --- Aggregation surface ---

    @abstractmethod
    async def fetch_ratings_for_church(self, church_id: int) -> list[VisitRatingRecord]:
        """Every finalized rating for the church, joined to its visit date."""
        ...

    @abstractmethod
    async def upsert_aggregate(self, summary: ChurchRatingSummary) -> None:
        """Replace the church's current-state row with ``summary`` (full overwrite)."""
        ...

    @abstractmethod
    async def fetch_aggregate(self, church_id: int) -> ChurchRatingSummary | None: ...

    @abstractmethod
    async def query_top_rated(self, limit: int, offset: int) -> list[ChurchRatingSummary]:
        """Rated churches ordered by average stars desc, then total visits desc."""
        ...

    @abstractmethod
    async def query_recently_active(
        self, since: datetime, limit: int
    ) -> list[ChurchRatingSummary]:
        """Summaries whose last visit is at or after ``since``, newest first."""
        ...

    @abstractmethod
    async def query_global_aggregate_stats(self) -> GlobalRatingStatistics: ...

    @abstractmethod
    async def append_audit_entry(
        self,
        church_id: int,
        actor_id: str,
        title: str,
        description: str,
        activity_type: str = "note",
    ) -> None: ...

    # --- Rating workflow surface ---

    @abstractmethod
    async def get_church(self, church_id: int) -> ChurchRef | None: ...

    @abstractmethod
    async def get_visit(self, visit_id: int) -> VisitRef | None: ...

    @abstractmethod
    async def get_visit_rating(self, visit_id: int) -> VisitRatingRecord | None: ...

    @abstractmethod
    async def create_visit_rating(
        self,
        visit: VisitRef,
        missionary_id: str,
        data: VisitRatingInput,
        calculated: CalculatedRating,
    ) -> VisitRatingRecord:
        """Persist a finalized rating and mark its visit as rated."""
        ...

    @abstractmethod
    async def fetch_rating_history(
        self, church_id: int, limit: int, offset: int
    ) -> list[VisitRatingRecord]:
        """The church's ratings, newest visit first."""
        ...
