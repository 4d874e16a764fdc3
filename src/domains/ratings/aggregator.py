"""Church-level rating aggregation.

Rebuilds a church's denormalized "current state" summary from every visit
rating on record. The rebuild is always a full recomputation followed by a
full overwrite, so calling it repeatedly is safe and the stored summary can
be dropped and regenerated at any time.
"""

from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta

import structlog

from .config import RatingEngineConfig, default_config
from .models import (
    ChurchRatingBreakdown,
    ChurchRatingSummary,
    GlobalRatingStatistics,
    VisitRatingRecord,
)
from .scoring import round_half_up
from .storage import RatingStore

logger = structlog.get_logger()

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def _normalize_date(value: object) -> datetime | None:
    """Aware datetime or None; anything malformed is treated as missing."""
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _recency_key(record: VisitRatingRecord) -> tuple[datetime, datetime, int]:
    return (
        _normalize_date(record.visit_date) or _EPOCH,
        _normalize_date(record.created_at) or _EPOCH,
        record.id or 0,
    )


class ChurchRatingAggregator:
    """Recomputes and serves per-church rating summaries."""

    def __init__(
        self,
        store: RatingStore,
        config: RatingEngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._config = config or default_config
        self._clock = clock or (lambda: datetime.now(UTC))

    async def recalculate(self, church_id: int) -> ChurchRatingSummary:
        """Rebuild the church summary from all current ratings and persist it.

        Persistence failures propagate to the caller; nothing is retried here.
        """
        records = await self._store.fetch_ratings_for_church(church_id)
        summary = self.build_summary(church_id, records)
        await self._store.upsert_aggregate(summary)

        logger.info(
            "church_rating_recalculated",
            church_id=church_id,
            total_visits=summary.total_visits,
            average_stars=summary.average_stars,
        )
        return summary

    def build_summary(
        self, church_id: int, records: Sequence[VisitRatingRecord]
    ) -> ChurchRatingSummary:
        now = self._clock()
        if not records:
            return self.empty_summary(church_id, now)

        cfg = self._config.aggregation
        count = len(records)

        avg_stars = _mean([r.calculated_star_rating for r in records])
        avg_openness = _mean([r.mission_openness_rating for r in records])
        avg_hospitality = _mean([r.hospitality_rating for r in records])
        # No-offering visits carry financial 0 meaning "not applicable", not "worst"
        avg_financial = _mean([r.financial_score for r in records if r.financial_applicable])

        total_offerings = sum(max(0.0, r.offerings_amount) for r in records)

        visit_dates = [d for d in (_normalize_date(r.visit_date) for r in records) if d]
        skipped = count - len(visit_dates)
        if skipped:
            logger.warning(
                "ratings_missing_visit_date",
                church_id=church_id,
                skipped=skipped,
            )
        last_visit_date = max(visit_dates) if visit_dates else None
        recent_cutoff = now - timedelta(days=cfg.recent_window_days)
        extended_cutoff = now - timedelta(days=cfg.extended_window_days)

        # Point-in-time church attribute: latest rating wins, never averaged
        most_recent = max(records, key=_recency_key)

        return ChurchRatingSummary(
            church_id=church_id,
            average_stars=round_half_up(_clamp(avg_stars, 0.0, 5.0), 1),
            total_visits=count,
            visits_last_30_days=sum(1 for d in visit_dates if d >= recent_cutoff),
            visits_last_90_days=sum(1 for d in visit_dates if d >= extended_cutoff),
            rating_breakdown=ChurchRatingBreakdown(
                mission_openness=round_half_up(_clamp(avg_openness, 0.0, 5.0), 2),
                hospitality=round_half_up(_clamp(avg_hospitality, 0.0, 5.0), 2),
                financial_generosity=round_half_up(_clamp(avg_financial, 0.0, 5.0), 2),
            ),
            total_offerings_collected=round_half_up(total_offerings, 2),
            avg_offerings_per_visit=round_half_up(total_offerings / count, 2),
            missionary_support_count=max(0, most_recent.missionary_support_count),
            last_visit_date=last_visit_date,
            last_calculated=now,
        )

    @staticmethod
    def empty_summary(church_id: int, now: datetime | None = None) -> ChurchRatingSummary:
        return ChurchRatingSummary(church_id=church_id, last_calculated=now)

    async def get_summary(self, church_id: int) -> ChurchRatingSummary | None:
        return await self._store.fetch_aggregate(church_id)

    async def top_rated(
        self, limit: int | None = None, offset: int = 0
    ) -> list[ChurchRatingSummary]:
        limit = self._bounded_limit(limit)
        return await self._store.query_top_rated(limit, max(0, offset))

    async def recently_active(self, limit: int | None = None) -> list[ChurchRatingSummary]:
        since = self._clock() - timedelta(days=self._config.aggregation.recent_window_days)
        return await self._store.query_recently_active(since, self._bounded_limit(limit))

    async def global_statistics(self) -> GlobalRatingStatistics:
        return await self._store.query_global_aggregate_stats()

    async def rating_history(
        self, church_id: int, limit: int | None = None, offset: int = 0
    ) -> list[VisitRatingRecord]:
        cfg = self._config.aggregation
        limit = self._bounded_limit(limit if limit is not None else cfg.history_page_size)
        return await self._store.fetch_rating_history(church_id, limit, max(0, offset))

    def _bounded_limit(self, limit: int | None) -> int:
        cfg = self._config.aggregation
        if limit is None:
            return cfg.default_page_size
        return int(_clamp(limit, 1, cfg.max_page_size))
