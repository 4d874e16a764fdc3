"""SQLAlchemy implementation of the rating storage collaborator."""

from datetime import UTC, datetime

import structlog
from sqlalchemy import desc, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.db.models import ActivityDB, Church, ChurchStarRatingDB, Visit, VisitRatingDB
from src.domains.ratings.errors import persistence_guard
from src.domains.ratings.models import (
    CalculatedRating,
    ChurchRatingBreakdown,
    ChurchRatingSummary,
    ChurchRef,
    GlobalRatingStatistics,
    RatingDistributionBucket,
    VisitRatingInput,
    VisitRatingRecord,
    VisitRef,
)
from src.domains.ratings.scoring import round_half_up
from src.domains.ratings.storage import RatingStore

logger = structlog.get_logger()


def _to_record(
    row: VisitRatingDB, church_id: int, visit_date: datetime | None
) -> VisitRatingRecord:
    return VisitRatingRecord(
        id=row.id,
        visit_id=row.visit_id,
        church_id=church_id,
        missionary_id=row.missionary_id,
        mission_openness_rating=row.mission_openness_rating,
        hospitality_rating=row.hospitality_rating,
        missionary_support_count=row.missionary_support_count or 0,
        offerings_amount=float(row.offerings_amount or 0),
        church_members=row.church_members,
        attendees_count=row.attendees_count,
        financial_score=float(row.financial_score or 0),
        calculated_star_rating=row.calculated_star_rating,
        visit_duration_minutes=row.visit_duration_minutes,
        notes=row.notes,
        visit_date=visit_date,
        created_at=row.created_at,
    )


def _to_summary(row: ChurchStarRatingDB) -> ChurchRatingSummary:
    return ChurchRatingSummary(
        church_id=row.church_id,
        average_stars=float(row.average_stars or 0),
        total_visits=max(0, row.total_visits or 0),
        visits_last_30_days=max(0, row.visits_last_30_days or 0),
        visits_last_90_days=max(0, row.visits_last_90_days or 0),
        rating_breakdown=ChurchRatingBreakdown(
            mission_openness=float(row.avg_mission_openness or 0),
            hospitality=float(row.avg_hospitality or 0),
            financial_generosity=float(row.avg_financial_generosity or 0),
        ),
        total_offerings_collected=max(0.0, float(row.total_offerings_collected or 0)),
        avg_offerings_per_visit=max(0.0, float(row.avg_offerings_per_visit or 0)),
        missionary_support_count=max(0, row.missionary_support_count or 0),
        last_visit_date=row.last_visit_date,
        last_calculated=row.last_calculated,
    )


class SqlRatingStore(RatingStore):
    """Rating storage over async SQLAlchemy sessions (one session per call)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def fetch_ratings_for_church(self, church_id: int) -> list[VisitRatingRecord]:
        async with persistence_guard("fetch ratings for church", church_id=church_id):
            async with self._session_factory() as session:
                stmt = (
                    select(VisitRatingDB, Visit.church_id, Visit.visit_date)
                    .join(Visit, VisitRatingDB.visit_id == Visit.id)
                    .where(Visit.church_id == church_id)
                    .order_by(VisitRatingDB.id)
                )
                result = await session.execute(stmt)
                return [_to_record(row, cid, vdate) for row, cid, vdate in result.all()]

    async def upsert_aggregate(self, summary: ChurchRatingSummary) -> None:
        values = {
            "church_id": summary.church_id,
            "average_stars": summary.average_stars,
            "missionary_support_count": summary.missionary_support_count,
            "total_visits": summary.total_visits,
            "visits_last_30_days": summary.visits_last_30_days,
            "visits_last_90_days": summary.visits_last_90_days,
            "avg_mission_openness": summary.rating_breakdown.mission_openness,
            "avg_hospitality": summary.rating_breakdown.hospitality,
            "avg_financial_generosity": summary.rating_breakdown.financial_generosity,
            "total_offerings_collected": summary.total_offerings_collected,
            "avg_offerings_per_visit": summary.avg_offerings_per_visit,
            "last_visit_date": summary.last_visit_date,
            "last_calculated": summary.last_calculated or datetime.now(UTC),
        }
        async with persistence_guard("upsert church star rating", church_id=summary.church_id):
            async with self._session_factory() as session:
                stmt = pg_insert(ChurchStarRatingDB).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[ChurchStarRatingDB.church_id],
                    set_={k: v for k, v in values.items() if k != "church_id"},
                )
                await session.execute(stmt)
                await session.commit()

    async def fetch_aggregate(self, church_id: int) -> ChurchRatingSummary | None:
        async with persistence_guard("get church star rating", church_id=church_id):
            async with self._session_factory() as session:
                stmt = select(ChurchStarRatingDB).where(
                    ChurchStarRatingDB.church_id == church_id
                )
                row = (await session.execute(stmt)).scalar_one_or_none()
                return _to_summary(row) if row else None

    async def query_top_rated(self, limit: int, offset: int) -> list[ChurchRatingSummary]:
        async with persistence_guard("get top rated churches", limit=limit, offset=offset):
            async with self._session_factory() as session:
                stmt = (
                    select(ChurchStarRatingDB)
                    .where(ChurchStarRatingDB.total_visits > 0)
                    .order_by(
                        desc(ChurchStarRatingDB.average_stars),
                        desc(ChurchStarRatingDB.total_visits),
                        ChurchStarRatingDB.church_id,
                    )
                    .limit(limit)
                    .offset(offset)
                )
                rows = (await session.execute(stmt)).scalars().all()
                return [_to_summary(row) for row in rows]

    async def query_recently_active(
        self, since: datetime, limit: int
    ) -> list[ChurchRatingSummary]:
        async with persistence_guard("get recently active churches", since=since, limit=limit):
            async with self._session_factory() as session:
                stmt = (
                    select(ChurchStarRatingDB)
                    .where(
                        ChurchStarRatingDB.last_visit_date.is_not(None),
                        ChurchStarRatingDB.last_visit_date >= since,
                    )
                    .order_by(desc(ChurchStarRatingDB.last_visit_date))
                    .limit(limit)
                )
                rows = (await session.execute(stmt)).scalars().all()
                return [_to_summary(row) for row in rows]

    async def query_global_aggregate_stats(self) -> GlobalRatingStatistics:
        async with persistence_guard("get rating statistics"):
            async with self._session_factory() as session:
                rated = ChurchStarRatingDB.total_visits > 0
                totals = (
                    await session.execute(
                        select(
                            func.count(),
                            func.avg(ChurchStarRatingDB.average_stars),
                            func.sum(ChurchStarRatingDB.total_visits),
                            func.sum(ChurchStarRatingDB.total_offerings_collected),
                        ).where(rated)
                    )
                ).one()

                stars = func.round(ChurchStarRatingDB.average_stars)
                distribution = (
                    await session.execute(
                        select(stars, func.count())
                        .where(rated)
                        .group_by(stars)
                        .order_by(stars)
                    )
                ).all()

        count, avg_rating, total_visits, total_offerings = totals
        return GlobalRatingStatistics(
            total_rated_churches=int(count or 0),
            average_rating=round_half_up(float(avg_rating or 0), 1),
            total_visits=int(total_visits or 0),
            total_offerings=float(total_offerings or 0),
            rating_distribution=[
                RatingDistributionBucket(stars=int(s), count=int(c)) for s, c in distribution
            ],
        )

    async def append_audit_entry(
        self,
        church_id: int,
        actor_id: str,
        title: str,
        description: str,
        activity_type: str = "note",
    ) -> None:
        async with persistence_guard(
            "create activity", church_id=church_id, actor_id=actor_id, title=title
        ):
            async with self._session_factory() as session:
                session.add(
                    ActivityDB(
                        church_id=church_id,
                        user_id=actor_id,
                        type=activity_type,
                        title=title,
                        description=description,
                        activity_date=datetime.now(UTC),
                    )
                )
                await session.commit()

    async def get_church(self, church_id: int) -> ChurchRef | None:
        async with persistence_guard("get church by ID", church_id=church_id):
            async with self._session_factory() as session:
                row = await session.get(Church, church_id)
                return ChurchRef(id=row.id, name=row.name) if row else None

    async def get_visit(self, visit_id: int) -> VisitRef | None:
        async with persistence_guard("get visit by ID", visit_id=visit_id):
            async with self._session_factory() as session:
                row = await session.get(Visit, visit_id)
                if row is None:
                    return None
                return VisitRef(
                    id=row.id,
                    church_id=row.church_id,
                    visited_by=row.visited_by,
                    visit_date=row.visit_date,
                    attendees_count=row.attendees_count,
                    is_rated=bool(row.is_rated),
                )

    async def get_visit_rating(self, visit_id: int) -> VisitRatingRecord | None:
        async with persistence_guard("get visit rating", visit_id=visit_id):
            async with self._session_factory() as session:
                stmt = (
                    select(VisitRatingDB, Visit.church_id, Visit.visit_date)
                    .join(Visit, VisitRatingDB.visit_id == Visit.id)
                    .where(VisitRatingDB.visit_id == visit_id)
                )
                row = (await session.execute(stmt)).one_or_none()
                return _to_record(*row) if row else None

    async def create_visit_rating(
        self,
        visit: VisitRef,
        missionary_id: str,
        data: VisitRatingInput,
        calculated: CalculatedRating,
    ) -> VisitRatingRecord:
        async with persistence_guard(
            "create visit rating", visit_id=visit.id, missionary_id=missionary_id
        ):
            async with self._session_factory() as session:
                row = VisitRatingDB(
                    visit_id=visit.id,
                    missionary_id=missionary_id,
                    mission_openness_rating=int(data.mission_openness_rating),
                    hospitality_rating=int(data.hospitality_rating),
                    missionary_support_count=int(data.missionary_support_count or 0),
                    offerings_amount=float(data.offerings_amount or 0),
                    church_members=int(data.church_members),
                    attendees_count=int(data.attendees_count),
                    financial_score=float(calculated.financial_score),
                    calculated_star_rating=calculated.star_rating,
                    visit_duration_minutes=(
                        int(data.visit_duration_minutes)
                        if data.visit_duration_minutes is not None
                        else None
                    ),
                    notes=data.notes,
                )
                session.add(row)
                await session.execute(
                    update(Visit).where(Visit.id == visit.id).values(is_rated=True)
                )
                await session.commit()
                await session.refresh(row)

                logger.debug("visit_rating_persisted", visit_id=visit.id, rating_id=row.id)
                return _to_record(row, visit.church_id, visit.visit_date)

    async def fetch_rating_history(
        self, church_id: int, limit: int, offset: int
    ) -> list[VisitRatingRecord]:
        async with persistence_guard(
            "get church rating history", church_id=church_id, limit=limit, offset=offset
        ):
            async with self._session_factory() as session:
                stmt = (
                    select(VisitRatingDB, Visit.church_id, Visit.visit_date)
                    .join(Visit, VisitRatingDB.visit_id == Visit.id)
                    .where(Visit.church_id == church_id)
                    .order_by(desc(Visit.visit_date).nulls_last(), desc(VisitRatingDB.id))
                    .limit(limit)
                    .offset(offset)
                )
                result = await session.execute(stmt)
                return [_to_record(row, cid, vdate) for row, cid, vdate in result.all()]
