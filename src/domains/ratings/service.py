"""Visit rating workflow.

Glues the validator, scorer, storage and scheduler together for the
operations exposed over HTTP: creating a rating, reading ratings and church
summaries, and the administrative recalculation flows.
"""

from typing import Any

import structlog

from .aggregator import ChurchRatingAggregator
from .errors import RatingError
from .models import (
    Actor,
    BatchRecalculationResult,
    ChurchRatingSummary,
    ChurchRef,
    RecalculationOperation,
    RecalculationPriority,
    RecalculationRequest,
    VisitRatingInput,
    VisitRatingRecord,
)
from .scheduler import RecalculationScheduler
from .scoring import VisitRatingScorer, describe_hospitality, describe_mission_openness
from .storage import RatingStore
from .validation import RatingValidator

logger = structlog.get_logger()


class VisitRatingService:
    def __init__(
        self,
        store: RatingStore,
        aggregator: ChurchRatingAggregator,
        scheduler: RecalculationScheduler,
        scorer: VisitRatingScorer | None = None,
        validator: RatingValidator | None = None,
    ) -> None:
        self._store = store
        self._aggregator = aggregator
        self._scheduler = scheduler
        self._scorer = scorer or VisitRatingScorer()
        self._validator = validator or RatingValidator()

    @property
    def scheduler(self) -> RecalculationScheduler:
        return self._scheduler

    @property
    def aggregator(self) -> ChurchRatingAggregator:
        return self._aggregator

    async def create_rating(
        self, visit_id: int, payload: VisitRatingInput, actor: Actor
    ) -> dict[str, Any]:
        """Validate, score and store a visit rating, then schedule a church refresh."""
        visit = await self._store.get_visit(visit_id)
        if visit is None:
            raise RatingError.not_found("Visit", "Vizita nu a fost găsită")

        if await self._store.get_visit_rating(visit_id) is not None:
            raise RatingError.conflict()

        rateability = self._validator.validate_visit_for_rating(
            visit_id,
            visit.is_rated,
            actor.user_id,
            visit.visited_by,
            is_admin=actor.is_admin,
        )
        if not rateability.valid:
            codes = {e.code for e in rateability.errors}
            if "already_rated" in codes:
                raise RatingError.conflict(field_errors=rateability.errors)
            raise RatingError.unauthorized(
                "Cannot rate this visit",
                "Nu se poate evalua această vizită",
                field_errors=rateability.errors,
            )

        if payload.attendees_count is None:
            payload = payload.model_copy(
                update={"attendees_count": visit.attendees_count or 1}
            )

        validation = self._validator.validate(payload)
        if not validation.valid:
            logger.info(
                "visit_rating_rejected",
                visit_id=visit_id,
                fields=[e.field for e in validation.errors],
            )
            raise RatingError.validation("Invalid rating data", validation.errors)
        for warning in validation.warnings:
            logger.warning("visit_rating_warning", visit_id=visit_id, field=warning.field)

        calculated = self._scorer.calculate_visit_rating(payload)
        record = await self._store.create_visit_rating(visit, actor.user_id, payload, calculated)

        self._scheduler.request_recalculation(
            visit.church_id,
            RecalculationRequest(
                church_id=visit.church_id,
                operation=RecalculationOperation.CREATE,
                visit_id=visit_id,
                actor_id=actor.user_id,
                reason=f"visit {visit_id} rating",
            ),
        )

        try:
            await self._store.append_audit_entry(
                visit.church_id,
                actor.user_id,
                "Visit rated",
                f"Visit rated with {calculated.star_rating} stars",
                activity_type="visit",
            )
        except Exception:
            # Activity log is informational only
            logger.warning(
                "visit_rating_activity_log_failed",
                visit_id=visit_id,
                church_id=visit.church_id,
                exc_info=True,
            )

        summary = await self._aggregator.get_summary(visit.church_id)
        church_average = (
            summary.average_stars
            if summary is not None and summary.has_ratings
            else float(calculated.star_rating)
        )

        logger.info(
            "visit_rating_created",
            visit_id=visit_id,
            church_id=visit.church_id,
            star_rating=calculated.star_rating,
        )
        return {
            "rating": record,
            "calculated": calculated,
            "church_average_stars": church_average,
        }

    async def get_rating(self, visit_id: int) -> dict[str, Any]:
        record = await self._store.get_visit_rating(visit_id)
        if record is None:
            raise RatingError.not_found("Rating", "Evaluarea nu a fost găsită")
        return {
            "rating": record,
            "descriptions": {
                "mission_openness": describe_mission_openness(record.mission_openness_rating),
                "hospitality": describe_hospitality(record.hospitality_rating),
            },
        }

    async def get_church_rating(
        self, church_id: int
    ) -> tuple[ChurchRef, ChurchRatingSummary]:
        church = await self._require_church(church_id)
        summary = await self._aggregator.get_summary(church_id)
        return church, summary or ChurchRatingAggregator.empty_summary(church_id)

    async def force_recalculate(
        self, church_id: int, actor: Actor
    ) -> tuple[ChurchRef, ChurchRatingSummary]:
        """Synchronous recalculation that bypasses the debounce window."""
        self._require_admin(
            actor,
            "Access denied - only administrators can recalculate ratings",
            "Acces interzis - doar administratorii pot recalcula evaluările",
        )
        church = await self._require_church(church_id)
        summary = await self._aggregator.recalculate(church_id)

        await self._store.append_audit_entry(
            church_id,
            actor.user_id,
            "Rating recalculated",
            "Church star rating was manually recalculated",
        )
        logger.info(
            "church_rating_force_recalculated",
            church_id=church_id,
            actor_id=actor.user_id,
            average_stars=summary.average_stars,
        )
        return church, summary

    async def rating_history(
        self, church_id: int, limit: int | None = None, offset: int = 0
    ) -> tuple[ChurchRef, list[VisitRatingRecord]]:
        church = await self._require_church(church_id)
        history = await self._aggregator.rating_history(church_id, limit, offset)
        return church, history

    async def batch_recalculate(
        self,
        church_ids: list[int],
        actor: Actor,
        priority: RecalculationPriority = RecalculationPriority.NORMAL,
    ) -> BatchRecalculationResult:
        self._require_admin(
            actor,
            "Access denied - only administrators can recalculate ratings",
            "Acces interzis - doar administratorii pot recalcula evaluările",
        )
        return await self._scheduler.batch_recalculate(church_ids, actor.user_id, priority)

    def cancel_pending(self, actor: Actor) -> int:
        self._require_admin(actor)
        return self._scheduler.cancel_all()

    async def _require_church(self, church_id: int) -> ChurchRef:
        church = await self._store.get_church(church_id)
        if church is None:
            raise RatingError.not_found("Church", "Biserica nu a fost găsită")
        return church

    @staticmethod
    def _require_admin(
        actor: Actor,
        message: str = "Access denied - administrators only",
        message_ro: str = "Acces interzis - doar administratorii",
    ) -> None:
        if not actor.is_admin:
            raise RatingError.unauthorized(message, message_ro)
