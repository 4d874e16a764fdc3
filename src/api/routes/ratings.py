"""Cross-church rating queries and administrative recalculation endpoints."""

import structlog
from fastapi import APIRouter, Depends, Query

from src.api.dependencies import get_actor, get_rating_service
from src.domains.ratings.models import Actor, BatchRecalculationRequest
from src.domains.ratings.service import VisitRatingService

logger = structlog.get_logger()
router = APIRouter(prefix="/api/v1/ratings", tags=["ratings"])


@router.get("/top-rated")
async def top_rated_churches(
    limit: int | None = Query(default=None),
    offset: int = Query(default=0),
    _actor: Actor = Depends(get_actor),  # noqa: B008
    service: VisitRatingService = Depends(get_rating_service),  # noqa: B008
) -> dict:
    summaries = await service.aggregator.top_rated(limit, offset)
    return {
        "success": True,
        "data": [s.model_dump(mode="json") for s in summaries],
    }


@router.get("/recently-active")
async def recently_active_churches(
    limit: int | None = Query(default=None),
    _actor: Actor = Depends(get_actor),  # noqa: B008
    service: VisitRatingService = Depends(get_rating_service),  # noqa: B008
) -> dict:
    summaries = await service.aggregator.recently_active(limit)
    return {
        "success": True,
        "data": [s.model_dump(mode="json") for s in summaries],
    }


@router.get("/statistics")
async def rating_statistics(
    _actor: Actor = Depends(get_actor),  # noqa: B008
    service: VisitRatingService = Depends(get_rating_service),  # noqa: B008
) -> dict:
    stats = await service.aggregator.global_statistics()
    return {"success": True, "data": stats.model_dump()}


@router.post("/recalculate")
async def batch_recalculate(
    request: BatchRecalculationRequest,
    actor: Actor = Depends(get_actor),  # noqa: B008
    service: VisitRatingService = Depends(get_rating_service),  # noqa: B008
) -> dict:
    """Administrator-only paced recalculation of many churches."""
    result = await service.batch_recalculate(request.church_ids, actor, request.priority)
    return {
        "success": result.failed == 0,
        "message": f"Recalculated {result.succeeded} of {result.succeeded + result.failed} churches",
        "message_ro": (
            f"Au fost recalculate {result.succeeded} din "
            f"{result.succeeded + result.failed} biserici"
        ),
        "data": result.model_dump(),
    }


@router.get("/recalculation-status")
async def recalculation_status(
    church_id: int | None = Query(default=None),
    _actor: Actor = Depends(get_actor),  # noqa: B008
    service: VisitRatingService = Depends(get_rating_service),  # noqa: B008
) -> dict:
    scheduler = service.scheduler
    data: dict = {"pending_count": scheduler.pending_count()}
    if church_id is not None:
        data["church_id"] = church_id
        data["state"] = scheduler.state_of(church_id).value
        data["is_pending"] = scheduler.is_pending(church_id)
    return {"success": True, "data": data}


@router.delete("/recalculations")
async def cancel_pending_recalculations(
    actor: Actor = Depends(get_actor),  # noqa: B008
    service: VisitRatingService = Depends(get_rating_service),  # noqa: B008
) -> dict:
    """Administrator-only emergency stop for queued recalculations."""
    cancelled = service.cancel_pending(actor)
    logger.warning("pending_recalculations_cancelled", actor_id=actor.user_id, count=cancelled)
    return {"success": True, "data": {"cancelled": cancelled}}
