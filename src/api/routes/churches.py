"""Church star rating endpoints."""

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import get_actor, get_rating_service
from src.domains.ratings.models import Actor, ChurchRatingSummary, ChurchRef
from src.domains.ratings.service import VisitRatingService

router = APIRouter(prefix="/api/v1/churches", tags=["ratings"])


def _summary_payload(church: ChurchRef, summary: ChurchRatingSummary) -> dict:
    return {
        "church_id": church.id,
        "church_name": church.name,
        "has_ratings": summary.has_ratings,
        **summary.model_dump(mode="json", exclude={"church_id"}),
    }


@router.get("/{church_id}/star-rating")
async def get_church_star_rating(
    church_id: int,
    _actor: Actor = Depends(get_actor),  # noqa: B008
    service: VisitRatingService = Depends(get_rating_service),  # noqa: B008
) -> dict:
    church, summary = await service.get_church_rating(church_id)
    return {"success": True, "data": _summary_payload(church, summary)}


@router.put("/{church_id}/star-rating")
async def recalculate_church_star_rating(
    church_id: int,
    actor: Actor = Depends(get_actor),  # noqa: B008
    service: VisitRatingService = Depends(get_rating_service),  # noqa: B008
) -> dict:
    """Administrator-only synchronous recalculation."""
    church, summary = await service.force_recalculate(church_id, actor)
    return {
        "success": True,
        "message": "Church rating recalculated successfully",
        "message_ro": "Evaluarea bisericii a fost recalculată cu succes",
        "data": _summary_payload(church, summary),
    }


@router.get("/{church_id}/star-rating/history")
async def get_church_rating_history(
    church_id: int,
    limit: int | None = Query(default=None),
    offset: int = Query(default=0),
    _actor: Actor = Depends(get_actor),  # noqa: B008
    service: VisitRatingService = Depends(get_rating_service),  # noqa: B008
) -> dict:
    church, history = await service.rating_history(church_id, limit, offset)
    return {
        "success": True,
        "data": {
            "church_id": church.id,
            "church_name": church.name,
            "ratings": [r.model_dump(mode="json") for r in history],
            "count": len(history),
        },
    }
