"""Visit rating endpoints."""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_actor, get_rating_service
from src.domains.ratings.models import Actor, VisitRatingInput
from src.domains.ratings.service import VisitRatingService

router = APIRouter(prefix="/api/v1/visits", tags=["ratings"])


@router.post("/{visit_id}/rating", status_code=201)
async def create_visit_rating(
    visit_id: int,
    payload: VisitRatingInput,
    actor: Actor = Depends(get_actor),  # noqa: B008
    service: VisitRatingService = Depends(get_rating_service),  # noqa: B008
) -> dict:
    """Rate a visit and schedule a refresh of its church's star rating."""
    outcome = await service.create_rating(visit_id, payload, actor)
    calculated = outcome["calculated"]

    return {
        "success": True,
        "message": "Rating created successfully",
        "message_ro": "Evaluarea a fost creată cu succes",
        "data": {
            "rating": outcome["rating"].model_dump(mode="json"),
            "calculated_star_rating": calculated.star_rating,
            "financial_score": calculated.financial_score,
            "breakdown": calculated.breakdown.model_dump(),
            "weights": calculated.weights.model_dump(),
            "church_average_stars": outcome["church_average_stars"],
        },
    }


@router.get("/{visit_id}/rating")
async def get_visit_rating(
    visit_id: int,
    _actor: Actor = Depends(get_actor),  # noqa: B008
    service: VisitRatingService = Depends(get_rating_service),  # noqa: B008
) -> dict:
    outcome = await service.get_rating(visit_id)
    return {
        "success": True,
        "data": {
            **outcome["rating"].model_dump(mode="json"),
            "descriptions": outcome["descriptions"],
        },
    }
