"""FastAPI dependencies shared by the rating routers."""

from fastapi import Header, Request

from src.domains.ratings.errors import RatingError
from src.domains.ratings.models import Actor
from src.domains.ratings.service import VisitRatingService


def get_rating_service(request: Request) -> VisitRatingService:
    """The process-wide rating service built during application startup."""
    return request.app.state.rating_service


def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Actor:
    # Token validation happens upstream; the gateway forwards identity headers
    if not x_user_id:
        raise RatingError.unauthorized(
            "Authentication required", "Autentificare necesară"
        )
    return Actor(user_id=x_user_id, role=(x_user_role or "missionary").lower())
