"""API contract tests for the visit rating endpoints.

The rating service is wired around the in-memory store and injected through
``app.dependency_overrides``; no database is needed.
"""

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.api.dependencies import get_rating_service
from src.main import app, build_rating_service
from tests.conftest import InMemoryRatingStore, fast_config

pytestmark = pytest.mark.integration

BASE_URL = "http://test"
MISSIONARY_HEADERS = {"X-User-Id": "missionary-1", "X-User-Role": "missionary"}
ADMIN_HEADERS = {"X-User-Id": "admin-1", "X-User-Role": "administrator"}

VALID_RATING = {
    "mission_openness_rating": 5,
    "hospitality_rating": 4,
    "missionary_support_count": 3,
    "offerings_amount": 0,
    "church_members": 50,
    "attendees_count": 40,
    "visit_duration_minutes": 120,
}


@pytest.fixture
def api_store() -> InMemoryRatingStore:
    return InMemoryRatingStore()


async def _serve(store: InMemoryRatingStore, debounce_seconds: float):
    service = build_rating_service(store, fast_config(debounce_seconds))
    app.dependency_overrides[get_rating_service] = lambda: service
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url=BASE_URL) as c:
            yield c
    finally:
        await service.scheduler.aclose()
        app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(api_store):
    async for c in _serve(api_store, debounce_seconds=0.02):
        yield c


@pytest_asyncio.fixture
async def slow_client(api_store):
    """Client whose scheduler keeps requests pending for the whole test."""
    async for c in _serve(api_store, debounce_seconds=30):
        yield c


# =========================================================================
# VISIT RATINGS
# =========================================================================


class TestCreateVisitRating:
    """POST /api/v1/visits/{visit_id}/rating"""

    @pytest.mark.asyncio
    async def test_create_success(self, client, api_store):
        api_store.add_visit(10, church_id=1)

        resp = await client.post(
            "/api/v1/visits/10/rating", json=VALID_RATING, headers=MISSIONARY_HEADERS
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["message_ro"] == "Evaluarea a fost creată cu succes"
        data = body["data"]
        assert data["calculated_star_rating"] == 5
        assert data["financial_score"] == 0
        assert data["weights"]["mission_openness"] == pytest.approx(0.55)
        assert data["rating"]["visit_id"] == 10
        assert data["church_average_stars"] == 5.0
        assert "X-Request-ID" in resp.headers

    @pytest.mark.asyncio
    async def test_church_summary_follows(self, client, api_store):
        api_store.add_visit(10, church_id=1)
        await client.post(
            "/api/v1/visits/10/rating", json=VALID_RATING, headers=MISSIONARY_HEADERS
        )
        await asyncio.sleep(0.1)

        resp = await client.get("/api/v1/churches/1/star-rating", headers=MISSIONARY_HEADERS)
        data = resp.json()["data"]
        assert data["has_ratings"] is True
        assert data["total_visits"] == 1
        assert data["average_stars"] == 5.0
        assert data["missionary_support_count"] == 3

    @pytest.mark.asyncio
    async def test_missing_identity(self, client, api_store):
        api_store.add_visit(10, church_id=1)
        resp = await client.post("/api/v1/visits/10/rating", json=VALID_RATING)
        assert resp.status_code == 403
        assert resp.json()["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_validation_errors_listed(self, client, api_store):
        api_store.add_visit(10, church_id=1)
        payload = {**VALID_RATING, "mission_openness_rating": 0, "church_members": 0}

        resp = await client.post(
            "/api/v1/visits/10/rating", json=payload, headers=MISSIONARY_HEADERS
        )

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["code"] == "VALIDATION_ERROR"
        assert body["message_ro"] == "Date de evaluare invalide"
        assert {e["field"] for e in body["errors"]} == {
            "mission_openness_rating",
            "church_members",
        }
        assert all(e["message_ro"] for e in body["errors"])

    @pytest.mark.asyncio
    async def test_non_finite_numbers_rejected(self, client, api_store):
        api_store.add_visit(10, church_id=1)
        content = (
            '{"mission_openness_rating": 5, "hospitality_rating": 4, '
            '"offerings_amount": NaN, "church_members": Infinity, "attendees_count": 40}'
        )

        resp = await client.post(
            "/api/v1/visits/10/rating",
            content=content,
            headers={**MISSIONARY_HEADERS, "Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert {e["field"] for e in resp.json()["errors"]} == {
            "offerings_amount",
            "church_members",
        }
        assert api_store.ratings == []

    @pytest.mark.asyncio
    async def test_duplicate_rating(self, client, api_store):
        api_store.add_visit(10, church_id=1)
        first = await client.post(
            "/api/v1/visits/10/rating", json=VALID_RATING, headers=MISSIONARY_HEADERS
        )
        second = await client.post(
            "/api/v1/visits/10/rating", json=VALID_RATING, headers=MISSIONARY_HEADERS
        )
        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["message_ro"] == "Această vizită a fost deja evaluată"

    @pytest.mark.asyncio
    async def test_unknown_visit(self, client):
        resp = await client.post(
            "/api/v1/visits/999/rating", json=VALID_RATING, headers=MISSIONARY_HEADERS
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_not_visit_owner(self, client, api_store):
        api_store.add_visit(10, church_id=1, visited_by="someone-else")
        resp = await client.post(
            "/api/v1/visits/10/rating", json=VALID_RATING, headers=MISSIONARY_HEADERS
        )
        assert resp.status_code == 403
        assert resp.json()["errors"][0]["code"] == "not_visit_owner"

    @pytest.mark.asyncio
    async def test_persistence_failure_hides_details(self, client, api_store):
        from src.domains.ratings.errors import RatingError

        api_store.add_visit(10, church_id=1)
        api_store.failures["create_visit_rating"] = RatingError.persistence(
            "create visit rating", RuntimeError("password=hunter2")
        )

        resp = await client.post(
            "/api/v1/visits/10/rating", json=VALID_RATING, headers=MISSIONARY_HEADERS
        )

        assert resp.status_code == 500
        body = resp.json()
        assert body["code"] == "DATABASE_ERROR"
        assert "hunter2" not in resp.text
        assert "request_id" in body


class TestGetVisitRating:
    """GET /api/v1/visits/{visit_id}/rating"""

    @pytest.mark.asyncio
    async def test_get_success(self, client, api_store):
        record = api_store.add_rating(1, stars=4, openness=4, hospitality=5)
        resp = await client.get(
            f"/api/v1/visits/{record.visit_id}/rating", headers=MISSIONARY_HEADERS
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["calculated_star_rating"] == 4
        assert set(data["descriptions"]) == {"mission_openness", "hospitality"}

    @pytest.mark.asyncio
    async def test_get_missing(self, client):
        resp = await client.get("/api/v1/visits/5/rating", headers=MISSIONARY_HEADERS)
        assert resp.status_code == 404
        assert resp.json()["message_ro"] == "Evaluarea nu a fost găsită"


# =========================================================================
# CHURCH STAR RATINGS
# =========================================================================


class TestChurchStarRating:
    """GET/PUT /api/v1/churches/{church_id}/star-rating"""

    @pytest.mark.asyncio
    async def test_unrated_church(self, client, api_store):
        api_store.add_church(2, "Biserica Betel")
        resp = await client.get("/api/v1/churches/2/star-rating", headers=MISSIONARY_HEADERS)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["church_name"] == "Biserica Betel"
        assert data["has_ratings"] is False
        assert data["average_stars"] == 0.0

    @pytest.mark.asyncio
    async def test_unknown_church(self, client):
        resp = await client.get("/api/v1/churches/2/star-rating", headers=MISSIONARY_HEADERS)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_force_recalculate_admin(self, client, api_store):
        api_store.add_rating(1, stars=5)
        api_store.add_rating(1, stars=4)

        resp = await client.put("/api/v1/churches/1/star-rating", headers=ADMIN_HEADERS)

        assert resp.status_code == 200
        body = resp.json()
        assert body["data"]["average_stars"] == 4.5
        assert body["data"]["total_visits"] == 2
        assert api_store.audit[-1]["title"] == "Rating recalculated"

    @pytest.mark.asyncio
    async def test_force_recalculate_forbidden(self, client, api_store):
        api_store.add_church(1)
        resp = await client.put("/api/v1/churches/1/star-rating", headers=MISSIONARY_HEADERS)
        assert resp.status_code == 403
        assert resp.json()["message_ro"].startswith("Acces interzis")

    @pytest.mark.asyncio
    async def test_history(self, client, api_store):
        for stars in (3, 4, 5):
            api_store.add_rating(1, stars=stars)
        resp = await client.get(
            "/api/v1/churches/1/star-rating/history?limit=2", headers=MISSIONARY_HEADERS
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["count"] == 2
        assert len(data["ratings"]) == 2


# =========================================================================
# CROSS-CHURCH QUERIES AND ADMINISTRATION
# =========================================================================


class TestRatingQueries:
    @pytest.mark.asyncio
    async def test_top_rated(self, client, api_store):
        for church_id, stars in ((1, 3), (2, 5), (3, 4)):
            api_store.add_rating(church_id, stars=stars)
        await client.post(
            "/api/v1/ratings/recalculate",
            json={"church_ids": [1, 2, 3], "priority": "high"},
            headers=ADMIN_HEADERS,
        )

        resp = await client.get("/api/v1/ratings/top-rated?limit=2", headers=MISSIONARY_HEADERS)

        assert resp.status_code == 200
        assert [s["church_id"] for s in resp.json()["data"]] == [2, 3]

    @pytest.mark.asyncio
    async def test_recently_active(self, client):
        resp = await client.get("/api/v1/ratings/recently-active", headers=MISSIONARY_HEADERS)
        assert resp.status_code == 200
        assert resp.json()["data"] == []

    @pytest.mark.asyncio
    async def test_statistics_empty(self, client):
        resp = await client.get("/api/v1/ratings/statistics", headers=MISSIONARY_HEADERS)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["total_rated_churches"] == 0
        assert data["rating_distribution"] == []


class TestRecalculationAdministration:
    @pytest.mark.asyncio
    async def test_batch_partial_failure(self, client, api_store):
        api_store.failing_churches.add(2)
        resp = await client.post(
            "/api/v1/ratings/recalculate",
            json={"church_ids": [1, 2, 3]},
            headers=ADMIN_HEADERS,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["data"]["succeeded"] == 2
        assert body["data"]["failed"] == 1
        assert body["data"]["errors"][0]["church_id"] == 2

    @pytest.mark.asyncio
    async def test_batch_requires_admin(self, client):
        resp = await client.post(
            "/api/v1/ratings/recalculate",
            json={"church_ids": [1]},
            headers=MISSIONARY_HEADERS,
        )
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_batch_rejects_empty_list(self, client):
        resp = await client.post(
            "/api/v1/ratings/recalculate", json={"church_ids": []}, headers=ADMIN_HEADERS
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_status_and_cancel(self, slow_client, api_store):
        client = slow_client
        api_store.add_visit(10, church_id=1)
        await client.post(
            "/api/v1/visits/10/rating", json=VALID_RATING, headers=MISSIONARY_HEADERS
        )

        status = await client.get(
            "/api/v1/ratings/recalculation-status?church_id=1", headers=ADMIN_HEADERS
        )
        assert status.json()["data"] == {
            "pending_count": 1,
            "church_id": 1,
            "state": "pending",
            "is_pending": True,
        }

        cancel = await client.delete("/api/v1/ratings/recalculations", headers=ADMIN_HEADERS)
        assert cancel.status_code == 200
        assert cancel.json()["data"]["cancelled"] == 1

    @pytest.mark.asyncio
    async def test_cancel_requires_admin(self, client):
        resp = await client.delete(
            "/api/v1/ratings/recalculations", headers=MISSIONARY_HEADERS
        )
        assert resp.status_code == 403
