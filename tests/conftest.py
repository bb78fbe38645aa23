"""Test configuration and fixtures."""

import asyncio
import itertools
import json
import re
from datetime import datetime, timezone
from typing import Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tourbook.services.session import UserSession

REMOTE_BASE_URL = "http://remote.test/api/v1"
API_PREFIX = "/api/v1"
USER_TOKEN = "token-user-1"
OTHER_TOKEN = "token-user-2"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_response(status_code: int, payload: Optional[dict] = None) -> httpx.Response:
    if payload is None:
        return httpx.Response(status_code)
    return httpx.Response(status_code, json=payload)


def _fail(status_code: int, message: str) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"status": "fail" if status_code < 500 else "error", "message": message},
    )


class HeldRequest:
    """A request parked in the fake store until the test releases it."""

    def __init__(self):
        self.arrived = asyncio.Event()
        self.release = asyncio.Event()


class FakeRemoteStore:
    """
    In-memory stand-in for the remote tour/booking/review REST API.

    Documents use the remote wire shape: ``_id`` identities and embedded
    ``tour``/``user`` objects. Failures are injected per (method, path
    prefix) through ``fail_on`` or globally through ``unreachable``.
    """

    def __init__(self):
        self.users = {
            USER_TOKEN: {"_id": "u1", "name": "Jonas Traveller", "photo": "user-1.jpg"},
            OTHER_TOKEN: {"_id": "u2", "name": "Sarah Hiker", "photo": "user-2.jpg"},
        }
        self.tours = {
            "t1": "The Forest Hiker",
            "t2": "The Sea Explorer",
            "t3": "The Snow Adventurer",
        }
        self.bookings: dict[str, dict] = {}
        self.reviews: dict[str, dict] = {}
        self.requests: list[tuple[str, str, Optional[dict]]] = []
        self.failures: dict[tuple[str, str], tuple[int, str]] = {}
        self.unreachable = False
        self.populate_review_tours = False
        self.holds: dict[tuple[str, str], HeldRequest] = {}
        self.allowed_statuses = {"paid", "pending-review", "reviewed", "cancelled"}
        self._ids = itertools.count(1)

    # Seeding

    def add_booking(self, booking_id: str, tour_id: str, status: str, user_id: str = "u1") -> dict:
        doc = {
            "_id": booking_id,
            "tour": {"_id": tour_id, "name": self.tours.get(tour_id, "Unknown")},
            "user": user_id,
            "status": status,
            "price": 497,
            "paid": True,
            "createdAt": _now(),
        }
        self.bookings[booking_id] = doc
        return doc

    def add_review(self, review_id: str, tour_id: str, user_id: str = "u1", rating: int = 4, text: str = "Lovely") -> dict:
        user = next(u for u in self.users.values() if u["_id"] == user_id)
        doc = {
            "_id": review_id,
            "review": text,
            "rating": rating,
            "tour": tour_id,
            "user": dict(user),
            "createdAt": _now(),
            "updatedAt": _now(),
        }
        self.reviews[review_id] = doc
        return doc

    def fail_on(self, method: str, path_prefix: str, status_code: int = 500, message: str = "Something went wrong") -> None:
        self.failures[(method, path_prefix)] = (status_code, message)

    def hold(self, method: str, path_prefix: str) -> HeldRequest:
        """Park the next matching request until ``release`` is set."""
        held = HeldRequest()
        self.holds[(method, path_prefix)] = held
        return held

    # Inspection

    def booking_status(self, booking_id: str) -> str:
        return self.bookings[booking_id]["status"]

    def calls(self, method: str, path_prefix: str = "") -> list[tuple[str, str, Optional[dict]]]:
        return [
            call for call in self.requests
            if call[0] == method and call[1].startswith(path_prefix)
        ]

    @property
    def booking_status_writes(self) -> list[tuple[str, str, Optional[dict]]]:
        return self.calls("PATCH", "/bookings/")

    # Transport

    async def async_handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix(API_PREFIX)
        for (method, prefix), held in list(self.holds.items()):
            if request.method == method and path.startswith(prefix):
                del self.holds[(method, prefix)]
                held.arrived.set()
                await held.release.wait()
        return self.handler(request)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix(API_PREFIX)
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body))

        if self.unreachable:
            raise httpx.ConnectError("Connection refused", request=request)

        for (method, prefix), (status_code, message) in self.failures.items():
            if request.method == method and path.startswith(prefix):
                return _fail(status_code, message)

        match = re.fullmatch(r"/tours/([^/]+)/reviews", path)
        if match and request.method == "GET":
            return self._tour_reviews(match.group(1))

        auth = request.headers.get("Authorization", "")
        user = self.users.get(auth.removeprefix("Bearer "))
        if user is None:
            return _fail(401, "You are not logged in! Please log in to get access.")

        if match and request.method == "POST":
            return self._create_review(user, match.group(1), body or {})
        if path == "/reviews/my-reviews" and request.method == "GET":
            docs = [r for r in self.reviews.values() if r["user"]["_id"] == user["_id"]]
            if self.populate_review_tours:
                docs = [{**r, "tour": self._tour_ref(r["tour"])} for r in docs]
            return _json_response(200, {"status": "success", "results": len(docs), "data": {"reviews": docs}})

        match = re.fullmatch(r"/reviews/([^/]+)", path)
        if match and request.method == "PATCH":
            return self._update_review(user, match.group(1), body or {})
        if match and request.method == "DELETE":
            return self._delete_review(user, match.group(1))

        if path == "/bookings/my-bookings" and request.method == "GET":
            docs = [b for b in self.bookings.values() if b["user"] == user["_id"]]
            return _json_response(200, {"status": "success", "results": len(docs), "data": {"bookings": docs}})

        match = re.fullmatch(r"/bookings/checkout-session/([^/]+)", path)
        if match and request.method == "GET":
            tour_id = match.group(1)
            if tour_id not in self.tours:
                return _fail(404, "No tour found with that ID")
            session_id = f"cs_test_{next(self._ids)}"
            return _json_response(200, {
                "status": "success",
                "data": {"session": {"id": session_id, "url": f"https://checkout.stripe.test/pay/{session_id}"}},
            })

        match = re.fullmatch(r"/bookings/([^/]+)", path)
        if match and request.method == "PATCH":
            return self._update_booking(user, match.group(1), body or {})

        return _fail(404, f"Can't find {path} on this server!")

    def _tour_ref(self, tour_id: str) -> dict:
        if tour_id not in self.tours:
            return {"_id": tour_id}
        name = self.tours[tour_id]
        return {
            "_id": tour_id,
            "name": name,
            "slug": name.lower().replace(" ", "-"),
            "imageCover": f"tour-{tour_id[1:]}-cover.jpg",
        }

    def _tour_reviews(self, tour_id: str) -> httpx.Response:
        docs = [r for r in self.reviews.values() if r["tour"] == tour_id]
        return _json_response(200, {"status": "success", "results": len(docs), "data": {"docs": docs}})

    def _create_review(self, user: dict, tour_id: str, body: dict) -> httpx.Response:
        if tour_id not in self.tours:
            return _fail(404, "No tour found with that ID")
        if any(r["tour"] == tour_id and r["user"]["_id"] == user["_id"] for r in self.reviews.values()):
            return _fail(409, "Duplicate field value: you have already reviewed this tour")
        rating = body.get("rating")
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            return _fail(400, "Rating must be between 1 and 5")
        review_id = f"r{next(self._ids)}"
        doc = self.add_review(review_id, tour_id, user_id=user["_id"], rating=rating, text=body.get("review", ""))
        return _json_response(201, {"status": "success", "data": {"review": doc}})

    def _update_review(self, user: dict, review_id: str, body: dict) -> httpx.Response:
        doc = self.reviews.get(review_id)
        if doc is None or doc["user"]["_id"] != user["_id"]:
            return _fail(404, "No document found with that ID")
        doc.update({k: v for k, v in body.items() if k in ("rating", "review")})
        doc["updatedAt"] = _now()
        return _json_response(200, {"status": "success", "data": {"doc": doc}})

    def _delete_review(self, user: dict, review_id: str) -> httpx.Response:
        doc = self.reviews.get(review_id)
        if doc is None or doc["user"]["_id"] != user["_id"]:
            return _fail(404, "No document found with that ID")
        del self.reviews[review_id]
        return _json_response(204)

    def _update_booking(self, user: dict, booking_id: str, body: dict) -> httpx.Response:
        doc = self.bookings.get(booking_id)
        if doc is None or doc["user"] != user["_id"]:
            return _fail(404, "No document found with that ID")
        status = body.get("status")
        if status not in self.allowed_statuses:
            return _fail(409, f"Cannot move booking to status '{status}'")
        doc["status"] = status
        return _json_response(200, {"status": "success", "data": {"booking": doc}})


@pytest.fixture(scope="session")
def remote_store_factory():
    """Builds unseeded stores, for tests that need several or run outside fixtures."""
    return FakeRemoteStore


@pytest.fixture
def remote_store():
    """Remote store seeded with one pending-review booking for tour t1."""
    store = FakeRemoteStore()
    store.add_booking("b1", "t1", "pending-review")
    return store


@pytest_asyncio.fixture
async def http_client(remote_store):
    """HTTP client whose transport is the fake remote store."""
    async with AsyncClient(
        base_url=REMOTE_BASE_URL,
        transport=httpx.MockTransport(remote_store.async_handler),
    ) as client:
        yield client


@pytest_asyncio.fixture
async def user_session(http_client):
    """Coordination session for user u1, waiting for booking syncs."""
    session = UserSession(http_client, USER_TOKEN, await_booking_sync=True)
    yield session
    await session.close()


@pytest_asyncio.fixture
async def loaded_session(user_session):
    """Session whose bookings and own reviews were loaded from the remote store."""
    assert (await user_session.bookings.load_user_bookings()).success
    assert (await user_session.reviews.load_user_reviews()).success
    return user_session


@pytest_asyncio.fixture
async def test_app(http_client):
    """Application wired to the fake remote store."""
    from tourbook.main import create_app

    app = create_app(http_client=http_client)
    yield app
    await app.state.session_registry.close()


@pytest_asyncio.fixture
async def test_client(test_app):
    """HTTP client for the application under test."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def user_token():
    return USER_TOKEN


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {USER_TOKEN}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {OTHER_TOKEN}"}
