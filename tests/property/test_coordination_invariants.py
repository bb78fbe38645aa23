"""Property-based tests for booking/review coordination invariants."""

import asyncio

import httpx
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from tourbook.schemas.review import CreateReviewRequest
from tourbook.services.session import UserSession

TOURS = ["t1", "t2", "t3"]
TOKEN = "token-user-1"

# Per tour: no booking, a booking awaiting review, a reviewed booking with
# its review, or a booking in a status the coordination never touches.
initial_states = st.fixed_dictionaries({
    tour: st.sampled_from(["none", "pending", "reviewed", "paid"]) for tour in TOURS
})
operations = st.lists(
    st.tuples(st.sampled_from(["create", "delete"]), st.sampled_from(TOURS)),
    min_size=1,
    max_size=12,
)

property_settings = settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)


def seed(store, states: dict) -> None:
    for index, (tour, state) in enumerate(sorted(states.items())):
        booking_id = f"b{index}"
        if state == "pending":
            store.add_booking(booking_id, tour, "pending-review")
        elif state == "reviewed":
            store.add_booking(booking_id, tour, "reviewed")
            store.add_review(f"seed-{tour}", tour)
        elif state == "paid":
            store.add_booking(booking_id, tour, "paid")


async def apply(session: UserSession, op: str, tour: str):
    if op == "create":
        return await session.reviews.create_review(
            CreateReviewRequest(tour_id=tour, rating=4, review="Property review")
        )
    mine = [r for r in session.reviews.user_reviews if r.tour_id == tour]
    return await session.reviews.delete_review(mine[0].id if mine else f"missing-{tour}")


async def run_scenario(store, states: dict, ops: list, fail_status_writes: bool = False):
    seed(store, states)
    if fail_status_writes:
        store.fail_on("PATCH", "/bookings/", 500)

    async with httpx.AsyncClient(
        base_url="http://remote.test/api/v1",
        transport=httpx.MockTransport(store.handler),
    ) as http:
        session = UserSession(http, TOKEN, await_booking_sync=True)
        assert (await session.bookings.load_user_bookings()).success
        assert (await session.reviews.load_user_reviews()).success

        outcomes = []
        snapshots = []
        for op, tour in ops:
            result = await apply(session, op, tour)
            outcomes.append((op, tour, result.success, result.code))
            snapshots.append({
                "statuses": {b.tour_id: b.status for b in session.bookings.user_bookings},
                "reviewed": {t: session.reviews.has_user_reviewed_tour(t) for t in TOURS},
                "remote": {b["tour"]["_id"]: b["status"] for b in store.bookings.values()},
            })

        await session.sync_runner.drain()
        reloaded = await session.bookings.load_user_bookings()
        final = {b.tour_id: b.status for b in reloaded.bookings}
        await session.close()
        return outcomes, snapshots, final


@property_settings
@given(states=initial_states, ops=operations)
def test_booking_status_follows_review_existence(remote_store_factory, states, ops):
    """Review-driven statuses always mirror review existence, locally and remotely."""
    store = remote_store_factory()
    outcomes, snapshots, _ = asyncio.run(run_scenario(store, states, ops))

    for (op, tour, success, code), snapshot in zip(outcomes, snapshots):
        for booked_tour, status in snapshot["statuses"].items():
            assert snapshot["remote"][booked_tour] == status
            if states[booked_tour] == "paid":
                assert status == "paid"
            else:
                expected = "reviewed" if snapshot["reviewed"][booked_tour] else "pending-review"
                assert status == expected

        if not success:
            assert code in ("DUPLICATE_REVIEW", "NOT_FOUND")


@property_settings
@given(states=initial_states, ops=operations)
def test_failed_status_sync_never_changes_primary_outcome(remote_store_factory, states, ops):
    """A failing booking status write leaves review results and review state unchanged."""
    healthy_outcomes, healthy_snapshots, _ = asyncio.run(
        run_scenario(remote_store_factory(), states, ops)
    )
    failing_store = remote_store_factory()
    failing_outcomes, failing_snapshots, final = asyncio.run(
        run_scenario(failing_store, states, ops, fail_status_writes=True)
    )

    assert [o[:3] for o in failing_outcomes] == [o[:3] for o in healthy_outcomes]
    for healthy, failing in zip(healthy_snapshots, failing_snapshots):
        assert failing["reviewed"] == healthy["reviewed"]
        assert failing["statuses"] == healthy["statuses"]

    # A full reload brings the cache back to whatever the remote store holds.
    assert final == {b["tour"]["_id"]: b["status"] for b in failing_store.bookings.values()}


@property_settings
@given(states=initial_states)
def test_duplicate_create_is_rejected_without_status_write(remote_store_factory, states):
    store = remote_store_factory()
    reviewed_tours = [tour for tour, state in states.items() if state == "reviewed"]
    ops = [("create", tour) for tour in reviewed_tours] or [("create", "t1"), ("create", "t1")]

    outcomes, _, _ = asyncio.run(run_scenario(store, states, ops))

    duplicates = [o for o in outcomes if o[3] == "DUPLICATE_REVIEW"]
    assert duplicates
    if reviewed_tours:
        assert store.booking_status_writes == []
