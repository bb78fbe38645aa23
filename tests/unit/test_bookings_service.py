"""Unit tests for the bookings service."""

import pytest


@pytest.mark.asyncio
async def test_load_user_bookings(user_session, remote_store):
    remote_store.add_booking("b2", "t2", "reviewed")

    result = await user_session.bookings.load_user_bookings()

    assert result.success
    assert [b.id for b in result.bookings] == ["b1", "b2"]
    assert user_session.bookings_cache.is_loading is False
    assert user_session.bookings_cache.error is None


@pytest.mark.asyncio
async def test_load_failure_keeps_cache_and_sets_error(loaded_session, remote_store):
    remote_store.unreachable = True

    result = await loaded_session.bookings.load_user_bookings()

    assert not result.success
    assert result.code == "NETWORK_ERROR"
    assert loaded_session.bookings_cache.error == result.error
    assert [b.id for b in loaded_session.bookings.user_bookings] == ["b1"]


@pytest.mark.asyncio
async def test_create_checkout_session(user_session):
    result = await user_session.bookings.create_checkout_session("t2")

    assert result.success
    assert result.session_id
    assert result.url.startswith("https://")
    assert user_session.bookings_cache.is_submitting is False


@pytest.mark.asyncio
async def test_create_checkout_session_unknown_tour(user_session):
    result = await user_session.bookings.create_checkout_session("nope")

    assert not result.success
    assert result.code == "VALIDATION_ERROR"
    assert result.url is None


@pytest.mark.asyncio
async def test_update_booking_status_writes_remote_then_cache(loaded_session, remote_store):
    result = await loaded_session.bookings.update_booking_status("b1", "cancelled")

    assert result.success
    assert result.booking.status == "cancelled"
    assert remote_store.booking_status("b1") == "cancelled"
    assert loaded_session.bookings.get_tour_booking_status("t1") == "cancelled"


@pytest.mark.asyncio
async def test_update_booking_status_failure_leaves_cache(loaded_session, remote_store):
    remote_store.fail_on("PATCH", "/bookings/", 500)

    result = await loaded_session.bookings.update_booking_status("b1", "cancelled")

    assert not result.success
    assert result.code == "REMOTE_SERVICE_ERROR"
    assert loaded_session.bookings.get_tour_booking_status("t1") == "pending-review"


@pytest.mark.asyncio
async def test_mark_booking_as_reviewed(loaded_session, remote_store):
    result = await loaded_session.bookings.mark_booking_as_reviewed("t1")

    assert result.success
    assert remote_store.booking_status("b1") == "reviewed"
    assert loaded_session.bookings.get_tour_booking_status("t1") == "reviewed"


@pytest.mark.asyncio
async def test_mark_booking_as_reviewed_without_booking(loaded_session, remote_store):
    result = await loaded_session.bookings.mark_booking_as_reviewed("t3")

    assert not result.success
    assert result.code == "NOT_FOUND"
    assert result.error == "Booking not found"
    assert remote_store.booking_status_writes == []


@pytest.mark.asyncio
async def test_mark_booking_as_pending_review_requires_reviewed(loaded_session, remote_store):
    result = await loaded_session.bookings.mark_booking_as_pending_review("t1")

    assert not result.success
    assert result.code == "CONFLICT"
    assert result.error == "Booking is not reviewed"
    assert remote_store.booking_status_writes == []


@pytest.mark.asyncio
async def test_mark_booking_as_reviewed_twice(loaded_session):
    assert (await loaded_session.bookings.mark_booking_as_reviewed("t1")).success

    result = await loaded_session.bookings.mark_booking_as_reviewed("t1")

    assert not result.success
    assert result.error == "Booking is not pending review"


@pytest.mark.asyncio
async def test_queries_and_selection(loaded_session):
    booking = loaded_session.bookings.find_booking_by_tour_id("t1")
    assert booking.id == "b1"
    assert [b.id for b in loaded_session.bookings.get_pending_review_bookings()] == ["b1"]

    loaded_session.bookings.select_booking(booking)
    assert loaded_session.bookings_cache.current_booking.id == "b1"

    loaded_session.bookings.clear_selected_booking()
    assert loaded_session.bookings_cache.current_booking is None


@pytest.mark.asyncio
async def test_clear_error(loaded_session, remote_store):
    remote_store.unreachable = True
    await loaded_session.bookings.load_user_bookings()
    assert loaded_session.bookings_cache.error

    loaded_session.bookings.clear_error()

    assert loaded_session.bookings_cache.error is None
