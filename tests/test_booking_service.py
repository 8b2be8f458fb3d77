"""
Tests for services/booking/booking_service.py

Commit-time validation, conflict rejection, side effects and concurrency.
"""
import threading
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from slotbook.models import ActionToken, Booking, BookingStatus
from slotbook.services.availability.availability_service import AvailabilityService
from slotbook.services.booking.booking_service import BookingService

from conftest import FakeAuditTask, add_busy_block, add_rule, make_provider, make_service, set_policy

UTC = timezone.utc
MONDAY = "2025-01-20"
NOW = datetime(2025, 1, 1, tzinfo=UTC)


def at(hour, minute=0):
    return datetime(2025, 1, 20, hour, minute, tzinfo=UTC)


def payload(provider, service, start, **overrides):
    data = {
        "provider_id": str(provider.id),
        "service_id": str(service.id),
        "start_at": start.isoformat(),
        "client_name": "Sam O'Client",
        "client_email": "sam@example.com",
        "client_phone": "+1 (555) 010-2000",
        "notes": "First visit",
    }
    data.update(overrides)
    return data


def setup_provider(db, duration=60, before=0, after=0, min_notice=0):
    provider = make_provider(db)
    service = make_service(db, provider, duration_minutes=duration)
    add_rule(db, provider, 1, "09:00", "17:00")
    set_policy(db, provider, before=before, after=after, min_notice=min_notice)
    return provider, service


class TestCreateBooking:

    def test_books_a_free_slot(self, db, audit_queue):
        provider, service = setup_provider(db)

        result = BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW)

        assert result.success is True
        assert result.error is None
        assert result.booking.start_at == at(10)
        assert result.booking.end_at == at(11)
        assert result.booking.status == BookingStatus.CONFIRMED.value
        assert result.booking.client_name == "Sam O'Client"
        assert db.query(Booking).count() == 1
        assert [call["action"] for call in audit_queue.calls] == ["create"]

    def test_end_at_comes_from_the_service(self, db):
        provider, service = setup_provider(db, duration=45)

        result = BookingService.create_booking(
            db, payload(provider, service, at(10), end_at=at(16).isoformat()), now=NOW
        )

        assert result.success
        assert result.booking.end_at == at(10, 45)
        stored = db.query(Booking).one()
        assert stored.end_at.replace(tzinfo=UTC) - stored.start_at.replace(tzinfo=UTC) == timedelta(minutes=45)

    def test_offsets_are_normalised(self, db):
        provider, service = setup_provider(db)
        local = datetime(2025, 1, 20, 5, tzinfo=timezone(timedelta(hours=-5)))

        result = BookingService.create_booking(db, payload(provider, service, local), now=NOW)

        assert result.success
        assert result.booking.start_at == at(10)

    def test_issues_a_cancel_token(self, db):
        provider, service = setup_provider(db)

        result = BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW)

        token = db.query(ActionToken).filter(ActionToken.token == result.cancel_token).one()
        assert token.type == "cancel"
        assert token.expires_at.replace(tzinfo=UTC) == at(10) - timedelta(hours=24)

    def test_overlapping_booking_is_rejected(self, db):
        provider, service = setup_provider(db)
        assert BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW).success

        result = BookingService.create_booking(db, payload(provider, service, at(10, 30)), now=NOW)

        assert result.success is False
        assert result.error_code == "slot_unavailable"
        assert result.error == "This time slot is no longer available"
        assert db.query(Booking).count() == 1

    def test_adjacent_booking_is_allowed_without_buffers(self, db):
        provider, service = setup_provider(db)
        assert BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW).success

        assert BookingService.create_booking(db, payload(provider, service, at(11)), now=NOW).success

    def test_buffers_keep_padded_bookings_apart(self, db):
        provider, service = setup_provider(db, before=15, after=15)
        assert BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW).success

        assert not BookingService.create_booking(db, payload(provider, service, at(11)), now=NOW).success
        assert not BookingService.create_booking(db, payload(provider, service, at(11, 15)), now=NOW).success
        assert BookingService.create_booking(db, payload(provider, service, at(11, 30)), now=NOW).success

        bookings = db.query(Booking).order_by(Booking.start_at).all()
        padded = [
            (b.start_at.replace(tzinfo=UTC) - timedelta(minutes=15), b.end_at.replace(tzinfo=UTC) + timedelta(minutes=15))
            for b in bookings
        ]
        for (start_a, end_a), (start_b, end_b) in zip(padded, padded[1:]):
            assert not (start_a < end_b and end_a > start_b)

    def test_busy_block_is_rejected(self, db):
        provider, service = setup_provider(db)
        add_busy_block(db, provider, at(12), at(13))

        result = BookingService.create_booking(db, payload(provider, service, at(11, 30)), now=NOW)

        assert result.error_code == "slot_unavailable"

    def test_outside_availability_is_rejected(self, db):
        provider, service = setup_provider(db)

        result = BookingService.create_booking(db, payload(provider, service, at(16, 30)), now=NOW)

        assert result.error_code == "slot_unavailable"
        assert "availability" in result.error

    def test_slot_across_two_touching_rules_is_rejected(self, db):
        provider = make_provider(db)
        service = make_service(db, provider, duration_minutes=60)
        add_rule(db, provider, 1, "09:00", "10:10")
        add_rule(db, provider, 1, "10:10", "12:00")
        set_policy(db, provider)

        straddling = BookingService.create_booking(db, payload(provider, service, at(9, 15)), now=NOW)
        inside = BookingService.create_booking(db, payload(provider, service, at(10, 10)), now=NOW)

        assert straddling.error_code == "slot_unavailable"
        assert "availability" in straddling.error
        assert inside.success

    def test_minimum_notice_is_enforced(self, db):
        provider, service = setup_provider(db, min_notice=120)

        result = BookingService.create_booking(db, payload(provider, service, at(10)), now=at(9))

        assert result.error_code == "slot_unavailable"

    def test_listed_slot_can_be_booked(self, db):
        provider, service = setup_provider(db, duration=30, before=10, after=5)
        BookingService.create_booking(db, payload(provider, service, at(13)), now=NOW)

        for _ in range(3):
            listed = AvailabilityService.list_available_slots(db, "jane-doe", service.id, MONDAY, now=NOW)
            slot = listed.slots[0]
            result = BookingService.create_booking(db, payload(provider, service, slot.start), now=NOW)
            assert result.success, (slot.start, result.error)

        starts = [b.start_at.replace(tzinfo=UTC) for b in db.query(Booking).order_by(Booking.start_at)]
        assert starts == [at(9), at(9, 45), at(10, 30), at(13)]

    def test_audit_failure_does_not_fail_the_booking(self, db, monkeypatch):
        from slotbook.services.audit import audit_service
        monkeypatch.setattr(audit_service, "write_audit_log", FakeAuditTask(fail=True))
        provider, service = setup_provider(db)

        result = BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW)

        assert result.success
        assert db.query(Booking).count() == 1


class TestCreateBookingValidation:

    def test_unknown_provider(self, db):
        provider, service = setup_provider(db)

        result = BookingService.create_booking(
            db, payload(provider, service, at(10), provider_id=str(uuid4())), now=NOW
        )

        assert result.error_code == "provider_not_found"

    def test_service_of_another_provider(self, db):
        provider, service = setup_provider(db)
        other = make_provider(db, username="someone-else")

        result = BookingService.create_booking(
            db, payload(provider, service, at(10), provider_id=str(other.id)), now=NOW
        )

        assert result.error_code == "service_not_found"

    def test_unknown_service(self, db):
        provider, service = setup_provider(db)

        result = BookingService.create_booking(
            db, payload(provider, service, at(10), service_id=str(uuid4())), now=NOW
        )

        assert result.error_code == "service_not_found"

    def test_inactive_service(self, db):
        provider, service = setup_provider(db)
        service.is_active = False
        db.commit()

        result = BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW)

        assert result.error_code == "service_not_found"
        assert "not available for booking" in result.error

    def test_naive_start_is_rejected(self, db):
        provider, service = setup_provider(db)

        result = BookingService.create_booking(
            db, payload(provider, service, at(10), start_at="2025-01-20T10:00:00"), now=NOW
        )

        assert result.error_code == "validation_error"
        assert db.query(Booking).count() == 0

    def test_contact_is_required(self, db):
        provider, service = setup_provider(db)

        result = BookingService.create_booking(
            db, payload(provider, service, at(10), client_email="", client_phone=None), now=NOW
        )

        assert result.error_code == "validation_error"

    def test_bad_name_and_email(self, db):
        provider, service = setup_provider(db)

        for overrides in ({"client_name": "R2-D2"}, {"client_name": "A"}, {"client_email": "not-an-email"}):
            result = BookingService.create_booking(db, payload(provider, service, at(10), **overrides), now=NOW)
            assert result.error_code == "validation_error", overrides


class TestRescheduleBooking:

    def test_moves_to_a_free_time(self, db, audit_queue):
        provider, service = setup_provider(db)
        booking = BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW).booking

        result = BookingService.reschedule_booking(db, provider.id, booking.id, at(14), now=NOW)

        assert result.success
        assert result.booking.start_at == at(14)
        assert result.booking.end_at == at(15)
        assert audit_queue.calls[-1]["action"] == "reschedule"

    def test_can_shift_within_its_own_time(self, db):
        provider, service = setup_provider(db, after=15)
        booking = BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW).booking

        result = BookingService.reschedule_booking(db, provider.id, booking.id, at(10, 15), now=NOW)

        assert result.success
        assert result.booking.start_at == at(10, 15)

    def test_cannot_move_onto_another_booking(self, db):
        provider, service = setup_provider(db)
        first = BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW).booking
        BookingService.create_booking(db, payload(provider, service, at(14)), now=NOW)

        result = BookingService.reschedule_booking(db, provider.id, first.id, at(14, 30), now=NOW)

        assert result.error_code == "slot_unavailable"
        assert db.query(Booking).filter(Booking.id == first.id).one().start_at.replace(tzinfo=UTC) == at(10)

    def test_other_providers_booking(self, db):
        provider, service = setup_provider(db)
        other = make_provider(db, username="someone-else")
        booking = BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW).booking

        result = BookingService.reschedule_booking(db, other.id, booking.id, at(14), now=NOW)

        assert result.error_code == "booking_not_found"

    def test_naive_new_start(self, db):
        provider, service = setup_provider(db)
        booking = BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW).booking

        result = BookingService.reschedule_booking(db, provider.id, booking.id, datetime(2025, 1, 20, 14), now=NOW)

        assert result.error_code == "validation_error"

    def test_completed_booking_stays_put(self, db):
        provider, service = setup_provider(db)
        booking = BookingService.create_booking(db, payload(provider, service, at(10)), now=NOW).booking
        row = db.query(Booking).filter(Booking.id == booking.id).one()
        row.status = BookingStatus.COMPLETED.value
        db.commit()

        result = BookingService.reschedule_booking(db, provider.id, booking.id, at(14), now=NOW)

        assert result.error_code == "validation_error"
        db.expire_all()
        row = db.query(Booking).filter(Booking.id == booking.id).one()
        assert row.status == BookingStatus.COMPLETED.value
        assert row.start_at.replace(tzinfo=UTC) == at(10)


class TestConcurrentBookings:

    def test_only_one_of_two_overlapping_requests_wins(self, db, session_factory):
        provider, service = setup_provider(db)
        requests = [
            payload(provider, service, at(10)),
            payload(provider, service, at(10, 30), client_name="Alex Rival"),
        ]
        barrier = threading.Barrier(len(requests))
        results = [None] * len(requests)
        # Release the fixture session so only the two writers compete
        db.commit()

        def book(index):
            session = session_factory()
            try:
                barrier.wait()
                results[index] = BookingService.create_booking(session, requests[index], now=NOW)
            finally:
                session.close()

        threads = [threading.Thread(target=book, args=(i,)) for i in range(len(requests))]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        outcomes = sorted((r.success, r.error_code) for r in results)
        assert outcomes == [(False, "slot_unavailable"), (True, None)]
        db.expire_all()
        assert db.query(Booking).count() == 1

    def test_non_overlapping_requests_both_win(self, db, session_factory):
        provider, service = setup_provider(db)
        requests = [payload(provider, service, at(10)), payload(provider, service, at(13))]
        barrier = threading.Barrier(len(requests))
        results = [None] * len(requests)
        # Release the fixture session so only the two writers compete
        db.commit()

        def book(index):
            session = session_factory()
            try:
                barrier.wait()
                results[index] = BookingService.create_booking(session, requests[index], now=NOW)
            finally:
                session.close()

        threads = [threading.Thread(target=book, args=(i,)) for i in range(len(requests))]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert all(r.success for r in results)
