import asyncio
from datetime import datetime, timedelta
import time

import pytest

from bikerental.core.exceptions import (
    InfrastructureException,
    NotFoundException,
    ProviderException,
    ReservationConflictError,
    ValidationException,
)
from bikerental.repositories.ledger import LedgerTransaction
from bikerental.schemas.customer import CustomerRef
from bikerental.schemas.reservation import (
    Location,
    ReservationApproved,
    ReservationRejected,
    ReservationRequest,
)
from bikerental.services.reservation_service import BIKE_NOT_AVAILABLE, ReservationService


def _approved(outcome) -> ReservationApproved:
    assert isinstance(outcome, ReservationApproved), outcome
    return outcome


class TestMakeReservation:
    @pytest.mark.asyncio
    async def test_approves_and_persists(self, reservation_service, ledger, bike, make_request, hours):
        outcome = _approved(
            await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(12)))
        )

        stored = ledger.reservations.get(outcome.reservation.id)
        assert stored is not None
        assert stored.status == "approved"
        assert stored.start_time == hours(10)
        assert stored.end_time == hours(12)
        assert outcome.reservation.total_value == 2000.0
        assert outcome.applied_discount == 0.0

    @pytest.mark.asyncio
    async def test_touching_intervals_do_not_overlap(self, reservation_service, bike, make_request, hours):
        first = await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11)))
        second = await reservation_service.make_reservation(make_request(bike.id, hours(11), hours(12)))
        third = await reservation_service.make_reservation(
            make_request(bike.id, hours(10, 30), hours(11, 30))
        )

        _approved(first)
        _approved(second)
        assert isinstance(third, ReservationRejected)
        assert third.reason == BIKE_NOT_AVAILABLE

    @pytest.mark.asyncio
    async def test_other_bikes_are_independent(self, reservation_service, seed_bike, make_request, hours):
        bike_a, bike_b = seed_bike(), seed_bike()

        _approved(await reservation_service.make_reservation(make_request(bike_a.id, hours(10), hours(11))))
        _approved(await reservation_service.make_reservation(make_request(bike_b.id, hours(10), hours(11))))

    @pytest.mark.asyncio
    async def test_unknown_bike_is_rejected(self, reservation_service, ledger, make_request, hours):
        outcome = await reservation_service.make_reservation(make_request("missing-bike", hours(10), hours(11)))

        assert isinstance(outcome, ReservationRejected)
        assert outcome.reason == "bike with id 'missing-bike' does not exist"
        assert ledger.customers.get_all() == []

    @pytest.mark.asyncio
    async def test_heavy_bike_discount_is_capped(self, reservation_service, seed_bike, make_request, hours):
        bike = seed_bike(price_per_hour=1000.0, weight_kg=50.0)

        outcome = _approved(
            await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11)))
        )

        assert outcome.applied_discount == 200.0
        assert outcome.reservation.applied_discount == 200.0
        assert outcome.reservation.total_value == 800.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price,expected_discount", [(10000.0, 500.0), (3000.0, 0.0)])
    async def test_business_discount_uses_stored_customer_type(
        self, reservation_service, seed_bike, seed_customer, make_request, hours, price, expected_discount
    ):
        bike = seed_bike(price_per_hour=price)
        customer = seed_customer("business")

        outcome = _approved(
            await reservation_service.make_reservation(
                make_request(bike.id, hours(10), hours(11), customer=CustomerRef(id=customer.id))
            )
        )

        assert outcome.applied_discount == expected_discount
        assert outcome.reservation.total_value == price - expected_discount
        assert outcome.reservation.customer_id == customer.id

    @pytest.mark.asyncio
    async def test_fractional_hours_are_priced(self, reservation_service, seed_bike, make_request, hours):
        bike = seed_bike(price_per_hour=10.0)

        outcome = _approved(
            await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11, 30)))
        )

        assert outcome.reservation.total_value == 15.0

    @pytest.mark.asyncio
    async def test_signals_feed_the_discount(
        self, reservation_service, bike, weather, incidents, make_request, hours
    ):
        weather.temperature = 3.0
        incidents.count = 3

        outcome = _approved(
            await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11)))
        )

        assert outcome.applied_discount == 100.0
        assert outcome.reservation.total_value == 900.0

    @pytest.mark.asyncio
    async def test_inline_profile_creates_new_customer_each_time(
        self, reservation_service, ledger, bike, make_request, hours
    ):
        first = _approved(await reservation_service.make_reservation(make_request(bike.id, hours(8), hours(9))))
        second = _approved(await reservation_service.make_reservation(make_request(bike.id, hours(9), hours(10))))

        assert first.reservation.customer_id != second.reservation.customer_id
        assert len(ledger.customers.get_all()) == 2

    @pytest.mark.asyncio
    async def test_customer_id_wins_over_profile(
        self, reservation_service, ledger, bike, seed_customer, make_request, make_profile, hours
    ):
        customer = seed_customer()
        ref = CustomerRef(id=customer.id, profile=make_profile("business"))

        outcome = _approved(
            await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11), customer=ref))
        )

        assert outcome.reservation.customer_id == customer.id
        assert len(ledger.customers.get_all()) == 1

    @pytest.mark.asyncio
    async def test_unknown_customer_id(self, reservation_service, ledger, bike, make_request, hours):
        request = make_request(bike.id, hours(10), hours(11), customer=CustomerRef(id="nobody"))

        with pytest.raises(NotFoundException):
            await reservation_service.make_reservation(request)

        assert await reservation_service.get_availability(bike.id, hours(10), hours(11)) is True

    @pytest.mark.asyncio
    async def test_canceled_reservation_frees_the_bike(self, reservation_service, bike, make_request, hours):
        first = _approved(
            await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11)))
        )
        await reservation_service.cancel_reservation(first.reservation.id)

        _approved(await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11))))

    @pytest.mark.asyncio
    async def test_naive_datetimes_are_utc(self, reservation_service, bike, make_request, hours):
        naive_start = datetime(2030, 6, 3, 10, 0)
        naive_end = datetime(2030, 6, 3, 11, 0)
        _approved(await reservation_service.make_reservation(make_request(bike.id, naive_start, naive_end)))

        assert await reservation_service.get_availability(bike.id, hours(10), hours(11)) is False


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("start_hour,end_hour", [(10, 10), (11, 10)])
    async def test_invalid_window(
        self, reservation_service, ledger, bike, weather, make_request, hours, start_hour, end_hour
    ):
        with pytest.raises(ValidationException) as exc_info:
            await reservation_service.make_reservation(make_request(bike.id, hours(start_hour), hours(end_hour)))

        assert exc_info.value.code == "INVALID_TIME_RANGE"
        assert ledger.customers.get_all() == []
        assert ledger.reservations.get_all() == []
        assert weather.calls == []

    @pytest.mark.asyncio
    async def test_empty_bike_id(self, reservation_service, make_request, hours):
        with pytest.raises(ValidationException):
            await reservation_service.make_reservation(make_request("  ", hours(10), hours(11)))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "location",
        [None, Location(latitude=0, longitude=0), Location(latitude=52.5, longitude=0)],
    )
    async def test_invalid_location(self, reservation_service, bike, make_request, hours, location):
        with pytest.raises(ValidationException):
            await reservation_service.make_reservation(
                make_request(bike.id, hours(10), hours(11), location=location)
            )

    @pytest.mark.asyncio
    async def test_missing_customer(self, reservation_service, bike, hours):
        request = ReservationRequest(
            bike_id=bike.id,
            customer=CustomerRef(),
            location=Location(latitude=52.5, longitude=13.4),
            start_time=hours(10),
            end_time=hours(11),
        )
        with pytest.raises(ValidationException):
            await reservation_service.make_reservation(request)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [{"type": "corporate"}, {"type": ""}, {"first_name": ""}, {"email": " "}],
    )
    async def test_incomplete_profile(
        self, reservation_service, ledger, bike, make_request, make_profile, hours, overrides
    ):
        customer_type = overrides.get("type", "individual")
        fields = {k: v for k, v in overrides.items() if k != "type"}
        profile = make_profile(customer_type, **fields)
        request = make_request(bike.id, hours(10), hours(11), customer=CustomerRef(profile=profile))

        with pytest.raises(ValidationException):
            await reservation_service.make_reservation(request)

        assert ledger.customers.get_all() == []

    @pytest.mark.asyncio
    async def test_window_too_short_to_price(
        self, reservation_service, ledger, seed_bike, weather, make_request, hours
    ):
        cheap = seed_bike(price_per_hour=1.0)
        start = hours(10)

        with pytest.raises(ValidationException) as exc_info:
            await reservation_service.make_reservation(
                make_request(cheap.id, start, start + timedelta(seconds=10))
            )

        assert exc_info.value.code == "RESERVATION_VALUE_TOO_SMALL"
        assert ledger.customers.get_all() == []
        assert ledger.reservations.get_all() == []
        assert weather.calls == []


class TestInfrastructureFailures:
    @pytest.mark.asyncio
    async def test_discount_validation_error_is_not_an_infrastructure_error(
        self, reservation_service, ledger, bike, discount_engine, monkeypatch, make_request, hours
    ):
        async def refuse(request):
            raise ValidationException("reservation value must be positive", code="INVALID_VALUE")

        monkeypatch.setattr(discount_engine, "calculate_discount", refuse)

        with pytest.raises(ValidationException) as exc_info:
            await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11)))

        assert not isinstance(exc_info.value, InfrastructureException)
        assert exc_info.value.code == "INVALID_VALUE"
        assert ledger.customers.get_all() == []

    @pytest.mark.asyncio
    async def test_lock_wait_is_bounded_by_the_deadline(
        self, ledger, discount_engine, bike, make_request, hours
    ):
        service = ReservationService(ledger, discount_engine, request_timeout=0.5)
        # Another writer holds the SQLite write lock for the whole request.
        holder = ledger.begin()
        ledger.reservations.check_overlap(holder, bike.id, hours(0), hours(1))
        started = time.monotonic()
        try:
            with pytest.raises(InfrastructureException):
                await service.make_reservation(make_request(bike.id, hours(10), hours(11)))
            elapsed = time.monotonic() - started
        finally:
            holder.rollback()

        assert elapsed < 2.0
        assert ledger.reservations.get_all() == []
        assert ledger.customers.get_all() == []

    @pytest.mark.asyncio
    async def test_provider_error_rolls_back(
        self, reservation_service, ledger, bike, incidents, make_request, hours
    ):
        incidents.error = RuntimeError("incidents api unavailable")

        with pytest.raises(InfrastructureException) as exc_info:
            await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11)))

        assert isinstance(exc_info.value, ProviderException)
        assert exc_info.value.details["step"] == "calculate_discount"
        assert ledger.reservations.get_all() == []
        assert ledger.customers.get_all() == []
        assert await reservation_service.get_availability(bike.id, hours(10), hours(11)) is True

    @pytest.mark.asyncio
    async def test_request_deadline_rolls_back(
        self, ledger, discount_engine, bike, weather, make_request, hours
    ):
        weather.delay = 0.5
        service = ReservationService(ledger, discount_engine, request_timeout=0.1)

        with pytest.raises(InfrastructureException) as exc_info:
            await service.make_reservation(make_request(bike.id, hours(10), hours(11)))

        assert exc_info.value.step == "deadline"
        assert ledger.customers.get_all() == []
        assert await service.get_availability(bike.id, hours(10), hours(11)) is True

    @pytest.mark.asyncio
    async def test_cancelled_task_rolls_back(
        self, reservation_service, ledger, bike, weather, make_request, hours
    ):
        weather.delay = 5.0
        task = asyncio.create_task(
            reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11)))
        )
        while not weather.calls:
            await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert ledger.customers.get_all() == []
        weather.delay = 0.0
        _approved(await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11))))


class TestStoreConflicts:
    @staticmethod
    def _refuse(*args, **kwargs):
        raise ReservationConflictError("conflicting key value violates exclusion constraint")

    @pytest.mark.asyncio
    async def test_conflicting_insert_is_rejected(
        self, reservation_service, ledger, bike, monkeypatch, make_request, hours
    ):
        monkeypatch.setattr(ledger.reservations, "insert", self._refuse)

        outcome = await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11)))

        assert isinstance(outcome, ReservationRejected)
        assert outcome.reason == BIKE_NOT_AVAILABLE
        assert ledger.reservations.get_all() == []
        assert ledger.customers.get_all() == []

    @pytest.mark.asyncio
    async def test_conflicting_commit_is_rejected(
        self, reservation_service, ledger, bike, monkeypatch, make_request, hours
    ):
        monkeypatch.setattr(LedgerTransaction, "commit", self._refuse)

        outcome = await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11)))

        assert isinstance(outcome, ReservationRejected)
        assert outcome.reason == BIKE_NOT_AVAILABLE
        assert ledger.reservations.get_all() == []
        assert ledger.customers.get_all() == []


class TestReadsAndCancel:
    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self, reservation_service, ledger, bike, make_request, hours):
        outcome = _approved(
            await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11)))
        )

        first = await reservation_service.cancel_reservation(outcome.reservation.id)
        second = await reservation_service.cancel_reservation(outcome.reservation.id)

        assert first.status == "canceled"
        assert second.status == "canceled"
        assert ledger.reservations.get(outcome.reservation.id).status == "canceled"

    @pytest.mark.asyncio
    async def test_cancel_unknown(self, reservation_service):
        with pytest.raises(NotFoundException):
            await reservation_service.cancel_reservation("01J0000000000000000000000")

    @pytest.mark.asyncio
    async def test_get_reservation(self, reservation_service, bike, make_request, hours):
        outcome = _approved(
            await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11)))
        )

        fetched = await reservation_service.get_reservation(outcome.reservation.id)

        assert fetched == outcome.reservation
        with pytest.raises(NotFoundException):
            await reservation_service.get_reservation("missing")

    @pytest.mark.asyncio
    async def test_list_reservations_only_approved_overlapping(
        self, reservation_service, bike, make_request, hours
    ):
        kept = _approved(await reservation_service.make_reservation(make_request(bike.id, hours(9), hours(10))))
        canceled = _approved(
            await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11)))
        )
        _approved(await reservation_service.make_reservation(make_request(bike.id, hours(14), hours(15))))
        await reservation_service.cancel_reservation(canceled.reservation.id)

        listed = await reservation_service.list_reservations(bike.id, hours(9, 30), hours(12))

        assert [r.id for r in listed] == [kept.reservation.id]

    @pytest.mark.asyncio
    async def test_availability(self, reservation_service, bike, make_request, hours):
        _approved(await reservation_service.make_reservation(make_request(bike.id, hours(10), hours(11))))

        assert await reservation_service.get_availability(bike.id, hours(10, 59), hours(12)) is False
        assert await reservation_service.get_availability(bike.id, hours(11), hours(12)) is True
        assert await reservation_service.get_availability(bike.id, hours(9), hours(10)) is True

    @pytest.mark.asyncio
    async def test_read_window_validation(self, reservation_service, bike, hours):
        with pytest.raises(ValidationException):
            await reservation_service.get_availability(bike.id, hours(11), hours(10))
        with pytest.raises(ValidationException):
            await reservation_service.list_reservations("", hours(10), hours(11))
