# bikerental/services/reservation_service.py
"""
Reservation Service.

Orchestrates one reservation end to end:

    validate -> fetch bike -> begin tx -> availability check
      -> resolve customer -> price -> discount -> insert -> commit

Blocking reads run in the shared thread pool; statements of the reservation
transaction run on that transaction's own worker thread, so a transaction
holding the SQLite write lock can always commit even when every pool thread
is parked waiting for it. The discount providers are awaited directly. The
whole flow runs under a request deadline, the lock wait is bounded by the
time left before it, and the transaction is rolled back on every exit path
that did not commit, including cancellation.

Failure channels stay separate:
- ValidationException: malformed request, raised before any transaction opens
- NotFoundException: unknown customer id, unknown reservation
- ReservationRejected: a value, returned when the bike is missing or taken
- InfrastructureException: anything underneath broke; ``step`` says where
"""

import asyncio
from datetime import datetime
import logging
from typing import Any, Callable, List, Optional, TypeVar

from ..core.exceptions import (
    DomainException,
    InfrastructureException,
    NotFoundException,
    RepositoryException,
    ReservationConflictError,
    ValidationException,
)
from ..core.money import reservation_value, round_money
from ..core.ids import generate_ulid
from ..models.customer import CustomerType
from ..models.reservation import Reservation, ReservationStatus
from ..models.types import ensure_utc
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.ledger import Ledger, LedgerTransaction
from ..schemas.discount import DiscountRequest, DiscountResponse
from ..schemas.reservation import (
    ReservationApproved,
    ReservationOutcome,
    ReservationRejected,
    ReservationRequest,
    ReservationResponse,
)
from .availability_checker import AvailabilityChecker
from .base import BaseService
from .customer_resolver import CustomerResolver
from .discount_engine import DiscountEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")

BIKE_NOT_AVAILABLE = "bike not available in requested time range"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0


def bike_not_found_reason(bike_id: str) -> str:
    return f"bike with id '{bike_id}' does not exist"


class ReservationService(BaseService):
    """Reservation orchestration plus the read and cancel operations."""

    def __init__(
        self,
        ledger: Ledger,
        discount_engine: DiscountEngine,
        *,
        availability_checker: Optional[AvailabilityChecker] = None,
        customer_resolver: Optional[CustomerResolver] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        isolation_level: Optional[str] = None,
    ):
        super().__init__(ledger)
        self.ledger: Ledger = ledger
        self.discount_engine = discount_engine
        self.availability_checker = availability_checker or AvailabilityChecker(ledger)
        self.customer_resolver = customer_resolver or CustomerResolver(ledger)
        self.request_timeout = request_timeout
        self.isolation_level = isolation_level

    # Reservation flow

    @BaseService.measure_operation("make_reservation")
    async def make_reservation(self, request: ReservationRequest) -> ReservationOutcome:
        self._validate_request(request)
        self.log_operation(
            "make_reservation",
            bike_id=request.bike_id,
            start_time=request.start_time.isoformat(),
            end_time=request.end_time.isoformat(),
        )

        deadline = asyncio.get_running_loop().time() + self.request_timeout
        try:
            outcome = await asyncio.wait_for(
                self._reserve(request, deadline), timeout=self.request_timeout
            )
        except asyncio.TimeoutError as exc:
            prometheus_metrics.record_reservation_outcome("timed_out")
            self.logger.warning(
                "Reservation for bike %s exceeded its %.1fs deadline",
                request.bike_id,
                self.request_timeout,
            )
            raise InfrastructureException(
                "reservation request exceeded its deadline", step="deadline"
            ) from exc

        prometheus_metrics.record_reservation_outcome(outcome.status)
        if isinstance(outcome, ReservationRejected):
            self.logger.info("Reservation for bike %s rejected: %s", request.bike_id, outcome.reason)
        else:
            self.logger.info(
                "Reservation %s approved for bike %s (discount %.2f)",
                outcome.reservation.id,
                request.bike_id,
                outcome.applied_discount,
            )
        return outcome

    async def _reserve(self, request: ReservationRequest, deadline: float) -> ReservationOutcome:
        start, end = request.start_time, request.end_time

        bike = await self._run_step("fetch_bike", self.ledger.bikes.get, request.bike_id)
        if bike is None:
            return ReservationRejected(reason=bike_not_found_reason(request.bike_id))

        value = reservation_value(bike.price_per_hour, start, end)
        _validate_value(value, start, end)

        lock_timeout = max(deadline - asyncio.get_running_loop().time(), 0.0)
        tx = self.ledger.begin(self.isolation_level, lock_timeout=lock_timeout)
        try:
            available = await self._run_step(
                "check_availability",
                self.availability_checker.is_available,
                tx,
                bike.id,
                start,
                end,
                tx=tx,
            )
            if not available:
                return ReservationRejected(reason=BIKE_NOT_AVAILABLE)

            customer = await self._run_step(
                "resolve_customer", self.customer_resolver.resolve, tx, request.customer, tx=tx
            )

            discount = await self._calculate_discount(
                DiscountRequest(
                    customer_id=customer.id,
                    customer_type=customer.type,
                    bike_id=bike.id,
                    bike_weight_kg=bike.weight_kg,
                    location=request.location,
                    reservation_value=value,
                )
            )

            reservation = Reservation(
                id=generate_ulid(),
                bike_id=bike.id,
                customer_id=customer.id,
                start_time=start,
                end_time=end,
                status=ReservationStatus.APPROVED.value,
                total_value=round_money(value - discount.amount),
                applied_discount=discount.amount,
            )
            await self._run_step(
                "insert_reservation", self.ledger.reservations.insert, tx, reservation, tx=tx
            )
            await self._run_step("commit", tx.commit, tx=tx)
        except ReservationConflictError:
            self.logger.info("Store refused overlapping reservation for bike %s", bike.id)
            return ReservationRejected(reason=BIKE_NOT_AVAILABLE)
        finally:
            # No-op after commit; queued behind any statement still in flight.
            await asyncio.shield(tx.run(tx.rollback))

        return ReservationApproved(
            reservation=ReservationResponse.model_validate(reservation),
            applied_discount=discount.amount,
        )

    async def _calculate_discount(self, request: DiscountRequest) -> DiscountResponse:
        try:
            return await self.discount_engine.calculate_discount(request)
        except DomainException:
            raise
        except Exception as exc:
            raise InfrastructureException(
                f"discount calculation failed: {exc}", step="calculate_discount"
            ) from exc

    async def _run_step(
        self,
        step: str,
        func: Callable[..., T],
        *args: Any,
        tx: Optional[LedgerTransaction] = None,
    ) -> T:
        """
        Run blocking ledger work off the event loop, wrapping infrastructure failures.

        Work belonging to ``tx`` runs on the transaction's own worker thread;
        everything else goes to the shared pool.
        """
        try:
            if tx is not None:
                return await tx.run(func, *args)
            return await asyncio.to_thread(func, *args)
        except (DomainException, ReservationConflictError):
            raise
        except RepositoryException as exc:
            self.logger.error("Reservation step %s failed: %s", step, exc)
            raise InfrastructureException(f"{step} failed: {exc}", step=step) from exc
        except Exception as exc:
            self.logger.error("Reservation step %s failed unexpectedly: %s", step, exc, exc_info=True)
            raise InfrastructureException(f"{step} failed: {exc}", step=step) from exc

    def _validate_request(self, request: ReservationRequest) -> None:
        """Shape checks only; no I/O happens before these pass."""
        if not request.bike_id or not request.bike_id.strip():
            raise ValidationException("bike id is required", code="MISSING_BIKE_ID")

        customer = request.customer
        if customer is None or (not customer.id and customer.profile is None):
            raise ValidationException("customer id or profile is required", code="MISSING_CUSTOMER")
        if not customer.id and customer.profile is not None:
            profile = customer.profile
            if profile.type not in {t.value for t in CustomerType}:
                raise ValidationException(
                    f"invalid customer type '{profile.type}'",
                    code="INVALID_CUSTOMER_TYPE",
                    details={"allowed": [t.value for t in CustomerType]},
                )
            if not profile.first_name.strip():
                raise ValidationException("customer first name is required", code="MISSING_FIRST_NAME")
            if not profile.email.strip():
                raise ValidationException("customer email is required", code="MISSING_EMAIL")

        location = request.location
        if location is None or location.latitude == 0 or location.longitude == 0:
            raise ValidationException("invalid location", code="INVALID_LOCATION")

        _validate_window(request.start_time, request.end_time)

    # Reads and cancellation

    @BaseService.measure_operation("get_reservation")
    async def get_reservation(self, reservation_id: str) -> ReservationResponse:
        reservation = await self._run_step("get_reservation", self.ledger.reservations.get, reservation_id)
        if reservation is None:
            raise _reservation_not_found(reservation_id)
        return ReservationResponse.model_validate(reservation)

    @BaseService.measure_operation("cancel_reservation")
    async def cancel_reservation(self, reservation_id: str) -> ReservationResponse:
        """
        Cancel a reservation.

        Canceling an already canceled reservation succeeds without changes.
        """
        if not reservation_id:
            raise ValidationException("reservation id is required", code="MISSING_RESERVATION_ID")

        reservation = await self._run_step(
            "cancel_reservation",
            self.ledger.reservations.update_status,
            reservation_id,
            ReservationStatus.CANCELED,
        )
        if reservation is None:
            raise _reservation_not_found(reservation_id)
        self.log_operation("cancel_reservation", reservation_id=reservation_id)
        return ReservationResponse.model_validate(reservation)

    @BaseService.measure_operation("get_availability")
    async def get_availability(self, bike_id: str, start: datetime, end: datetime) -> bool:
        start, end = _validate_bike_window(bike_id, start, end)
        overlapping = await self._run_step(
            "get_availability", self.ledger.reservations.list, bike_id, start, end
        )
        return not overlapping

    @BaseService.measure_operation("list_reservations")
    async def list_reservations(
        self, bike_id: str, start: datetime, end: datetime
    ) -> List[ReservationResponse]:
        start, end = _validate_bike_window(bike_id, start, end)
        reservations = await self._run_step(
            "list_reservations", self.ledger.reservations.list, bike_id, start, end
        )
        return [ReservationResponse.model_validate(r) for r in reservations]


def _validate_window(start: datetime, end: datetime) -> None:
    if start >= end:
        raise ValidationException(
            "start time must be before end time",
            code="INVALID_TIME_RANGE",
            details={"start_time": start.isoformat(), "end_time": end.isoformat()},
        )


def _validate_value(value: float, start: datetime, end: datetime) -> None:
    if value <= 0:
        raise ValidationException(
            "reservation window is too short to be priced",
            code="RESERVATION_VALUE_TOO_SMALL",
            details={"start_time": start.isoformat(), "end_time": end.isoformat()},
        )


def _validate_bike_window(bike_id: str, start: datetime, end: datetime) -> tuple[datetime, datetime]:
    if not bike_id or not bike_id.strip():
        raise ValidationException("bike id is required", code="MISSING_BIKE_ID")
    start, end = ensure_utc(start), ensure_utc(end)
    _validate_window(start, end)
    return start, end


def _reservation_not_found(reservation_id: str) -> NotFoundException:
    return NotFoundException(
        f"reservation with id '{reservation_id}' does not exist",
        code="RESERVATION_NOT_FOUND",
        details={"reservation_id": reservation_id},
    )
