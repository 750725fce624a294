"""
Shared fixtures.

Every test gets its own file-backed SQLite ledger under ``tmp_path`` so
worker threads see the same database, plus signal providers whose answers,
failures and latency are set per test.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, List, Optional

import pytest

from bikerental.core.ids import generate_ulid
from bikerental.database import create_ledger_engine
from bikerental.models.bike import Bike
from bikerental.models.customer import Customer
from bikerental.repositories.ledger import Ledger
from bikerental.schemas.customer import CustomerProfile, CustomerRef
from bikerental.schemas.reservation import Location, ReservationRequest
from bikerental.services.discount_engine import DiscountEngine
from bikerental.services.reservation_service import ReservationService
from bikerental.services.signals.base import (
    IncidentsInfo,
    IncidentsProvider,
    Weather,
    WeatherProvider,
)

BASE = datetime(2030, 6, 3, tzinfo=timezone.utc)
BERLIN = Location(latitude=52.52, longitude=13.405)


def at(hour: int, minute: int = 0, day: int = 0) -> datetime:
    return BASE + timedelta(days=day, hours=hour, minutes=minute)


class FakeWeatherProvider(WeatherProvider):
    def __init__(self) -> None:
        self.temperature: Optional[float] = None
        self.error: Optional[Exception] = None
        self.delay = 0.0
        self.calls: List[Location] = []

    async def get_weather(self, location: Location) -> Optional[Weather]:
        self.calls.append(location)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.temperature is None:
            return None
        return Weather(temperature=self.temperature)


class FakeIncidentsProvider(IncidentsProvider):
    def __init__(self) -> None:
        self.count: Optional[int] = None
        self.error: Optional[Exception] = None
        self.delay = 0.0
        self.calls: List[tuple] = []

    async def get_incidents(self, location: Location, proximity_km: float) -> Optional[IncidentsInfo]:
        self.calls.append((location, proximity_km))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.count is None:
            return None
        return IncidentsInfo(number_of_incidents=self.count, proximity_km=proximity_km)


@pytest.fixture
def ledger(tmp_path) -> Iterator[Ledger]:
    engine = create_ledger_engine(f"sqlite:///{tmp_path / 'ledger.db'}", busy_timeout_seconds=5)
    ledger = Ledger(engine)
    ledger.create_schema()
    yield ledger
    ledger.dispose()


@pytest.fixture
def weather() -> FakeWeatherProvider:
    return FakeWeatherProvider()


@pytest.fixture
def incidents() -> FakeIncidentsProvider:
    return FakeIncidentsProvider()


@pytest.fixture
def discount_engine(weather, incidents) -> DiscountEngine:
    return DiscountEngine(weather, incidents, provider_timeout=1.0)


@pytest.fixture
def reservation_service(ledger, discount_engine) -> ReservationService:
    return ReservationService(ledger, discount_engine, request_timeout=5.0)


@pytest.fixture
def seed_bike(ledger) -> Callable[..., Bike]:
    def _seed(price_per_hour: float = 1000.0, weight_kg: float = 10.0, model_name: str = "Urban 3") -> Bike:
        return ledger.bikes.create(
            id=generate_ulid(),
            model_name=model_name,
            weight_kg=weight_kg,
            price_per_hour=price_per_hour,
        )

    return _seed


@pytest.fixture
def bike(seed_bike) -> Bike:
    return seed_bike()


@pytest.fixture
def seed_customer(ledger) -> Callable[..., Customer]:
    def _seed(customer_type: str = "individual") -> Customer:
        tx = ledger.begin()
        try:
            customer = ledger.customers.create(tx, profile(customer_type))
            tx.commit()
        finally:
            tx.rollback()
        return customer

    return _seed


def profile(customer_type: str = "individual", **overrides) -> CustomerProfile:
    data = {
        "type": customer_type,
        "first_name": "Ada",
        "surname": "Lovelace",
        "email": "ada@example.com",
    }
    data.update(overrides)
    return CustomerProfile(**data)


def reservation_request(
    bike_id: str,
    start: datetime,
    end: datetime,
    *,
    customer: Optional[CustomerRef] = None,
    location: Optional[Location] = BERLIN,
) -> ReservationRequest:
    return ReservationRequest(
        bike_id=bike_id,
        customer=customer or CustomerRef(profile=profile()),
        location=location,
        start_time=start,
        end_time=end,
    )


@pytest.fixture
def make_request() -> Callable[..., ReservationRequest]:
    return reservation_request


@pytest.fixture
def make_profile() -> Callable[..., CustomerProfile]:
    return profile


@pytest.fixture
def hours() -> Callable[..., datetime]:
    return at


@pytest.fixture
def location() -> Location:
    return BERLIN
