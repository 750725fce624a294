# bikerental/services/discount_engine.py
"""
Discount Engine.

Queries the weather and incident providers concurrently, then evaluates an
ordered table of rules against the pre-discount reservation value. Every
rule looks at the same value independently; amounts are summed and the sum
is capped at a fraction of the value.

A provider returning None means its signal is absent and the rules that
depend on it do not fire. A provider error or timeout is an infrastructure
failure (ProviderException), never a zero discount.
"""

import asyncio
from dataclasses import dataclass
import logging
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

from ..core.exceptions import InfrastructureException, ProviderException, ValidationException
from ..core.money import round_money
from ..models.customer import CustomerType
from ..schemas.discount import DiscountRequest, DiscountResponse
from .base import BaseService
from .signals.base import IncidentsInfo, IncidentsProvider, Weather, WeatherProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

BUSINESS_HIGH_VALUE_THRESHOLD = 5000.0
BUSINESS_HIGH_VALUE_RATE = 0.05
HEAVY_BIKE_THRESHOLD_KG = 15.0
HEAVY_BIKE_RATE_PER_KG = 0.01
COLD_WEATHER_MAX_CELSIUS = 5.0
COLD_WEATHER_RATE = 0.05
INCIDENTS_LOW_TIER = 3
INCIDENTS_LOW_TIER_RATE = 0.05
INCIDENTS_HIGH_TIER = 5
INCIDENTS_HIGH_TIER_RATE = 0.10
MAX_DISCOUNT_RATE = 0.20

DEFAULT_PROVIDER_TIMEOUT_SECONDS = 3.0
DEFAULT_INCIDENT_PROXIMITY_KM = 10.0


@dataclass(frozen=True)
class DiscountPolicy:
    """Thresholds and rates used by the discount rules."""

    business_high_value_threshold: float = BUSINESS_HIGH_VALUE_THRESHOLD
    business_high_value_rate: float = BUSINESS_HIGH_VALUE_RATE
    heavy_bike_threshold_kg: float = HEAVY_BIKE_THRESHOLD_KG
    heavy_bike_rate_per_kg: float = HEAVY_BIKE_RATE_PER_KG
    cold_weather_max_celsius: float = COLD_WEATHER_MAX_CELSIUS
    cold_weather_rate: float = COLD_WEATHER_RATE
    incidents_low_tier: int = INCIDENTS_LOW_TIER
    incidents_low_tier_rate: float = INCIDENTS_LOW_TIER_RATE
    incidents_high_tier: int = INCIDENTS_HIGH_TIER
    incidents_high_tier_rate: float = INCIDENTS_HIGH_TIER_RATE
    max_discount_rate: float = MAX_DISCOUNT_RATE


@dataclass(frozen=True)
class DiscountSignals:
    weather: Optional[Weather] = None
    incidents: Optional[IncidentsInfo] = None


DiscountRule = Callable[[DiscountRequest, DiscountSignals, DiscountPolicy], Optional[float]]


def high_value_business(
    request: DiscountRequest, signals: DiscountSignals, policy: DiscountPolicy
) -> Optional[float]:
    if request.customer_type != CustomerType.BUSINESS.value:
        return None
    if request.reservation_value < policy.business_high_value_threshold:
        return None
    return request.reservation_value * policy.business_high_value_rate


def heavy_bike(
    request: DiscountRequest, signals: DiscountSignals, policy: DiscountPolicy
) -> Optional[float]:
    if request.customer_type != CustomerType.INDIVIDUAL.value:
        return None
    excess_kg = request.bike_weight_kg - policy.heavy_bike_threshold_kg
    if excess_kg <= 0:
        return None
    return request.reservation_value * excess_kg * policy.heavy_bike_rate_per_kg


def cold_weather(
    request: DiscountRequest, signals: DiscountSignals, policy: DiscountPolicy
) -> Optional[float]:
    if request.customer_type != CustomerType.INDIVIDUAL.value or signals.weather is None:
        return None
    if signals.weather.temperature > policy.cold_weather_max_celsius:
        return None
    return request.reservation_value * policy.cold_weather_rate


def incident_history(
    request: DiscountRequest, signals: DiscountSignals, policy: DiscountPolicy
) -> Optional[float]:
    if request.customer_type != CustomerType.INDIVIDUAL.value or signals.incidents is None:
        return None
    count = signals.incidents.number_of_incidents
    if count >= policy.incidents_high_tier:
        return request.reservation_value * policy.incidents_high_tier_rate
    if count >= policy.incidents_low_tier:
        return request.reservation_value * policy.incidents_low_tier_rate
    return None


DISCOUNT_RULES: List[Tuple[str, DiscountRule]] = [
    ("high_value_business", high_value_business),
    ("heavy_bike", heavy_bike),
    ("cold_weather", cold_weather),
    ("incident_history", incident_history),
]


def apply_rules(
    request: DiscountRequest,
    signals: DiscountSignals,
    policy: DiscountPolicy = DiscountPolicy(),
    rules: Optional[List[Tuple[str, DiscountRule]]] = None,
) -> DiscountResponse:
    """Evaluate the rule table and cap the summed discount. Pure, no I/O."""
    total = 0.0
    applied: List[str] = []
    for name, rule in rules if rules is not None else DISCOUNT_RULES:
        amount = rule(request, signals, policy)
        if amount is not None and amount > 0:
            total += amount
            applied.append(name)

    cap = request.reservation_value * policy.max_discount_rate
    capped = total > cap
    return DiscountResponse(
        amount=round_money(min(total, cap)),
        applied_rules=applied,
        capped=capped,
    )


class DiscountEngine(BaseService):
    """Stateless discount calculation backed by two signal providers."""

    def __init__(
        self,
        weather_provider: WeatherProvider,
        incidents_provider: IncidentsProvider,
        *,
        provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS,
        incident_proximity_km: float = DEFAULT_INCIDENT_PROXIMITY_KM,
        policy: Optional[DiscountPolicy] = None,
    ):
        super().__init__()
        self.weather_provider = weather_provider
        self.incidents_provider = incidents_provider
        self.provider_timeout = provider_timeout
        self.incident_proximity_km = incident_proximity_km
        self.policy = policy or DiscountPolicy()

    @BaseService.measure_operation("calculate_discount")
    async def calculate_discount(self, request: DiscountRequest) -> DiscountResponse:
        self._validate(request)
        signals = await self._fetch_signals(request)
        response = apply_rules(request, signals, self.policy)
        self.logger.debug(
            "Discount for bike %s: %.2f (rules=%s capped=%s)",
            request.bike_id,
            response.amount,
            response.applied_rules,
            response.capped,
        )
        return response

    def _validate(self, request: DiscountRequest) -> None:
        if request.customer_type not in {t.value for t in CustomerType}:
            raise ValidationException(
                f"invalid customer type '{request.customer_type}'", code="INVALID_CUSTOMER_TYPE"
            )
        if request.location.latitude == 0 or request.location.longitude == 0:
            raise ValidationException("invalid location", code="INVALID_LOCATION")
        if request.reservation_value <= 0:
            raise ValidationException("reservation value must be positive", code="INVALID_VALUE")
        if request.bike_weight_kg <= 0:
            raise ValidationException("bike weight must be positive", code="INVALID_BIKE_WEIGHT")

    async def _fetch_signals(self, request: DiscountRequest) -> DiscountSignals:
        weather, incidents = await asyncio.gather(
            self._call_provider(
                self.weather_provider.name,
                self.weather_provider.get_weather(request.location),
            ),
            self._call_provider(
                self.incidents_provider.name,
                self.incidents_provider.get_incidents(
                    request.location, self.incident_proximity_km
                ),
            ),
            return_exceptions=True,
        )
        for result in (weather, incidents):
            if isinstance(result, BaseException):
                raise result
        return DiscountSignals(weather=weather, incidents=incidents)

    async def _call_provider(self, provider: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.provider_timeout)
        except asyncio.TimeoutError as exc:
            self.logger.warning("%s provider exceeded %.1fs", provider, self.provider_timeout)
            raise ProviderException(f"{provider} provider timed out", provider=provider) from exc
        except InfrastructureException:
            raise
        except Exception as exc:
            self.logger.error("%s provider failed: %s", provider, exc)
            raise ProviderException(f"{provider} provider failed: {exc}", provider=provider) from exc

    async def aclose(self) -> None:
        await self.weather_provider.aclose()
        await self.incidents_provider.aclose()


__all__ = [
    "DISCOUNT_RULES",
    "DiscountEngine",
    "DiscountPolicy",
    "DiscountSignals",
    "apply_rules",
]
