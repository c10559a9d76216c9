"""
NTA Maximum Fare Engine  (Strategy Pattern)
===========================================

Formula
-------
Fare = Initial_Charge + Tariff_A + Tariff_B

* The first 500 m are included in the initial charge.
* **Tariff A** covers chargeable distance up to 15 km (i.e. up to 15.5 km
  travelled); everything beyond 15.5 km is billed at **Tariff B**.
* The Special tier has no Tariff A band: all chargeable distance is B.

Rounding
--------
Each component is rounded half-up to cents for display.  The total is
computed from the *unrounded* components and rounded once, so the shown
components may not always sum to the total by a cent.

Per-minute rates are part of the NTA schedule and are kept on the tariff
table, but the current breakdown bills on distance only.

Complexity: O(1) per fare.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .enums import RateTier
from .rates import DateLike, TimeLike, rate_name, select_rate

CENT = Decimal("0.01")
TENTH = Decimal("0.1")
ZERO = Decimal("0")

INITIAL_DISTANCE_INCLUDED_KM = Decimal("0.5")
TARIFF_A_CEILING_KM = Decimal("15")

Number = Union[Decimal, float, int, str]


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _non_negative(value: Optional[Number]) -> Decimal:
    """Coerce to a finite, non-negative ``Decimal``; anything else is 0."""
    if value is None:
        return ZERO
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO
    if not result.is_finite() or result < 0:
        return ZERO
    return result


# ── Value objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class TariffTable:
    initial_charge: Decimal
    tariff_b_per_km: Decimal
    tariff_b_per_minute: Decimal
    tariff_a_per_km: Optional[Decimal] = None
    tariff_a_per_minute: Optional[Decimal] = None
    tariff_a_ceiling_km: Optional[Decimal] = TARIFF_A_CEILING_KM


TARIFFS: dict[RateTier, TariffTable] = {
    RateTier.STANDARD: TariffTable(
        initial_charge=Decimal("4.40"),
        tariff_a_per_km=Decimal("1.32"),
        tariff_a_per_minute=Decimal("0.47"),
        tariff_b_per_km=Decimal("1.72"),
        tariff_b_per_minute=Decimal("0.61"),
    ),
    RateTier.PREMIUM: TariffTable(
        initial_charge=Decimal("5.40"),
        tariff_a_per_km=Decimal("1.81"),
        tariff_a_per_minute=Decimal("0.64"),
        tariff_b_per_km=Decimal("2.20"),
        tariff_b_per_minute=Decimal("0.78"),
    ),
    RateTier.SPECIAL: TariffTable(
        initial_charge=Decimal("5.40"),
        tariff_b_per_km=Decimal("2.20"),
        tariff_b_per_minute=Decimal("0.78"),
        tariff_a_ceiling_km=None,
    ),
}


class FareBreakdown(BaseModel):
    """Immutable breakdown of a quoted fare."""

    model_config = ConfigDict(frozen=True)

    initial_charge: Decimal = Field(ge=0)
    tariff_a: Decimal = Field(ge=0)
    tariff_b: Decimal = Field(ge=0)
    total_fare: Decimal = Field(ge=0)
    rate_type: RateTier
    rate_name: str
    distance_km: Decimal = Field(ge=0)
    duration_minutes: int = Field(ge=0)


# ── Strategy hierarchy ────────────────────────────────────────────────


class TariffStrategy(ABC):
    @abstractmethod
    def components(
        self, distance_km: Decimal, table: TariffTable
    ) -> tuple[Decimal, Decimal]:
        """Return the unrounded ``(tariff_a, tariff_b)`` charges."""


class TwoBandTariff(TariffStrategy):
    """Tariff A up to the ceiling, Tariff B beyond it."""

    def components(
        self, distance_km: Decimal, table: TariffTable
    ) -> tuple[Decimal, Decimal]:
        chargeable = max(ZERO, distance_km - INITIAL_DISTANCE_INCLUDED_KM)
        band_end = table.tariff_a_ceiling_km + INITIAL_DISTANCE_INCLUDED_KM
        if distance_km <= band_end:
            return chargeable * table.tariff_a_per_km, ZERO
        tariff_a = table.tariff_a_ceiling_km * table.tariff_a_per_km
        tariff_b = (distance_km - band_end) * table.tariff_b_per_km
        return tariff_a, tariff_b


class TariffBOnly(TariffStrategy):
    """Special tier: every chargeable kilometre is billed at Tariff B."""

    def components(
        self, distance_km: Decimal, table: TariffTable
    ) -> tuple[Decimal, Decimal]:
        chargeable = max(ZERO, distance_km - INITIAL_DISTANCE_INCLUDED_KM)
        return ZERO, chargeable * table.tariff_b_per_km


def strategy_for(table: TariffTable) -> TariffStrategy:
    if table.tariff_a_per_km is None or table.tariff_a_ceiling_km is None:
        return TariffBOnly()
    return TwoBandTariff()


# ── Engine facade ─────────────────────────────────────────────────────


class FareEngine:
    """High-level API used by the quote endpoint and the booking intake."""

    def __init__(self, tariffs: Optional[dict[RateTier, TariffTable]] = None):
        self.tariffs = tariffs or TARIFFS

    def compute(
        self,
        distance_km: Optional[Number],
        duration_minutes: Optional[Number],
        rate: RateTier = RateTier.STANDARD,
    ) -> FareBreakdown:
        distance = _non_negative(distance_km)
        duration = int(_non_negative(duration_minutes))
        table = self.tariffs[rate]

        tariff_a, tariff_b = strategy_for(table).components(distance, table)
        total = table.initial_charge + tariff_a + tariff_b

        return FareBreakdown(
            initial_charge=round_money(table.initial_charge),
            tariff_a=round_money(tariff_a),
            tariff_b=round_money(tariff_b),
            total_fare=round_money(total),
            rate_type=rate,
            rate_name=rate_name(rate),
            distance_km=distance.quantize(TENTH, rounding=ROUND_HALF_UP),
            duration_minutes=duration,
        )

    def quote(
        self,
        distance_km: Optional[Number],
        duration_minutes: Optional[Number],
        pickup_date: DateLike,
        pickup_time: TimeLike,
    ) -> FareBreakdown:
        """Select the tier for the scheduled pickup, then price the trip."""
        return self.compute(
            distance_km, duration_minutes, select_rate(pickup_date, pickup_time)
        )


_default_engine = FareEngine()


def compute_fare(
    distance_km: Optional[Number],
    duration_minutes: Optional[Number],
    rate: RateTier = RateTier.STANDARD,
) -> FareBreakdown:
    return _default_engine.compute(distance_km, duration_minutes, rate)
