"""Shipping engine — zone lookup, per-method cost/ETA and pincode validation.

Cost of a method::

    round2(base_rate × rate_multiplier × premium_multiplier × method_multiplier × weight)

Carrier choice goes through an injectable selector. The default picks the
first candidate so quotes are reproducible; ``SeededCarrierSelector`` spreads
load across carriers while staying deterministic for a given seed.
"""

import random
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from checkout.exceptions import InvalidAddress, UnsupportedShippingMethod
from checkout.shared.money import non_negative, round2
from checkout.shipping.address import DeliveryAddress
from checkout.shipping.zones import (
    BASE_SHIPPING_COST,
    CARRIERS,
    DEFAULT_ITEM_WEIGHT,
    DEFAULT_ZONE,
    DELIVERY_WINDOWS,
    DOMESTIC_METHODS,
    FREE_SHIPPING_THRESHOLD,
    INTERNATIONAL_METHODS,
    METHOD_MULTIPLIERS,
    PINCODE_PATTERNS,
    PREMIUM_LOCATION_MULTIPLIER,
    PREMIUM_PINCODES,
    SHIPPING_ZONES,
    ShippingMethod,
    ShippingZone,
)

CarrierSelector = Callable[[ShippingMethod, Sequence[str]], str]


def first_carrier(method: ShippingMethod, candidates: Sequence[str]) -> str:  # noqa: ARG001
    return candidates[0]


class SeededCarrierSelector:
    """Random carrier choice from an explicitly seeded generator."""

    def __init__(self, seed: int | str | None = None) -> None:
        self._random = random.Random(seed)

    def __call__(self, method: ShippingMethod, candidates: Sequence[str]) -> str:  # noqa: ARG002
        return self._random.choice(list(candidates))


@dataclass(frozen=True)
class ShippingOption:
    method: ShippingMethod
    carrier: str
    estimated_days: str
    min_days: int
    max_days: int
    cost: float

    def to_dict(self) -> dict:
        return {
            "method": self.method.value,
            "carrier": self.carrier,
            "estimated_days": self.estimated_days,
            "min_days": self.min_days,
            "max_days": self.max_days,
            "cost": self.cost,
        }


@dataclass(frozen=True)
class DeliveryEstimate:
    earliest: datetime
    latest: datetime


class ShippingEngine:
    def __init__(
        self,
        zones: Sequence[ShippingZone] = SHIPPING_ZONES,
        default_zone: ShippingZone = DEFAULT_ZONE,
        carrier_selector: CarrierSelector = first_carrier,
    ) -> None:
        self.zones = tuple(zones)
        self.default_zone = default_zone
        self.carrier_selector = carrier_selector

    # -------------------------------------------------------------------
    # Zones and surcharges
    # -------------------------------------------------------------------
    def resolve_zone(self, country_code: str | None) -> ShippingZone:
        """Zone covering ``country_code``; never fails."""
        country = (country_code or "").strip().upper()
        return next((zone for zone in self.zones if zone.covers(country)), self.default_zone)

    def is_premium_location(self, pincode: str | None) -> bool:
        if not pincode:
            return False
        return pincode.strip() in PREMIUM_PINCODES

    def validate_pincode(self, pincode: str, country_code: str) -> bool:
        pattern = PINCODE_PATTERNS.get((country_code or "").strip().upper())
        if pattern is None:
            # No rule for this country
            return True
        return pattern.match(pincode or "") is not None

    # -------------------------------------------------------------------
    # Options and costs
    # -------------------------------------------------------------------
    def available_methods(self, zone: ShippingZone) -> tuple[ShippingMethod, ...]:
        return DOMESTIC_METHODS if zone.is_domestic else INTERNATIONAL_METHODS

    def get_shipping_options(self, address: DeliveryAddress, order_weight: float = 1) -> list[ShippingOption]:
        """All methods available for the address, cheapest first."""
        order_weight = non_negative(order_weight, "order_weight")
        zone = self.resolve_zone(address.country)
        premium_multiplier = PREMIUM_LOCATION_MULTIPLIER if self.is_premium_location(address.pincode) else 1.0
        region = 0 if zone.is_domestic else 1

        options = []
        for method in self.available_methods(zone):
            window = DELIVERY_WINDOWS[method][region]
            cost = round2(
                zone.base_rate * zone.rate_multiplier * premium_multiplier * METHOD_MULTIPLIERS[method] * order_weight
            )
            options.append(
                ShippingOption(
                    method=method,
                    carrier=self.carrier_selector(method, CARRIERS[method]),
                    estimated_days=window.text,
                    min_days=window.min_days,
                    max_days=window.max_days,
                    cost=cost,
                )
            )

        # sorted() is stable: equal costs keep method declaration order
        return sorted(options, key=lambda option: option.cost)

    def order_weight(self, items: Iterable) -> float:
        """Total weight of cart items; items without a ``weight`` count as DEFAULT_ITEM_WEIGHT each."""
        total = 0.0
        for item in items:
            unit_weight = item.unit_weight if item.unit_weight is not None else DEFAULT_ITEM_WEIGHT
            total += unit_weight * item.quantity
        return total

    def quote(self, address: DeliveryAddress, items: Iterable) -> float:
        """Zone-based cost of the cheapest option for these items."""
        options = self.get_shipping_options(address, self.order_weight(items))
        return options[0].cost

    def calculate_shipping_cost_by_threshold(self, subtotal: float) -> float:
        """Flat-rate policy used when no address is known."""
        if non_negative(subtotal, "subtotal") >= FREE_SHIPPING_THRESHOLD:
            return 0.0
        return BASE_SHIPPING_COST

    # -------------------------------------------------------------------
    # Delivery dates
    # -------------------------------------------------------------------
    def estimate_delivery_date(
        self,
        method: ShippingMethod | str,
        country_code: str,
        now: datetime | None = None,
    ) -> DeliveryEstimate:
        method = ShippingMethod(method)
        zone = self.resolve_zone(country_code)
        window = DELIVERY_WINDOWS[method][0 if zone.is_domestic else 1]
        if window is None:
            raise UnsupportedShippingMethod(f"{method.value} shipping is not offered to {country_code}")

        now = now or datetime.now(UTC)
        return DeliveryEstimate(
            earliest=now + timedelta(days=window.min_days),
            latest=now + timedelta(days=window.max_days),
        )

    def plan_delivery(
        self,
        address: DeliveryAddress,
        items: Iterable = (),
        order_weight: float | None = None,
        now: datetime | None = None,
    ) -> list[tuple[ShippingOption, DeliveryEstimate]]:
        """Shipping options for a checkout page, each with its delivery dates.

        The weight comes from ``items`` unless given explicitly.
        """
        if address.pincode and not self.validate_pincode(address.pincode, address.country):
            raise InvalidAddress(f"Invalid pincode {address.pincode} for {address.country}")

        if order_weight is None:
            items = list(items)
            order_weight = self.order_weight(items) if items else 1

        now = now or datetime.now(UTC)
        return [
            (option, self.estimate_delivery_date(option.method, address.country, now))
            for option in self.get_shipping_options(address, order_weight)
        ]
