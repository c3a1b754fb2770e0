"""Shipping reference data: zones, methods, carriers and delivery windows.

Delivery-window strings are parsed when this module is imported, so a
malformed estimate breaks startup (and the test suite) rather than a request.
"""

import re
from dataclasses import dataclass
from enum import Enum

FREE_SHIPPING_THRESHOLD = 100.00
BASE_SHIPPING_COST = 10.00
PREMIUM_LOCATION_MULTIPLIER = 1.2
DEFAULT_ITEM_WEIGHT = 0.1


class ShippingMethod(Enum):
    STANDARD = "STANDARD"
    EXPRESS = "EXPRESS"
    OVERNIGHT = "OVERNIGHT"
    INTERNATIONAL = "INTERNATIONAL"


@dataclass(frozen=True)
class ShippingZone:
    id: str
    name: str
    countries: frozenset[str]
    base_rate: float
    rate_multiplier: float
    is_domestic: bool = False

    def covers(self, country_code: str) -> bool:
        return country_code in self.countries


SHIPPING_ZONES = (
    ShippingZone("zone1", "Domestic Zone 1", frozenset({"US"}), 10.00, 1.0, is_domestic=True),
    ShippingZone("zone2", "Domestic Zone 2", frozenset({"CA", "MX"}), 15.00, 1.2),
    ShippingZone("zone3", "International Zone 1", frozenset({"GB", "FR", "DE", "IT", "ES"}), 25.00, 1.5),
    ShippingZone("zone4", "International Zone 2", frozenset({"AU", "JP", "CN", "IN"}), 35.00, 1.8),
)

# Unmatched countries are priced as the most distant zone
DEFAULT_ZONE = SHIPPING_ZONES[-1]

PREMIUM_PINCODES = frozenset({"10001", "90210", "60601", "94105", "02108"})

METHOD_MULTIPLIERS = {
    ShippingMethod.STANDARD: 1.0,
    ShippingMethod.EXPRESS: 1.5,
    ShippingMethod.OVERNIGHT: 2.5,
    ShippingMethod.INTERNATIONAL: 2.0,
}

DOMESTIC_METHODS = (ShippingMethod.STANDARD, ShippingMethod.EXPRESS, ShippingMethod.OVERNIGHT)
INTERNATIONAL_METHODS = (ShippingMethod.STANDARD, ShippingMethod.EXPRESS, ShippingMethod.INTERNATIONAL)

CARRIERS = {
    ShippingMethod.STANDARD: ("USPS", "FedEx Ground"),
    ShippingMethod.EXPRESS: ("FedEx Express", "UPS Express"),
    ShippingMethod.OVERNIGHT: ("FedEx Overnight", "UPS Next Day Air"),
    ShippingMethod.INTERNATIONAL: ("DHL", "FedEx International"),
}

# (domestic, international); None means the method is not offered there
DELIVERY_ESTIMATES = {
    ShippingMethod.STANDARD: ("3-5 business days", "7-14 business days"),
    ShippingMethod.EXPRESS: ("2-3 business days", "3-5 business days"),
    ShippingMethod.OVERNIGHT: ("Next business day", "2-3 business days"),
    ShippingMethod.INTERNATIONAL: (None, "5-7 business days"),
}

PINCODE_PATTERNS = {
    "US": re.compile(r"^\d{5}(-\d{4})?$"),
    "CA": re.compile(r"^[A-Za-z]\d[A-Za-z][ -]?\d[A-Za-z]\d$"),
    "GB": re.compile(r"^[A-Z]{1,2}\d[A-Z\d]? ?\d[A-Z]{2}$"),
    "IN": re.compile(r"^\d{6}$"),
}

_RANGE_PATTERN = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\b")
_NEXT_DAY_PATTERN = re.compile(r"^\s*next\b", re.IGNORECASE)


@dataclass(frozen=True)
class DeliveryWindow:
    text: str
    min_days: int
    max_days: int


def parse_delivery_window(text: str) -> DeliveryWindow:
    """Decompose ``"3-5 business days"`` into ``(3, 5)``; ``"Next ..."`` is ``(1, 1)``."""
    if _NEXT_DAY_PATTERN.match(text):
        return DeliveryWindow(text, 1, 1)

    match = _RANGE_PATTERN.match(text)
    if match is None:
        raise ValueError(f"Malformed delivery estimate: {text!r}")

    min_days, max_days = int(match.group(1)), int(match.group(2))
    if min_days > max_days:
        raise ValueError(f"Delivery estimate range is inverted: {text!r}")
    return DeliveryWindow(text, min_days, max_days)


def _build_delivery_windows(estimates):
    windows = {}
    for method, texts in estimates.items():
        windows[method] = tuple(parse_delivery_window(text) if text is not None else None for text in texts)
    return windows


DELIVERY_WINDOWS = _build_delivery_windows(DELIVERY_ESTIMATES)
