"""Cart item snapshot consumed by the pricing calculator.

The engine does not own cart storage; callers hand over plain item data and
it is frozen here for the rest of the checkout.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from checkout.exceptions import InvalidAmount
from checkout.shared.money import non_negative, positive_quantity

UNKNOWN_PRODUCT_NAME = "Unknown Product"


@dataclass(frozen=True)
class CartItem:
    product_id: str
    quantity: int
    unit_price: float
    name: str = UNKNOWN_PRODUCT_NAME
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.product_id:
            raise InvalidAmount("Cart item is missing a product id")
        positive_quantity(self.quantity)
        object.__setattr__(self, "unit_price", non_negative(self.unit_price, "unit_price"))
        object.__setattr__(self, "name", self.name or UNKNOWN_PRODUCT_NAME)
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata or {})))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CartItem":
        # ``price`` is the field name used by the cart service payloads
        unit_price = data.get("unit_price", data.get("price"))
        return cls(
            product_id=str(data.get("product_id") or ""),
            quantity=data.get("quantity"),
            unit_price=unit_price,
            name=data.get("name") or UNKNOWN_PRODUCT_NAME,
            metadata=data.get("metadata") or {},
        )

    @classmethod
    def coerce(cls, value: "CartItem | Mapping[str, Any]") -> "CartItem":
        return value if isinstance(value, cls) else cls.from_dict(value)

    @property
    def unit_weight(self) -> float | None:
        weight = self.metadata.get("weight")
        if weight is None:
            return None
        return non_negative(weight, "weight")

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "name": self.name,
            "metadata": dict(self.metadata),
        }
