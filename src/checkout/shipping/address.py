"""Delivery address captured for shipping and tax lookups."""

from dataclasses import asdict, dataclass
from typing import Any, Mapping

from checkout.exceptions import InvalidAddress


@dataclass(frozen=True)
class DeliveryAddress:
    country: str
    pincode: str | None = None
    state: str | None = None
    city: str | None = None
    line1: str | None = None
    line2: str | None = None

    def __post_init__(self):
        country = (self.country or "").strip().upper()
        if len(country) != 2:
            raise InvalidAddress(f"Country must be an ISO 3166 alpha-2 code, got {self.country!r}")
        object.__setattr__(self, "country", country)
        if self.pincode is not None:
            object.__setattr__(self, "pincode", self.pincode.strip() or None)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeliveryAddress":
        # ``postal_code``/``zip_code`` are accepted for payloads from other services
        pincode = data.get("pincode") or data.get("postal_code") or data.get("zip_code")
        return cls(
            country=data.get("country", ""),
            pincode=str(pincode) if pincode is not None else None,
            state=data.get("state"),
            city=data.get("city"),
            line1=data.get("line1") or data.get("street"),
            line2=data.get("line2"),
        )

    @classmethod
    def coerce(cls, value: "DeliveryAddress | Mapping[str, Any] | None") -> "DeliveryAddress | None":
        if value is None or isinstance(value, cls):
            return value
        return cls.from_dict(value)

    def to_dict(self) -> dict:
        return {key: value for key, value in asdict(self).items() if value is not None}
