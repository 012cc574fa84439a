"""Pydantic model for the structured intent extracted from a client inquiry."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PropertyType(str, Enum):
    APARTMENT = "APARTMENT"
    HOUSE = "HOUSE"
    LAND = "LAND"
    COMMERCIAL = "COMMERCIAL"
    OFFICE = "OFFICE"
    GARAGE = "GARAGE"
    OTHER = "OTHER"


class Operation(str, Enum):
    PURCHASE = "PURCHASE"
    RENT = "RENT"


class Currency(str, Enum):
    USD = "USD"
    ARS = "ARS"


class StructuredCriteria(BaseModel):
    """Canonical representation of what a client is looking for.

    Built once per request and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    property_type: PropertyType = PropertyType.OTHER
    operation: Operation = Operation.PURCHASE

    # Budget (both bounds share ``currency``)
    price_min: float | None = Field(default=None, ge=0)
    price_max: float | None = Field(default=None, ge=0)
    currency: Currency = Currency.USD

    # Empty means "no location constraint"
    locations: tuple[str, ...] = ()

    bedrooms_min: int | None = Field(default=None, ge=1)
    rooms_min: int | None = Field(default=None, ge=1)
    has_parking: bool = False
    features: tuple[str, ...] = ()

    notes: str = ""
    confidence: int = Field(default=75, ge=0, le=100)

    # Contact details found in the message, used when persisting a search
    client_name: str | None = None
    phone: str | None = None

    @field_validator("locations", "features")
    @classmethod
    def dedupe_preserving_order(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        cleaned = (item.strip() for item in v if item and item.strip())
        return tuple(dict.fromkeys(cleaned))

    @model_validator(mode="after")
    def check_price_range(self) -> StructuredCriteria:
        if (
            self.price_min is not None
            and self.price_max is not None
            and self.price_min > self.price_max
        ):
            raise ValueError("price_min must not exceed price_max")
        return self

    def describe(self) -> str:
        """Short human-readable summary used in logs and search annotations."""
        parts = [self.property_type.value, self.operation.value]
        if self.price_max is not None:
            parts.append(f"<= {self.currency.value} {self.price_max:,.0f}")
        if self.locations:
            parts.append("in " + ", ".join(self.locations))
        if self.bedrooms_min:
            parts.append(f"{self.bedrooms_min}+ bedrooms")
        if self.rooms_min:
            parts.append(f"{self.rooms_min}+ rooms")
        if self.has_parking:
            parts.append("parking")
        return " ".join(parts)
