"""Pydantic model for the LLM extraction output — lenient JSON schema."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from inmo_search.models.criteria import (
    Currency,
    Operation,
    PropertyType,
    StructuredCriteria,
)

# Spanish labels the model tends to answer with
PROPERTY_TYPE_SYNONYMS = {
    "CASA": PropertyType.HOUSE,
    "CHALET": PropertyType.HOUSE,
    "DUPLEX": PropertyType.HOUSE,
    "QUINTA": PropertyType.HOUSE,
    "DEPARTAMENTO": PropertyType.APARTMENT,
    "DEPTO": PropertyType.APARTMENT,
    "PH": PropertyType.APARTMENT,
    "TERRENO": PropertyType.LAND,
    "LOTE": PropertyType.LAND,
    "LOCAL": PropertyType.COMMERCIAL,
    "OFICINA": PropertyType.OFFICE,
    "COCHERA": PropertyType.GARAGE,
    "OTRO": PropertyType.OTHER,
}

OPERATION_SYNONYMS = {
    "COMPRA": Operation.PURCHASE,
    "VENTA": Operation.PURCHASE,
    "BUY": Operation.PURCHASE,
    "SALE": Operation.PURCHASE,
    "ALQUILER": Operation.RENT,
    "RENTAL": Operation.RENT,
}


class LLMExtractionOutput(BaseModel):
    """Schema for the JSON object returned by the extraction prompt.

    Accepts both the English keys requested by the prompt and the Spanish
    keys some models fall back to.
    """

    model_config = ConfigDict(extra="ignore")

    property_type: PropertyType = Field(
        default=PropertyType.OTHER,
        validation_alias=AliasChoices("property_type", "tipoPropiedad"),
    )
    operation: Operation = Field(
        default=Operation.PURCHASE,
        validation_alias=AliasChoices("operation", "operacion"),
    )
    price_min: float | None = Field(
        default=None, validation_alias=AliasChoices("price_min", "presupuestoMin")
    )
    price_max: float | None = Field(
        default=None, validation_alias=AliasChoices("price_max", "presupuestoMax")
    )
    currency: Currency = Field(
        default=Currency.USD, validation_alias=AliasChoices("currency", "moneda")
    )
    locations: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("locations", "zonas")
    )
    bedrooms_min: int | None = Field(
        default=None, validation_alias=AliasChoices("bedrooms_min", "dormitoriosMin")
    )
    rooms_min: int | None = Field(
        default=None, validation_alias=AliasChoices("rooms_min", "ambientesMin")
    )
    has_parking: bool = Field(
        default=False, validation_alias=AliasChoices("has_parking", "cochera")
    )
    features: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("features", "caracteristicas"),
    )
    notes: str | None = Field(default=None, validation_alias=AliasChoices("notes", "notas"))
    confidence: int = Field(
        default=90, ge=0, le=100, validation_alias=AliasChoices("confidence", "confianza")
    )
    client_name: str | None = Field(
        default=None, validation_alias=AliasChoices("client_name", "nombreCliente")
    )
    phone: str | None = Field(default=None, validation_alias=AliasChoices("phone", "telefono"))

    @field_validator("property_type", mode="before")
    @classmethod
    def map_property_type(cls, v):
        if isinstance(v, str):
            key = v.strip().upper()
            return PROPERTY_TYPE_SYNONYMS.get(key, key)
        return v

    @field_validator("operation", mode="before")
    @classmethod
    def map_operation(cls, v):
        if isinstance(v, str):
            key = v.strip().upper()
            return OPERATION_SYNONYMS.get(key, key)
        return v

    @field_validator("currency", mode="before")
    @classmethod
    def map_currency(cls, v):
        if isinstance(v, str):
            key = v.strip().upper().replace("U$S", "USD").replace("U$D", "USD")
            return "ARS" if key in ("$", "PESOS") else key
        return v

    @field_validator("price_min", "price_max", "bedrooms_min", "rooms_min", mode="before")
    @classmethod
    def blank_or_zero_to_none(cls, v):
        if v in ("", 0, "0"):
            return None
        return v

    @field_validator("locations", "features")
    @classmethod
    def limit_items(cls, v: list[str]) -> list[str]:
        return [item for item in v if item][:10]

    def to_criteria(self) -> StructuredCriteria:
        """Convert into the canonical criteria value (validates invariants)."""
        return StructuredCriteria(
            property_type=self.property_type,
            operation=self.operation,
            price_min=self.price_min,
            price_max=self.price_max,
            currency=self.currency,
            locations=tuple(self.locations),
            bedrooms_min=self.bedrooms_min,
            rooms_min=self.rooms_min,
            has_parking=self.has_parking,
            features=tuple(self.features),
            notes=self.notes or "",
            confidence=self.confidence,
            client_name=self.client_name or None,
            phone=self.phone or None,
        )
