"""Tests for StructuredCriteria invariants and LLM output schema validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from inmo_search.models.criteria import (
    Currency,
    Operation,
    PropertyType,
    StructuredCriteria,
)
from inmo_search.models.extraction import LLMExtractionOutput


class TestStructuredCriteria:
    """Test suite for the criteria value object."""

    def test_defaults(self) -> None:
        """Test the defaults of an empty criteria."""
        criteria = StructuredCriteria()

        assert criteria.property_type == PropertyType.OTHER
        assert criteria.operation == Operation.PURCHASE
        assert criteria.currency == Currency.USD
        assert criteria.locations == ()
        assert criteria.has_parking is False

    def test_price_min_above_max_is_rejected(self) -> None:
        """An inverted price range is rejected."""
        with pytest.raises(ValidationError):
            StructuredCriteria(price_min=200000, price_max=100000)

    def test_negative_price_is_rejected(self) -> None:
        """Prices cannot be negative."""
        with pytest.raises(ValidationError):
            StructuredCriteria(price_max=-1)

    def test_zero_bedrooms_is_rejected(self) -> None:
        """Bedroom minimum starts at one."""
        with pytest.raises(ValidationError):
            StructuredCriteria(bedrooms_min=0)

    def test_confidence_range(self) -> None:
        """Confidence is a percentage."""
        with pytest.raises(ValidationError):
            StructuredCriteria(confidence=101)

    def test_is_immutable(self) -> None:
        """Criteria cannot be changed after construction."""
        criteria = StructuredCriteria(price_max=100000)
        with pytest.raises(ValidationError):
            criteria.price_max = 5

    def test_locations_are_deduplicated_in_order(self) -> None:
        """Blank and repeated locations are dropped, order kept."""
        criteria = StructuredCriteria(locations=["Centro", "Candioti", "Centro", " "])
        assert criteria.locations == ("Centro", "Candioti")


class TestLLMExtractionOutput:
    """Test suite for validation of the LLM JSON answer."""

    def test_english_keys(self) -> None:
        """Test parsing an answer with English keys."""
        output = LLMExtractionOutput.model_validate(
            {
                "property_type": "HOUSE",
                "operation": "PURCHASE",
                "price_max": 150000,
                "currency": "USD",
                "locations": ["Candioti"],
                "bedrooms_min": 3,
                "has_parking": True,
                "confidence": 88,
            }
        )
        criteria = output.to_criteria()

        assert criteria.property_type == PropertyType.HOUSE
        assert criteria.price_max == 150000
        assert criteria.locations == ("Candioti",)
        assert criteria.confidence == 88

    def test_spanish_keys_and_labels(self) -> None:
        """Spanish keys and labels map onto the same fields."""
        output = LLMExtractionOutput.model_validate(
            {
                "tipoPropiedad": "DEPARTAMENTO",
                "operacion": "ALQUILER",
                "presupuestoMax": 350000,
                "moneda": "ARS",
                "zonas": ["Centro"],
                "ambientesMin": 2,
                "cochera": False,
                "confianza": 90,
                "nombreCliente": "Juan",
            }
        )

        assert output.property_type == PropertyType.APARTMENT
        assert output.operation == Operation.RENT
        assert output.rooms_min == 2
        assert output.client_name == "Juan"

    def test_confidence_defaults_to_90(self) -> None:
        """Missing confidence defaults to 90."""
        assert LLMExtractionOutput.model_validate({}).confidence == 90

    def test_zero_counts_become_none(self) -> None:
        """Zeros mean "not stated"."""
        output = LLMExtractionOutput.model_validate({"bedrooms_min": 0, "price_max": 0})
        assert output.bedrooms_min is None
        assert output.price_max is None

    def test_unknown_property_type_is_rejected(self) -> None:
        """Unknown property types fail validation."""
        with pytest.raises(ValidationError):
            LLMExtractionOutput.model_validate({"property_type": "CASTLE"})

    def test_inverted_price_range_fails_on_conversion(self) -> None:
        """The range check runs when converting to criteria."""
        output = LLMExtractionOutput.model_validate({"price_min": 300000, "price_max": 100000})
        with pytest.raises(ValidationError):
            output.to_criteria()
