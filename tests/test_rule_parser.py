"""Tests for deterministic extraction of StructuredCriteria from inquiry text."""

from __future__ import annotations

import pytest

from inmo_search.agents.rule_parser import RuleParser, build_rules, parse_amount
from inmo_search.gazetteer import load_gazetteer
from inmo_search.models.criteria import Currency, Operation, PropertyType


@pytest.fixture
def parser() -> RuleParser:
    return RuleParser(load_gazetteer())


class TestEndToEndScenarios:
    """The reference inquiries used to validate the fallback path."""

    def test_house_purchase_in_candioti(self, parser: RuleParser) -> None:
        """Type, operation, currency, budget, location and bedrooms in one message."""
        criteria = parser.parse(
            "busco casa en venta en Candioti hasta 150000 dolares, 3 dormitorios"
        )

        assert criteria.property_type == PropertyType.HOUSE
        assert criteria.operation == Operation.PURCHASE
        assert criteria.currency == Currency.USD
        assert criteria.price_max == 150000
        assert criteria.locations == ("Candioti",)
        assert criteria.bedrooms_min == 3
        assert criteria.confidence == 75

    def test_rental_apartment_without_price_or_location(self, parser: RuleParser) -> None:
        """Rooms are not bedrooms; no location means an empty tuple."""
        criteria = parser.parse("alquiler depto 2 ambientes con cochera")

        assert criteria.operation == Operation.RENT
        assert criteria.property_type == PropertyType.APARTMENT
        assert criteria.rooms_min == 2
        assert criteria.bedrooms_min is None
        assert criteria.has_parking is True
        assert criteria.locations == ()
        assert criteria.price_max is None
        assert criteria.currency == Currency.ARS


class TestOperationAndType:
    @pytest.mark.parametrize(
        "text",
        [
            "quiero alquilar un departamento en el centro",
            "Alquilo casa con patio, urgente",
            "busco algo en renta por Guadalupe",
        ],
    )
    def test_rental_keywords_yield_rent(self, parser: RuleParser, text: str) -> None:
        """Rental verbs and nouns mean RENT."""
        assert parser.parse(text).operation == Operation.RENT

    def test_purchase_is_default(self, parser: RuleParser) -> None:
        """Test the default operation."""
        assert parser.parse("busco terreno grande en Colastiné").operation == Operation.PURCHASE

    def test_house_terms_win_over_apartment_terms(self, parser: RuleParser) -> None:
        """House is checked before apartment."""
        criteria = parser.parse("casa o departamento, lo que aparezca primero")
        assert criteria.property_type == PropertyType.HOUSE

    def test_apartment_with_garage_stays_apartment(self, parser: RuleParser) -> None:
        """A garage mention is parking, not the property type."""
        criteria = parser.parse("compro depto con cochera en Bulevar")
        assert criteria.property_type == PropertyType.APARTMENT
        assert criteria.has_parking is True

    def test_garage_only(self, parser: RuleParser) -> None:
        """Test a garage on its own."""
        assert parser.parse("necesito comprar una cochera cerca").property_type == PropertyType.GARAGE

    def test_office_and_commercial(self, parser: RuleParser) -> None:
        """Test office and commercial keywords."""
        assert parser.parse("busco oficina para estudio contable").property_type == PropertyType.OFFICE
        assert parser.parse("busco local comercial sobre avenida").property_type == PropertyType.COMMERCIAL

    def test_unknown_type_is_other(self, parser: RuleParser) -> None:
        """No type keyword means OTHER."""
        assert parser.parse("quiero invertir en algo lindo").property_type == PropertyType.OTHER


class TestPrice:
    def test_small_number_on_purchase_means_thousands(self, parser: RuleParser) -> None:
        """"150" on a purchase reads as 150000."""
        criteria = parser.parse("compro casa hasta 150 usd en Candioti")
        assert criteria.operation == Operation.PURCHASE
        assert criteria.price_max == 150000

    def test_small_number_on_rent_is_not_scaled(self, parser: RuleParser) -> None:
        """Rental amounts are taken as written."""
        criteria = parser.parse("alquilo depto hasta 800 dolares por mes")
        assert criteria.operation == Operation.RENT
        assert criteria.currency == Currency.USD
        assert criteria.price_max == 800

    def test_k_suffix(self, parser: RuleParser) -> None:
        """Test the k suffix."""
        assert parser.parse("casa en Roma, presupuesto 120k").price_max == 120000

    def test_mil_suffix(self, parser: RuleParser) -> None:
        """Test the mil suffix."""
        assert parser.parse("departamento hasta 90 mil usd").price_max == 90000

    def test_millions_suffix(self, parser: RuleParser) -> None:
        """Test the millones suffix with a decimal comma."""
        assert parser.parse("terreno con precio 1,5 millones de pesos").price_max == 1_500_000

    def test_thousands_separator(self, parser: RuleParser) -> None:
        """Dots as thousands separators are removed."""
        assert parser.parse("presupuesto usd 150.000 para casa").price_max == 150000

    def test_currency_anchored_amount_without_qualifier(self, parser: RuleParser) -> None:
        """An amount after a currency marker counts without "hasta"."""
        assert parser.parse("tengo U$S 95.000 para un depto").price_max == 95000

    def test_no_price(self, parser: RuleParser) -> None:
        """Test a message without a budget."""
        assert parser.parse("busco casa linda con jardin").price_max is None

    @pytest.mark.parametrize(
        "raw,suffix,expected",
        [
            ("150.000", None, 150000),
            ("1.250.000", None, 1250000),
            ("1,5", "millones", 1500000),
            ("85", "k", 85000),
            ("120", None, 120),
        ],
    )
    def test_parse_amount(self, raw: str, suffix: str | None, expected: float) -> None:
        """Test amount parsing with and without suffixes."""
        assert parse_amount(raw, suffix) == expected


class TestCurrency:
    """Test suite for the currency rule."""

    def test_dollar_token_wins_on_rent(self, parser: RuleParser) -> None:
        """A USD token overrides the rental default."""
        assert parser.parse("alquiler depto centro 500 usd").currency == Currency.USD

    def test_rent_defaults_to_pesos(self, parser: RuleParser) -> None:
        """Rentals without a USD token are quoted in pesos."""
        assert parser.parse("alquilo casa en Guadalupe hasta 400 mil pesos").currency == Currency.ARS

    def test_purchase_quoting_pesos_stays_in_dollars(self, parser: RuleParser) -> None:
        """Only rentals switch to pesos; a purchase mentioning pesos is still USD."""
        criteria = parser.parse("compro casa en Candioti, pago hasta 90000000 pesos")

        assert criteria.operation == Operation.PURCHASE
        assert criteria.currency == Currency.USD
        assert criteria.price_max == 90_000_000

    def test_purchase_defaults_to_dollars(self, parser: RuleParser) -> None:
        """No currency token and no rental means USD."""
        assert parser.parse("busco terreno en Colastine").currency == Currency.USD


class TestCountsAndFlags:
    def test_bedroom_number_words(self, parser: RuleParser) -> None:
        """Spanish number words count as bedrooms."""
        assert parser.parse("depto de dos dormitorios en Centro").bedrooms_min == 2
        assert parser.parse("algo chico con una habitación").bedrooms_min == 1

    def test_zero_bedrooms_is_discarded(self, parser: RuleParser) -> None:
        """Zero bedrooms is not a constraint."""
        assert parser.parse("casa con 0 dormitorios, un galpon").bedrooms_min is None

    def test_studio_means_one_room(self, parser: RuleParser) -> None:
        """Monoambiente is one room."""
        criteria = parser.parse("alquilo monoambiente cerca de la facultad")
        assert criteria.rooms_min == 1
        assert criteria.property_type == PropertyType.APARTMENT

    def test_features(self, parser: RuleParser) -> None:
        """Test feature tags."""
        criteria = parser.parse("casa para refaccionar con patio, pileta y balcón")
        assert criteria.features == ("needs-renovation", "yard", "pool", "balcony")

    def test_phone_and_name(self, parser: RuleParser) -> None:
        """Test contact details in the message."""
        criteria = parser.parse("Hola, me llamo Ana Pérez, mi cel 342 515-1234, busco depto")
        assert criteria.phone == "3425151234"
        assert criteria.client_name == "Ana Perez"

    def test_price_is_not_mistaken_for_phone(self, parser: RuleParser) -> None:
        """Short numbers are not phone numbers."""
        assert parser.parse("casa hasta 150000 dolares, 3 dormitorios").phone is None


class TestLocations:
    def test_longer_alias_shadows_shorter(self, parser: RuleParser) -> None:
        """"candioti sur" must not also produce Candioti or Barrio Sur."""
        criteria = parser.parse("depto en candioti sur o en el centro")
        assert criteria.locations == ("Candioti Sur", "Centro")

    def test_aliases_collapse_to_one_canonical_name(self, parser: RuleParser) -> None:
        """Several aliases of one zone yield one location."""
        criteria = parser.parse("casa en siete jefes o 7 jefes, cerca del microcentro")
        assert criteria.locations == ("7 Jefes", "Centro")

    def test_accents_are_ignored(self, parser: RuleParser) -> None:
        """Test matching with and without accents."""
        assert parser.parse("casa en Villa Setúbal con pileta").locations == ("Villa Setubal",)


class TestRuleTable:
    def test_rule_order_is_fixed(self) -> None:
        """Operation precedes currency, which precedes price."""
        fields = [rule.field for rule in build_rules(load_gazetteer())]

        assert fields.index("operation") < fields.index("currency") < fields.index("price_max")
        assert fields[0] == "operation"
        assert fields[-1] == "confidence"

    def test_custom_confidence(self) -> None:
        """The rule parser reports the configured confidence."""
        parser = RuleParser(load_gazetteer(), confidence=60)
        assert parser.parse("busco casa en Candioti").confidence == 60
