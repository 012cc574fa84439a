"""Rule parser — deterministic extraction of StructuredCriteria from free text.

The parser is an ordered table of :class:`ExtractionRule` entries. Each rule
looks at the normalized (lower-cased, accent-folded) inquiry plus the fields
already extracted, and contributes one field of the draft. Order matters:
currency defaults depend on the operation, and the price heuristic depends on
both.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from inmo_search.gazetteer import Gazetteer, fold
from inmo_search.models.criteria import (
    Currency,
    Operation,
    PropertyType,
    StructuredCriteria,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Vocabularies
# =============================================================================

RENT_PATTERN = re.compile(r"\b(?:alquil\w*|renta|rentar|rent|rental|arriendo)\b")

# Checked in order; the first family with a hit wins
PROPERTY_TYPE_PATTERNS: list[tuple[PropertyType, re.Pattern[str]]] = [
    (PropertyType.HOUSE, re.compile(r"\b(?:casas?|chalets?|duplex|quintas?|house)\b")),
    (
        PropertyType.APARTMENT,
        re.compile(r"\b(?:departamentos?|deptos?|dptos?|pisos?|ph|monoambientes?|apartments?|flat)\b"),
    ),
    (PropertyType.LAND, re.compile(r"\b(?:terrenos?|lotes?|land)\b")),
    (PropertyType.COMMERCIAL, re.compile(r"\b(?:local|locales|comercios?|comercial|galpon|galpones)\b")),
    (PropertyType.OFFICE, re.compile(r"\b(?:oficinas?|consultorios?|office)\b")),
    (PropertyType.GARAGE, re.compile(r"\b(?:cocheras?|garages?|garajes?)\b")),
]

USD_PATTERN = re.compile(r"(?:u\$s|u\$d|us\$|\busd\b|\bdolar(?:es)?\b|\bdollars?\b)")

_NUMBER = r"(\d{1,3}(?:[.,]\d{3})+|\d+(?:[.,]\d+)?)"
_SUFFIX = r"(?:\s*(k|mil|millones|millon|m)\b)?"
_CURRENCY_MARK = r"(?:u\$s|u\$d|us\$|usd|ars|\$|dolares)?"

PRICE_PATTERNS = [
    # "hasta 150000", "presupuesto de usd 120k", "up to 90 mil"
    re.compile(
        r"\b(?:hasta|max(?:imo)?|presupuesto|pago|gastaria|menos de|precio|valor"
        r"|up to|under|budget|price)[:\s]*(?:de\s*)?"
        + _CURRENCY_MARK + r"\s*" + _NUMBER + _SUFFIX
    ),
    # "usd 150.000"
    re.compile(r"(?:u\$s|u\$d|us\$|\busd)\s*" + _NUMBER + _SUFFIX),
    # "150000 dolares"
    re.compile(r"(?<![\d.,])" + _NUMBER + _SUFFIX + r"\s*(?:usd|u\$s|u\$d|dolares|dollars)\b"),
]

SUFFIX_MULTIPLIERS = {
    "k": 1_000,
    "mil": 1_000,
    "m": 1_000_000,
    "millon": 1_000_000,
    "millones": 1_000_000,
}

NUMBER_WORDS = {
    "una": 1, "un": 1, "uno": 1,
    "dos": 2, "tres": 3, "cuatro": 4, "cinco": 5,
    "seis": 6, "siete": 7, "ocho": 8, "nueve": 9, "diez": 10,
}
_COUNT = r"\b(\d+|" + "|".join(sorted(NUMBER_WORDS, key=len, reverse=True)) + r")"

BEDROOMS_PATTERN = re.compile(
    _COUNT + r"\s*(?:dorm\w*|habitac\w*|hab\b|cuartos?\b|piezas?\b|bedrooms?\b)"
)
ROOMS_PATTERN = re.compile(_COUNT + r"\s*(?:amb\w*|rooms?\b)")
STUDIO_PATTERN = re.compile(r"\bmonoambientes?\b")

PARKING_PATTERN = re.compile(r"\b(?:cocheras?|garages?|garajes?|estacionamiento|auto|parking)\b")

FEATURE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("needs-renovation", re.compile(r"\b(?:refaccion\w*|recicla\w*|demoler)\b")),
    ("yard", re.compile(r"\b(?:patio|jardin|yard|garden)\b")),
    ("pool", re.compile(r"\b(?:pileta|piscina|pool)\b")),
    ("balcony", re.compile(r"\b(?:balcon|balcony)\b")),
]

PHONE_PATTERN = re.compile(r"(?<!\d)(\+?\d[\d\s-]{8,18}\d)(?!\d)")
NAME_PATTERN = re.compile(r"\b(?:me llamo|mi nombre es)\s+([a-z]+(?:\s+[a-z]+)?)")


# =============================================================================
# Rule table
# =============================================================================


def _always(text: str, draft: dict) -> bool:
    return True


@dataclass(frozen=True)
class ExtractionRule:
    """One step of the parser: ``applies`` gates ``extract`` for ``field``."""

    field: str
    extract: Callable[[str, dict], Any]
    applies: Callable[[str, dict], bool] = _always


def extract_operation(text: str, draft: dict) -> Operation:
    return Operation.RENT if RENT_PATTERN.search(text) else Operation.PURCHASE


def extract_property_type(text: str, draft: dict) -> PropertyType:
    for property_type, pattern in PROPERTY_TYPE_PATTERNS:
        if pattern.search(text):
            return property_type
    return PropertyType.OTHER


def extract_currency(text: str, draft: dict) -> Currency:
    if USD_PATTERN.search(text):
        return Currency.USD
    if draft.get("operation") == Operation.RENT:
        return Currency.ARS
    return Currency.USD


def parse_amount(raw: str, suffix: str | None = None) -> float:
    """Turn "150.000" / "1,5" / "120" plus an optional scale suffix into a number."""
    raw = raw.strip()
    if re.fullmatch(r"\d{1,3}(?:[.,]\d{3})+", raw):
        value = float(re.sub(r"[.,]", "", raw))
    else:
        value = float(raw.replace(",", "."))
    if suffix:
        value *= SUFFIX_MULTIPLIERS.get(suffix, 1)
    return value


def extract_price_max(text: str, draft: dict) -> float | None:
    """Budget ceiling.

    A bare number under 1000 on a purchase is read as thousands ("150" ->
    150000). Rentals are never scaled up.
    """
    for pattern in PRICE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        try:
            value = parse_amount(match.group(1), match.group(2))
        except ValueError:
            continue
        if value <= 0:
            return None
        if (
            not match.group(2)
            and value < 1000
            and draft.get("operation") == Operation.PURCHASE
        ):
            value *= 1000
        return value
    return None


def _count(token: str) -> int | None:
    value = int(token) if token.isdigit() else NUMBER_WORDS.get(token)
    return value or None


def extract_bedrooms(text: str, draft: dict) -> int | None:
    match = BEDROOMS_PATTERN.search(text)
    return _count(match.group(1)) if match else None


def extract_rooms(text: str, draft: dict) -> int | None:
    match = ROOMS_PATTERN.search(text)
    if match:
        return _count(match.group(1))
    if STUDIO_PATTERN.search(text):
        return 1
    return None


def extract_parking(text: str, draft: dict) -> bool:
    return bool(PARKING_PATTERN.search(text))


def extract_features(text: str, draft: dict) -> tuple[str, ...]:
    return tuple(tag for tag, pattern in FEATURE_PATTERNS if pattern.search(text))


def extract_phone(text: str, draft: dict) -> str | None:
    for match in PHONE_PATTERN.finditer(text):
        candidate = match.group(1)
        digits = re.sub(r"\D", "", candidate)
        if 10 <= len(digits) <= 13:
            return ("+" if candidate.startswith("+") else "") + digits
    return None


def extract_client_name(text: str, draft: dict) -> str | None:
    match = NAME_PATTERN.search(text)
    return match.group(1).title() if match else None


def summarize(text: str, draft: dict) -> str:
    locations = ", ".join(draft.get("locations", ())) or "none"
    price = draft.get("price_max")
    budget = f"{price:,.0f} {draft['currency'].value}" if price else "not stated"
    return f"Processed by rule parser (no AI). Locations: {locations}. Budget: {budget}."


def build_rules(gazetteer: Gazetteer, confidence: int = 75) -> list[ExtractionRule]:
    """The fixed, ordered rule table."""
    return [
        ExtractionRule("operation", extract_operation),
        ExtractionRule("property_type", extract_property_type),
        ExtractionRule("currency", extract_currency),
        ExtractionRule("price_max", extract_price_max),
        ExtractionRule("bedrooms_min", extract_bedrooms),
        ExtractionRule("rooms_min", extract_rooms),
        ExtractionRule("has_parking", extract_parking),
        ExtractionRule(
            "locations", lambda text, draft: tuple(gazetteer.find_locations(text))
        ),
        ExtractionRule("features", extract_features),
        ExtractionRule("phone", extract_phone),
        ExtractionRule("client_name", extract_client_name),
        ExtractionRule("notes", summarize),
        ExtractionRule("confidence", lambda text, draft: confidence),
    ]


# =============================================================================
# Parser
# =============================================================================


def normalize_text(raw_text: str) -> str:
    return re.sub(r"\s+", " ", fold(raw_text)).strip()


class RuleParser:
    """Applies the rule table top to bottom and builds the criteria."""

    def __init__(self, gazetteer: Gazetteer, confidence: int = 75) -> None:
        self.rules = build_rules(gazetteer, confidence)

    def parse(self, raw_text: str) -> StructuredCriteria:
        text = normalize_text(raw_text)
        draft: dict = {}
        for rule in self.rules:
            if not rule.applies(text, draft):
                continue
            value = rule.extract(text, draft)
            if value is not None:
                draft[rule.field] = value

        criteria = StructuredCriteria(**draft)
        logger.info("Rule parser extracted: %s", criteria.describe())
        return criteria
