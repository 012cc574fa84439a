"""Noise filter for scraped result cards.

Drops cards from other cities or provinces (gazetteer blacklist), page
fragments that are not listings, and cards that contradict the criteria.
"""

from __future__ import annotations

import logging
import re

from inmo_search.agents.rule_parser import parse_amount
from inmo_search.gazetteer import Gazetteer, fold
from inmo_search.models.criteria import (
    Currency,
    Operation,
    PropertyType,
    StructuredCriteria,
)
from inmo_search.models.listing import ScrapedListing

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 10

# Filter widgets and country selectors that portals render with card classes
UI_WORDS = (
    "buscar solo", "filtrar", "moneda:", "limpiar", "aplicar", "argentina",
    "uruguay", "paraguay", "brasil", "emiratos", "espana", "estados unidos",
    "seleccionar", "opciones", "pais", "paises",
)

HOUSE_WORD = re.compile(r"\bcasas?\b")
APARTMENT_WORD = re.compile(r"\b(?:departamentos?|deptos?)\b")
LAND_WORD = re.compile(r"\b(?:terrenos?|lotes?)\b")
RENT_WORD = re.compile(r"\b(?:alquiler|alq)\b")
SALE_WORD = re.compile(r"\b(?:venta|vende|vendo)\b")

PRICE_NUMBER = re.compile(r"\d{1,3}(?:[.,]\d{3})+|\d+(?:[.,]\d+)?")
USD_MARK = re.compile(r"(?:us\$|u\$s|u\$d|\busd\b|\bdolares\b)")


class NoiseFilter:
    """Decides whether a scraped card belongs in the results."""

    def __init__(self, gazetteer: Gazetteer, price_tolerance: float = 1.10) -> None:
        self.gazetteer = gazetteer
        self.price_tolerance = price_tolerance

    def accept(self, listing: ScrapedListing, criteria: StructuredCriteria) -> bool:
        reason = self.rejection_reason(listing, criteria)
        if reason:
            logger.debug("%s: rejected (%s): %s", listing.source, reason, listing.title[:60])
            return False
        return True

    def rejection_reason(
        self, listing: ScrapedListing, criteria: StructuredCriteria
    ) -> str | None:
        region = self.region_reason(listing)
        if region:
            return region
        return self.criteria_reason(listing, criteria)

    # -- Region blacklist -------------------------------------------------------

    def region_reason(self, listing: ScrapedListing) -> str | None:
        """Blacklisted region in title, location text or URL."""
        for label, text, as_url in (
            ("title", listing.title, False),
            ("location", listing.location_text, False),
            ("url", listing.url, True),
        ):
            token = self.gazetteer.blacklisted_token(text, as_url=as_url)
            if token:
                return f"region '{token}' in {label}"
        return None

    # -- Card validation --------------------------------------------------------

    def criteria_reason(
        self, listing: ScrapedListing, criteria: StructuredCriteria
    ) -> str | None:
        title = fold(listing.title).strip()
        price = fold(listing.price_text).strip()

        if len(title) < MIN_TITLE_LENGTH:
            return "title too short"
        if any(word in title for word in UI_WORDS):
            return "page element"

        if criteria.property_type == PropertyType.APARTMENT:
            if HOUSE_WORD.search(title) and not APARTMENT_WORD.search(title):
                return "type mismatch (house)"
            if LAND_WORD.search(title):
                return "type mismatch (land)"
        elif criteria.property_type == PropertyType.HOUSE:
            if APARTMENT_WORD.search(title) and not HOUSE_WORD.search(title):
                return "type mismatch (apartment)"

        if criteria.operation == Operation.PURCHASE:
            if RENT_WORD.search(title) or RENT_WORD.search(price):
                return "operation mismatch (rent)"
        elif SALE_WORD.search(title) or SALE_WORD.search(price):
            return "operation mismatch (sale)"

        if criteria.price_max is not None:
            value = card_price(price, criteria.operation)
            if value is not None and card_currency(price) == criteria.currency:
                if value > criteria.price_max * self.price_tolerance:
                    return f"price {value:,.0f} over budget"
        return None


def card_price(price_text: str, operation: Operation) -> float | None:
    """First number on a price label; purchases under 1000 read as thousands."""
    match = PRICE_NUMBER.search(price_text)
    if not match:
        return None
    try:
        value = parse_amount(match.group(0))
    except ValueError:
        return None
    if value <= 0:
        return None
    if value < 1000 and operation == Operation.PURCHASE:
        value *= 1000
    return value


def card_currency(price_text: str) -> Currency | None:
    folded = fold(price_text)
    if USD_MARK.search(folded):
        return Currency.USD
    if "$" in folded:
        return Currency.ARS
    return None
