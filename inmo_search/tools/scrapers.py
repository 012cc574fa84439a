"""Portal scrapers — MercadoLibre, ArgenProp, Remax, ZonaProp, Buscainmueble result pages.

Each adapter builds one search URL, fetches it with browser-like headers,
parses result cards and runs them through the noise filter. Failures of any
kind yield an empty list for that adapter only.
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
from abc import ABC, abstractmethod
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup, Tag

from inmo_search.config import Settings
from inmo_search.gazetteer import Gazetteer, fold
from inmo_search.models.criteria import (
    Currency,
    Operation,
    PropertyType,
    StructuredCriteria,
)
from inmo_search.models.listing import ScrapedListing
from inmo_search.tools.noise_filter import NoiseFilter

logger = logging.getLogger(__name__)

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:122.0) Gecko/20100101 Firefox/122.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36 Edg/121.0.0.0",
]


def browser_headers(referer: str = "https://www.google.com/") -> dict[str, str]:
    """Headers of an ordinary desktop browser; portals reject bot agents."""
    return {
        "User-Agent": random.choice(USER_AGENTS),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
        "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
        "Referer": referer,
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "cross-site",
        "Upgrade-Insecure-Requests": "1",
    }


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", fold(text)).strip("-")


def _operation_slug(criteria: StructuredCriteria) -> str:
    return "alquiler" if criteria.operation == Operation.RENT else "venta"


# =============================================================================
# Card helpers
# =============================================================================


def _first(card: Tag, selector: str) -> Tag | None:
    return card.select_one(selector)


def _text(card: Tag, selector: str) -> str:
    element = _first(card, selector)
    return element.get_text(" ", strip=True) if element else ""


def _href(card: Tag, selector: str) -> str | None:
    element = _first(card, selector)
    if element is None and card.name == "a" and card.get("href"):
        element = card
    href = element.get("href") if element else None
    return href.strip() if href else None


def _image(card: Tag, selector: str) -> str | None:
    element = _first(card, selector)
    if element is None:
        return None
    # Lazy-loaded images keep the real source in data-src
    return element.get("data-src") or element.get("src") or None


# =============================================================================
# Scraper base
# =============================================================================


class ListingScraper(ABC):
    """One portal's search page, behind a common interface."""

    source = "portal"
    base_url = ""
    referer = "https://www.google.com/"

    # Portals ship two card layouts at the same time; both are read
    primary_selector = ""
    alternate_selector = ""

    title_selector = "h2, h3"
    price_selector = ".price"
    location_selector = ".location"
    link_selector = "a[href]"
    image_selector = "img"

    def __init__(self, gazetteer: Gazetteer, settings: Settings | None = None) -> None:
        self.gazetteer = gazetteer
        self.settings = settings or Settings()
        self.noise_filter = NoiseFilter(gazetteer, self.settings.price_tolerance)

    @abstractmethod
    def build_url(self, criteria: StructuredCriteria) -> str:
        ...

    async def fetch_listings(
        self, criteria: StructuredCriteria, client: httpx.AsyncClient
    ) -> list[ScrapedListing]:
        """Fetch and parse one results page. Never raises."""
        url = ""
        try:
            url = self.build_url(criteria)
            logger.info("Scraping %s: %s", self.source, url)
            html = await asyncio.wait_for(
                self._fetch(client, url), timeout=self.settings.scraper_timeout
            )
            listings = self.parse_listings(html, criteria)
        except asyncio.TimeoutError:
            logger.warning("%s: timed out after %.1fs", self.source, self.settings.scraper_timeout)
            return []
        except httpx.HTTPStatusError as e:
            logger.warning("%s: HTTP %d for %s", self.source, e.response.status_code, url)
            return []
        except Exception as e:
            logger.error("%s scraper failed: %s", self.source, e)
            return []

        logger.info("%s: %d listings kept", self.source, len(listings))
        return listings

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> str:
        response = await client.get(
            url, headers=browser_headers(self.referer), timeout=self.settings.scraper_timeout
        )
        response.raise_for_status()
        return response.text

    def parse_listings(self, html: str, criteria: StructuredCriteria) -> list[ScrapedListing]:
        soup = BeautifulSoup(html, "html.parser")
        cards = soup.select(self.primary_selector)
        if self.alternate_selector:
            cards += soup.select(self.alternate_selector)
        logger.debug("%s: %d candidate cards", self.source, len(cards))

        listings: list[ScrapedListing] = []
        seen_urls: set[str] = set()
        for card in cards:
            listing = self.parse_card(card)
            if listing is None or listing.url in seen_urls:
                continue
            seen_urls.add(listing.url)
            if not self.noise_filter.accept(listing, criteria):
                continue
            listings.append(listing)
            if len(listings) >= self.settings.scraper_max_items:
                break
        return listings

    def parse_card(self, card: Tag) -> ScrapedListing | None:
        """Extract one card; None when title, URL or price is missing."""
        title = _text(card, self.title_selector)
        price = _text(card, self.price_selector)
        href = _href(card, self.link_selector)
        if not title or not price or not href:
            return None

        image = _image(card, self.image_selector)
        return ScrapedListing(
            source=self.source,
            title=title,
            price_text=price,
            location_text=_text(card, self.location_selector),
            url=urljoin(self.base_url, href),
            image_url=urljoin(self.base_url, image) if image else None,
        )


# =============================================================================
# MercadoLibre
# =============================================================================


class MercadoLibreScraper(ListingScraper):
    source = "MercadoLibre"
    base_url = "https://inmuebles.mercadolibre.com.ar/"
    referer = "https://www.mercadolibre.com.ar/"

    primary_selector = ".ui-search-layout__item, .ui-search-result"
    alternate_selector = ".poly-card"

    title_selector = ".ui-search-item__title, .poly-component__title, h2, h3"
    price_selector = ".ui-search-price__part, .poly-price__current-price"
    location_selector = ".ui-search-item__location, .poly-component__location"
    link_selector = "a.ui-search-link, a.poly-component__title"
    image_selector = "img.ui-search-result-image__element, img.poly-component__picture"

    KINDS = {
        PropertyType.HOUSE: "casas",
        PropertyType.APARTMENT: "departamentos",
        PropertyType.LAND: "terrenos",
    }
    LOCAL_AREAS = (
        "santa-fe", "rincon", "santo-tome", "sauce-viejo", "arroyo-leyes",
        "recreo", "colastine",
    )

    def build_url(self, criteria: StructuredCriteria) -> str:
        kind = self.KINDS.get(criteria.property_type, "inmuebles")
        location = criteria.locations[0] if criteria.locations else self.gazetteer.default_location
        slug = slugify(location)
        if not any(area in slug for area in self.LOCAL_AREAS):
            slug = "santa-fe"

        if slug == "santa-fe" or "santa-fe-capital" in slug:
            area = "santa-fe/santa-fe-capital"
        else:
            area = f"santa-fe/{slug}"

        url = f"https://listado.mercadolibre.com.ar/inmuebles/{kind}/{_operation_slug(criteria)}/{area}"
        params = []
        if criteria.bedrooms_min:
            params.append(f"DORMITORIOS={criteria.bedrooms_min}")
        if criteria.price_max is not None:
            params.append("_ORDER_BY_PRICE_ASC")
        if params:
            url += "?" + "&".join(params)
        return url


# =============================================================================
# ArgenProp
# =============================================================================


class ArgenPropScraper(ListingScraper):
    source = "ArgenProp"
    base_url = "https://www.argenprop.com/"
    referer = "https://www.argenprop.com/"

    primary_selector = ".listing__item"
    alternate_selector = ".card"

    title_selector = ".card__title, h2, h3"
    price_selector = ".card__price"
    location_selector = ".card__address, .card__location"
    link_selector = "a[href]"
    image_selector = "img"

    KINDS = {
        PropertyType.HOUSE: "casa",
        PropertyType.APARTMENT: "departamento",
        PropertyType.LAND: "terreno",
    }
    # Towns with their own slug; everything else is the capital
    LOCAL_AREAS = {
        "rincon": "san-jose-del-rincon",
        "santo-tome": "santo-tome",
        "sauce-viejo": "sauce-viejo",
        "colastine": "colastine",
        "arroyo-leyes": "arroyo-leyes",
        "recreo": "recreo",
    }
    DEFAULT_AREA = "santa-fe-capital"

    def build_url(self, criteria: StructuredCriteria) -> str:
        kind = self.KINDS.get(criteria.property_type, "inmuebles")
        slug = slugify(criteria.locations[0]) if criteria.locations else ""
        area = next(
            (target for key, target in self.LOCAL_AREAS.items() if key in slug),
            self.DEFAULT_AREA,
        )

        url = f"https://www.argenprop.com/{kind}-{_operation_slug(criteria)}-en-{area}"
        if criteria.bedrooms_min:
            url += f"-{criteria.bedrooms_min}-dormitorios"
        if criteria.price_max is not None:
            currency = "dolares" if criteria.currency == Currency.USD else "pesos"
            url += f"-hasta-{int(criteria.price_max)}-{currency}"
        return url


# =============================================================================
# Remax
# =============================================================================


class RemaxScraper(ListingScraper):
    source = "Remax"
    base_url = "https://www.remax.com.ar/"
    referer = "https://www.remax.com.ar/"

    primary_selector = '.property-card, .listing-card, [data-testid="property-card"]'
    alternate_selector = "article"

    title_selector = ".property-title, .listing-title, h3, h4"
    price_selector = '.property-price, .price, [data-testid="price"]'
    location_selector = '.property-location, .location, [data-testid="location"]'
    link_selector = "a[href]"
    image_selector = "img"

    def build_url(self, criteria: StructuredCriteria) -> str:
        url = (
            f"https://www.remax.com.ar/propiedades/en-{_operation_slug(criteria)}"
            "?address=Santa+Fe%2C+Santa+Fe"
        )
        if criteria.price_max is not None:
            url += f"&maxPrice={int(criteria.price_max)}"
        return url


# =============================================================================
# ZonaProp
# =============================================================================


class ZonaPropScraper(ListingScraper):
    source = "ZonaProp"
    base_url = "https://www.zonaprop.com.ar/"
    referer = "https://www.zonaprop.com.ar/"

    primary_selector = ".posting-card, .posting, [data-posting-id]"
    alternate_selector = '[class*="posting"], article'

    title_selector = ".posting-title, h2, .title"
    price_selector = ".posting-price, .price, [data-price]"
    location_selector = ".posting-location, .location, .address"
    link_selector = "a[href]"
    image_selector = "img"

    KINDS = {
        PropertyType.HOUSE: "casas",
        PropertyType.APARTMENT: "departamentos",
        PropertyType.LAND: "terrenos",
    }

    def build_url(self, criteria: StructuredCriteria) -> str:
        # Only the capital has a search slug
        kind = self.KINDS.get(criteria.property_type, "inmuebles")
        url = f"https://www.zonaprop.com.ar/{kind}-{_operation_slug(criteria)}-ciudad-de-santa-fe-sf"
        if criteria.bedrooms_min:
            url += f"-{criteria.bedrooms_min}-habitaciones"
        url += ".html"
        if criteria.price_max is not None:
            url += (
                f"?precio-desde=0&precio-hasta={int(criteria.price_max)}"
                f"&moneda={criteria.currency.value}"
            )
        return url


# =============================================================================
# Buscainmueble
# =============================================================================


class BuscainmuebleScraper(ListingScraper):
    source = "Buscainmueble"
    base_url = "https://www.buscainmueble.com/"
    referer = "https://www.buscainmueble.com/"

    primary_selector = ".property-card, .listing-item, [data-property-id]"
    alternate_selector = 'article, [class*="listing"]'

    title_selector = ".property-title, .title, h3, h4"
    price_selector = ".property-price, .price"
    location_selector = ".property-location, .location"
    link_selector = "a[href]"
    image_selector = "img"

    KINDS = {
        PropertyType.HOUSE: "casas",
        PropertyType.APARTMENT: "departamentos",
        PropertyType.LAND: "terrenos",
    }

    def build_url(self, criteria: StructuredCriteria) -> str:
        kind = self.KINDS.get(criteria.property_type, "propiedades")
        url = (
            f"https://www.buscainmueble.com/propiedades/{kind}-en-"
            f"{_operation_slug(criteria)}-en-santa-fe-santa-fe"
        )
        if criteria.price_max is not None:
            url += f"?precio_max={int(criteria.price_max)}&moneda={criteria.currency.value}"
        return url


# =============================================================================
# Fan-out
# =============================================================================


def default_scrapers(gazetteer: Gazetteer, settings: Settings | None = None) -> list[ListingScraper]:
    """Adapters in their fixed run order (earlier wins on duplicate URLs)."""
    return [
        MercadoLibreScraper(gazetteer, settings),
        ArgenPropScraper(gazetteer, settings),
        RemaxScraper(gazetteer, settings),
        ZonaPropScraper(gazetteer, settings),
        BuscainmuebleScraper(gazetteer, settings),
    ]


def merge_listings(batches: list[list[ScrapedListing]]) -> list[ScrapedListing]:
    """Concatenate in adapter order, keeping the first listing per URL."""
    merged: dict[str, ScrapedListing] = {}
    for batch in batches:
        for listing in batch:
            merged.setdefault(listing.url, listing)
    return list(merged.values())


async def gather_listings(
    scrapers: list[ListingScraper],
    criteria: StructuredCriteria,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[ScrapedListing]:
    """Run every adapter concurrently on one client and merge the results."""
    settings = settings or Settings()
    async with httpx.AsyncClient(
        follow_redirects=True, timeout=settings.scraper_timeout, transport=transport
    ) as client:
        results = await asyncio.gather(
            *(scraper.fetch_listings(criteria, client) for scraper in scrapers),
            return_exceptions=True,
        )

    batches: list[list[ScrapedListing]] = []
    for scraper, result in zip(scrapers, results):
        if isinstance(result, BaseException):
            logger.error("%s scraper crashed: %s", scraper.source, result)
            batches.append([])
        else:
            batches.append(result)

    merged = merge_listings(batches)
    logger.info(
        "Scraped %d listings (%d before dedup) from %d portals",
        len(merged), sum(len(b) for b in batches), len(scrapers),
    )
    return merged
