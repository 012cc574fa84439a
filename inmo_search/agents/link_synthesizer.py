"""Portal link synthesizer — deep links into external listing portals.

Pure string templating, no I/O. Every portal keeps its own vocabulary for
property types and operations; the mappings are spelled out per portal.
"""

from __future__ import annotations

import logging
from typing import Callable
from urllib.parse import quote

from inmo_search.gazetteer import Gazetteer
from inmo_search.models.criteria import Operation, PropertyType, StructuredCriteria
from inmo_search.models.listing import LinkCategory, PortalLink

logger = logging.getLogger(__name__)

# Spanish singular used in titles and the web-search phrase
TYPE_LABELS = {
    PropertyType.HOUSE: "casa",
    PropertyType.APARTMENT: "departamento",
    PropertyType.LAND: "terreno",
    PropertyType.COMMERCIAL: "local",
    PropertyType.OFFICE: "oficina",
    PropertyType.GARAGE: "cochera",
    PropertyType.OTHER: "propiedad",
}

OPERATION_SLUGS = {Operation.PURCHASE: "venta", Operation.RENT: "alquiler"}


def _operation(criteria: StructuredCriteria) -> str:
    return OPERATION_SLUGS[criteria.operation]


def _label(criteria: StructuredCriteria) -> str:
    return TYPE_LABELS[criteria.property_type]


# =============================================================================
# Portals
# =============================================================================


def zonaprop_link(criteria: StructuredCriteria, location: str) -> PortalLink:
    kinds = {
        PropertyType.APARTMENT: "departamentos",
        PropertyType.HOUSE: "casas",
        PropertyType.LAND: "terrenos",
    }
    kind = kinds.get(criteria.property_type, "inmuebles")
    url = f"https://www.zonaprop.com.ar/{kind}-{_operation(criteria)}-ciudad-de-santa-fe-sf"
    if criteria.bedrooms_min:
        url += f"-{criteria.bedrooms_min}-habitaciones"
    return PortalLink(
        portal="ZonaProp",
        title=f"ZonaProp: {_label(criteria).capitalize()} en {location}",
        url=f"{url}.html",
        icon="🏢",
        category=LinkCategory.PORTAL,
    )


def argenprop_link(criteria: StructuredCriteria, location: str) -> PortalLink:
    kinds = {
        PropertyType.APARTMENT: "departamentos",
        PropertyType.HOUSE: "casas",
        PropertyType.LAND: "terrenos",
        PropertyType.COMMERCIAL: "locales",
        PropertyType.OFFICE: "oficinas",
        PropertyType.GARAGE: "cocheras",
    }
    kind = kinds.get(criteria.property_type, "inmuebles")
    # "santa-fe" alone collides with Avenida Santa Fe in Buenos Aires
    return PortalLink(
        portal="ArgenProp",
        title=f"ArgenProp: {_label(criteria).capitalize()} en Santa Fe",
        url=f"https://www.argenprop.com/{kind}/{_operation(criteria)}/santa-fe-santa-fe",
        icon="🏠",
        category=LinkCategory.PORTAL,
    )


def mercadolibre_link(criteria: StructuredCriteria, location: str) -> PortalLink:
    kinds = {PropertyType.APARTMENT: "departamentos", PropertyType.HOUSE: "casas"}
    kind = kinds.get(criteria.property_type, "inmuebles")
    return PortalLink(
        portal="MercadoLibre",
        title=f"MercadoLibre: {_label(criteria).capitalize()}",
        url=(
            f"https://inmuebles.mercadolibre.com.ar/{kind}/{_operation(criteria)}"
            "/santa-fe/santa-fe-capital"
        ),
        icon="🤝",
        category=LinkCategory.PORTAL,
    )


def buscainmueble_link(criteria: StructuredCriteria, location: str) -> PortalLink:
    plurals = {
        PropertyType.HOUSE: "casas",
        PropertyType.APARTMENT: "departamentos",
        PropertyType.LAND: "terrenos",
        PropertyType.COMMERCIAL: "locales",
        PropertyType.OFFICE: "oficinas",
        PropertyType.GARAGE: "cocheras",
        PropertyType.OTHER: "propiedades",
    }
    return PortalLink(
        portal="Buscainmueble",
        title="Buscainmueble: Agregador",
        url=(
            "https://www.buscainmueble.com/propiedades/"
            f"{plurals[criteria.property_type]}-en-{_operation(criteria)}-en-santa-fe-santa-fe"
        ),
        icon="🔎",
        category=LinkCategory.PORTAL,
    )


def remax_link(criteria: StructuredCriteria, location: str) -> PortalLink:
    return PortalLink(
        portal="Remax",
        title="Red Remax",
        url=(
            f"https://www.remax.com.ar/propiedades/en-{_operation(criteria)}"
            "?address=Santa+Fe%2C+Santa+Fe"
        ),
        icon="🎈",
        category=LinkCategory.AGENCY_NETWORK,
    )


def century21_link(criteria: StructuredCriteria, location: str) -> PortalLink:
    kinds = {PropertyType.HOUSE: "Casa", PropertyType.APARTMENT: "Departamento"}
    kind = kinds.get(criteria.property_type, "Propiedad")
    operation = _operation(criteria).capitalize()
    return PortalLink(
        portal="Century 21",
        title="Century 21 Global",
        url=(
            f"https://www.century21.com.ar/propiedades?operacion={operation}"
            f"&tipo_propiedad={kind}&ubicacion=Santa+Fe+Capital"
        ),
        icon="🏠",
        category=LinkCategory.AGENCY_NETWORK,
    )


def properstar_link(criteria: StructuredCriteria, location: str) -> PortalLink:
    return PortalLink(
        portal="Properstar",
        title="Properstar (Internacional)",
        url=(
            "https://www.properstar.com.ar/argentina/santa-fe-province/santa-fe/"
            f"{_label(criteria)}-{_operation(criteria)}"
        ),
        icon="⭐",
        category=LinkCategory.INTERNATIONAL,
    )


def fazwaz_link(criteria: StructuredCriteria, location: str) -> PortalLink:
    return PortalLink(
        portal="FazWaz",
        title="FazWaz Invest",
        url=f"https://www.fazwaz.com.ar/en-{_operation(criteria)}/argentina/santa-fe/santa-fe",
        icon="📈",
        category=LinkCategory.INTERNATIONAL,
    )


def rentberry_link(criteria: StructuredCriteria, location: str) -> PortalLink | None:
    if criteria.operation != Operation.RENT:
        return None
    return PortalLink(
        portal="Rentberry",
        title="Rentberry (Global Rentals)",
        url="https://rentberry.com/ar/apartments/s/santa-fe-argentina",
        icon="🍇",
        category=LinkCategory.INTERNATIONAL,
    )


def search_phrase(criteria: StructuredCriteria, location: str) -> str:
    parts = [_label(criteria), _operation(criteria), location]
    if criteria.bedrooms_min:
        parts.append(f"{criteria.bedrooms_min} dormitorios")
    return " ".join(parts)


def web_search_link(criteria: StructuredCriteria, location: str) -> PortalLink:
    phrase = search_phrase(criteria, location)
    return PortalLink(
        portal="Google",
        title=f"Google: {phrase}",
        url="https://www.google.com/search?q=" + quote(f"{phrase} inmobiliaria santa fe", safe=""),
        icon="🔍",
        category=LinkCategory.PORTAL,
    )


PORTAL_BUILDERS: list[Callable[[StructuredCriteria, str], PortalLink | None]] = [
    zonaprop_link,
    argenprop_link,
    mercadolibre_link,
    buscainmueble_link,
    remax_link,
    century21_link,
    properstar_link,
    fazwaz_link,
    rentberry_link,
    # Catch-all, always last
    web_search_link,
]


class PortalLinkSynthesizer:
    """Builds one link per (portal, location) and dedupes by URL."""

    def __init__(
        self,
        gazetteer: Gazetteer,
        builders: list[Callable[[StructuredCriteria, str], PortalLink | None]] | None = None,
    ) -> None:
        self.default_location = gazetteer.default_location
        self.builders = builders if builders is not None else PORTAL_BUILDERS

    def synthesize(self, criteria: StructuredCriteria) -> list[PortalLink]:
        locations = list(criteria.locations) or [self.default_location]

        # Later links replace earlier ones with the same URL, keeping the slot
        links: dict[str, PortalLink] = {}
        for location in locations:
            for builder in self.builders:
                link = builder(criteria, location)
                if link is not None:
                    links[link.url] = link

        logger.info("Synthesized %d portal links for %d location(s)", len(links), len(locations))
        return list(links.values())
