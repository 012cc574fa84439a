"""Pydantic models for pipeline outputs — scraped cards, portal links, inventory rows."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from inmo_search.models.criteria import StructuredCriteria


class LinkCategory(str, Enum):
    PORTAL = "PORTAL"
    AGENCY_NETWORK = "AGENCY_NETWORK"
    INTERNATIONAL = "INTERNATIONAL"


class ScrapedListing(BaseModel):
    """A result card scraped from a portal search page. Identity is ``url``."""

    source: str
    title: str
    price_text: str
    location_text: str = ""
    url: str
    image_url: str | None = None


class PortalLink(BaseModel):
    """A deep link into an external portal's search results."""

    portal: str
    title: str
    url: str
    icon: str = ""
    category: LinkCategory = LinkCategory.PORTAL


class InventoryMatch(BaseModel):
    """Read-only projection of an internal property record."""

    property_id: int
    title: str
    property_type: str
    subtype: str | None = None
    price: float | None = None
    currency: str | None = None
    address: str | None = None
    zone: str | None = None
    city: str | None = None
    bedrooms: int | None = None
    rooms: int | None = None
    agency: str | None = None
    status: str


class PersistedSearch(BaseModel):
    client_id: int
    client_name: str
    search_id: int
    client_created: bool = False


class ResolveResult(BaseModel):
    """Everything a single inquiry resolves to."""

    criteria: StructuredCriteria
    inventory_matches: list[InventoryMatch] = Field(default_factory=list)
    portal_links: list[PortalLink] = Field(default_factory=list)
    scraped_listings: list[ScrapedListing] = Field(default_factory=list)
    persisted: PersistedSearch | None = None
