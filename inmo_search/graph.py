"""LangGraph workflow — inquiry to inventory resolution pipeline."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import TypedDict

import httpx
from langgraph.graph import StateGraph, END

from inmo_search.agents.intent_extractor import IntentExtractor, build_intent_extractor
from inmo_search.agents.inventory_resolver import InventoryResolver
from inmo_search.agents.link_synthesizer import PortalLinkSynthesizer
from inmo_search.config import Settings
from inmo_search.exceptions import ClientNotFoundError, InputValidationError, StoreError
from inmo_search.gazetteer import Gazetteer, load_gazetteer
from inmo_search.models.criteria import StructuredCriteria
from inmo_search.models.listing import (
    InventoryMatch,
    PersistedSearch,
    PortalLink,
    ResolveResult,
    ScrapedListing,
)
from inmo_search.storage.database import (
    PropertyRepository,
    SearchRepository,
    generated_client_name,
)
from inmo_search.tools.scrapers import ListingScraper, default_scrapers, gather_listings

logger = logging.getLogger(__name__)


# =============================================================================
# Pipeline State & Context
# =============================================================================


class ResolveState(TypedDict, total=False):
    """State passed between nodes in the LangGraph pipeline."""

    # Request
    raw_text: str
    persist: bool
    client_ref: int | None
    scrape: bool

    # Data
    criteria: StructuredCriteria
    persisted: PersistedSearch | None
    inventory_matches: list[InventoryMatch]
    portal_links: list[PortalLink]
    scraped_listings: list[ScrapedListing]


@dataclass
class PipelineContext:
    """Collaborators shared by the nodes of one pipeline."""

    settings: Settings
    gazetteer: Gazetteer
    extractor: IntentExtractor
    properties: PropertyRepository
    searches: SearchRepository
    scrapers: list[ListingScraper] = field(default_factory=list)
    transport: httpx.AsyncBaseTransport | None = None

    def close(self) -> None:
        self.properties.close()
        self.searches.close()


def build_context(settings: Settings | None = None) -> PipelineContext:
    """Wire the default collaborators from settings."""
    settings = settings or Settings.from_env()
    gazetteer = load_gazetteer(settings.gazetteer_path)
    return PipelineContext(
        settings=settings,
        gazetteer=gazetteer,
        extractor=build_intent_extractor(settings, gazetteer),
        properties=PropertyRepository(settings.db_path),
        searches=SearchRepository(settings.db_path),
        scrapers=default_scrapers(gazetteer, settings),
    )


# =============================================================================
# Build the Graph
# =============================================================================


def build_pipeline(context: PipelineContext):
    """Build and compile the LangGraph pipeline.

    extract -> persist -> {inventory, links, scrape} -> END
    """

    def extract_node(state: ResolveState) -> dict:
        logger.info("=== Node 1: Extract Intent ===")
        criteria = context.extractor.extract(state["raw_text"])
        return {"criteria": criteria}

    def persist_node(state: ResolveState) -> dict:
        logger.info("=== Node 2: Persist Search ===")
        if not state.get("persist"):
            return {"persisted": None}

        criteria = state["criteria"]
        client_ref = state.get("client_ref")
        repo = context.searches

        if client_ref is not None:
            client = repo.get_client(int(client_ref))
            if client is None:
                raise ClientNotFoundError(client_ref)
            created = False
        else:
            name = criteria.client_name or generated_client_name()
            client, created = repo.find_or_create_client(name, criteria.phone)

        search_id = repo.create_search(client["client_id"], criteria, state["raw_text"])
        logger.info("Saved search %d for client %d", search_id, client["client_id"])
        return {
            "persisted": PersistedSearch(
                client_id=client["client_id"],
                client_name=client["full_name"],
                search_id=search_id,
                client_created=created,
            )
        }

    def inventory_node(state: ResolveState) -> dict:
        logger.info("=== Node 3: Inventory Matches ===")
        resolver = InventoryResolver(context.properties, context.settings)
        return {"inventory_matches": resolver.resolve(state["criteria"])}

    def links_node(state: ResolveState) -> dict:
        logger.info("=== Node 4: Portal Links ===")
        synthesizer = PortalLinkSynthesizer(context.gazetteer)
        return {"portal_links": synthesizer.synthesize(state["criteria"])}

    async def scrape_node(state: ResolveState) -> dict:
        logger.info("=== Node 5: Scrape Portals ===")
        if not state.get("scrape", True) or not context.scrapers:
            return {"scraped_listings": []}
        listings = await gather_listings(
            context.scrapers, state["criteria"], context.settings, context.transport
        )
        return {"scraped_listings": listings}

    graph = StateGraph(ResolveState)

    graph.add_node("extract", extract_node)
    graph.add_node("persist", persist_node)
    graph.add_node("inventory", inventory_node)
    graph.add_node("links", links_node)
    graph.add_node("scrape", scrape_node)

    graph.set_entry_point("extract")
    graph.add_edge("extract", "persist")
    # Fan out; the three branches write disjoint keys
    graph.add_edge("persist", "inventory")
    graph.add_edge("persist", "links")
    graph.add_edge("persist", "scrape")
    graph.add_edge("inventory", END)
    graph.add_edge("links", END)
    graph.add_edge("scrape", END)

    return graph.compile()


# =============================================================================
# Entry points
# =============================================================================


async def aresolve(
    raw_text: str,
    persist: bool = False,
    client_ref: int | None = None,
    context: PipelineContext | None = None,
    scrape: bool = True,
) -> ResolveResult:
    """Resolve one inquiry into criteria, inventory matches, links and listings.

    Raises InputValidationError for short input (before any extraction),
    ClientNotFoundError for an unknown ``client_ref`` and StoreError when the
    database fails.
    """
    owns_context = context is None
    try:
        context = context or build_context()
    except sqlite3.Error as e:
        logger.error("Could not open the store: %s", e, exc_info=True)
        raise StoreError() from e

    try:
        text = (raw_text or "").strip()
        if len(text) < context.settings.min_input_length:
            raise InputValidationError(
                f"message too short to analyse (minimum {context.settings.min_input_length} characters)"
            )

        pipeline = build_pipeline(context)
        try:
            state = await pipeline.ainvoke(
                {
                    "raw_text": text,
                    "persist": persist,
                    "client_ref": client_ref,
                    "scrape": scrape,
                }
            )
        except sqlite3.Error as e:
            logger.error("Store failure while resolving inquiry: %s", e, exc_info=True)
            raise StoreError() from e
    finally:
        if owns_context:
            context.close()

    result = ResolveResult(
        criteria=state["criteria"],
        inventory_matches=state.get("inventory_matches", []),
        portal_links=state.get("portal_links", []),
        scraped_listings=state.get("scraped_listings", []),
        persisted=state.get("persisted"),
    )
    logger.info(
        "Resolved: %d inventory, %d links, %d scraped%s",
        len(result.inventory_matches),
        len(result.portal_links),
        len(result.scraped_listings),
        f", search #{result.persisted.search_id}" if result.persisted else "",
    )
    return result


def resolve(
    raw_text: str,
    persist: bool = False,
    client_ref: int | None = None,
    context: PipelineContext | None = None,
    scrape: bool = True,
) -> ResolveResult:
    """Synchronous wrapper around :func:`aresolve`."""
    return asyncio.run(
        aresolve(raw_text, persist=persist, client_ref=client_ref, context=context, scrape=scrape)
    )
