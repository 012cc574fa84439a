"""Inventory resolver — match StructuredCriteria against the internal property store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from inmo_search.config import Settings
from inmo_search.gazetteer import fold
from inmo_search.models.criteria import Operation, PropertyType, StructuredCriteria
from inmo_search.models.listing import InventoryMatch
from inmo_search.storage.database import PropertyRepository

logger = logging.getLogger(__name__)

# Words that mark a listing's operation in its title or subtype
OPERATION_KEYWORDS = {
    Operation.PURCHASE: ("venta", "sale"),
    Operation.RENT: ("alquiler",),
}

LOCATION_COLUMNS = ("address", "zone", "city", "title")


@dataclass(frozen=True)
class QueryClause:
    name: str
    sql: str
    params: tuple = ()


@dataclass
class InventoryQuery:
    """Conjunction of clauses; OR-groups stay parenthesized inside one clause."""

    clauses: list[QueryClause] = field(default_factory=list)
    limit: int = 5

    @property
    def where_sql(self) -> str:
        return " AND ".join(clause.sql for clause in self.clauses)

    @property
    def params(self) -> list:
        return [param for clause in self.clauses for param in clause.params]

    def clause_names(self) -> list[str]:
        return [clause.name for clause in self.clauses]


def _or_group(columns: tuple[str, ...], needles: list[str]) -> tuple[str, tuple]:
    terms = []
    params = []
    for needle in needles:
        for column in columns:
            terms.append(f"fold({column}) LIKE ?")
            params.append(f"%{fold(needle)}%")
    return "(" + " OR ".join(terms) + ")", tuple(params)


def build_query(criteria: StructuredCriteria, settings: Settings | None = None) -> InventoryQuery:
    """Translate criteria into the inventory filter.

    The operation OR-group and the location OR-group are separate clauses,
    joined with AND like every other clause.
    """
    settings = settings or Settings()
    query = InventoryQuery(limit=settings.inventory_max_results)

    states = settings.published_states
    query.clauses.append(
        QueryClause(
            "status",
            "status IN (" + ", ".join("?" for _ in states) + ")",
            tuple(states),
        )
    )

    if criteria.property_type != PropertyType.OTHER:
        query.clauses.append(
            QueryClause("property_type", "property_type = ?", (criteria.property_type.value,))
        )

    sql, params = _or_group(("title", "subtype"), list(OPERATION_KEYWORDS[criteria.operation]))
    query.clauses.append(QueryClause("operation", sql, params))

    if criteria.price_max is not None:
        ceiling = criteria.price_max * settings.price_tolerance
        query.clauses.append(
            QueryClause(
                "price_max",
                "(price <= ? AND currency = ?)",
                (ceiling, criteria.currency.value),
            )
        )

    if criteria.price_min is not None:
        query.clauses.append(QueryClause("price_min", "price >= ?", (criteria.price_min,)))

    if criteria.locations:
        sql, params = _or_group(LOCATION_COLUMNS, list(criteria.locations))
        query.clauses.append(QueryClause("locations", sql, params))

    if criteria.bedrooms_min:
        query.clauses.append(QueryClause("bedrooms", "bedrooms >= ?", (criteria.bedrooms_min,)))

    return query


class InventoryResolver:
    """Runs the criteria query against the property repository."""

    def __init__(self, repository: PropertyRepository, settings: Settings | None = None) -> None:
        self.repository = repository
        self.settings = settings or Settings()

    def resolve(self, criteria: StructuredCriteria) -> list[InventoryMatch]:
        query = build_query(criteria, self.settings)
        rows = self.repository.search(query.where_sql, query.params, query.limit)
        matches = [InventoryMatch(**row) for row in rows]
        logger.info(
            "Inventory: %d matches (filters: %s)",
            len(matches), ", ".join(query.clause_names()),
        )
        return matches
