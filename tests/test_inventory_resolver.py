"""Tests for inventory query construction and execution."""

from __future__ import annotations

from pathlib import Path

import pytest

from inmo_search.agents.inventory_resolver import InventoryResolver, build_query
from inmo_search.config import Settings
from inmo_search.models.criteria import (
    Currency,
    Operation,
    PropertyType,
    StructuredCriteria,
)
from inmo_search.storage.database import PropertyRepository


@pytest.fixture
def repo(tmp_path: Path) -> PropertyRepository:
    repository = PropertyRepository(str(tmp_path / "inventory.db"))
    yield repository
    repository.close()


def _titles(matches) -> list[str]:
    return [m.title for m in matches]


class TestBuildQuery:
    def test_two_or_groups_are_conjoined(self) -> None:
        """Operation and location groups are separate AND-ed clauses."""
        criteria = StructuredCriteria(
            property_type=PropertyType.HOUSE,
            operation=Operation.PURCHASE,
            locations=("Candioti", "Centro"),
        )

        query = build_query(criteria)

        assert query.clause_names() == ["status", "property_type", "operation", "locations"]
        operation_sql = query.clauses[2].sql
        location_sql = query.clauses[3].sql
        assert operation_sql.startswith("(") and operation_sql.endswith(")")
        assert location_sql.startswith("(") and location_sql.endswith(")")
        assert f"{operation_sql} AND {location_sql}" in query.where_sql

    def test_no_location_group_without_locations(self) -> None:
        """Empty locations add no location clause."""
        criteria = StructuredCriteria(
            property_type=PropertyType.APARTMENT, operation=Operation.RENT, rooms_min=2
        )

        names = build_query(criteria).clause_names()

        assert "locations" not in names
        assert "operation" in names

    def test_other_type_has_no_type_filter(self) -> None:
        """OTHER matches every property type."""
        assert "property_type" not in build_query(StructuredCriteria()).clause_names()

    def test_purchase_also_matches_sale(self) -> None:
        """Purchases match "venta" and "sale"."""
        query = build_query(StructuredCriteria(operation=Operation.PURCHASE))
        assert "%sale%" in query.clauses[1].params
        assert "%venta%" in query.clauses[1].params

    def test_tolerance_and_limit_come_from_settings(self) -> None:
        """Test tolerance and limit overrides."""
        settings = Settings(price_tolerance=1.2, inventory_max_results=3)
        query = build_query(StructuredCriteria(price_max=100000), settings)

        price = next(c for c in query.clauses if c.name == "price_max")
        assert price.params == (pytest.approx(120000), "USD")
        assert query.limit == 3


class TestInventoryResolver:
    def test_location_match_with_wrong_operation_is_excluded(self, repo: PropertyRepository) -> None:
        """A matching zone does not rescue a rental listing."""
        repo.add_property("Casa en venta Candioti", "HOUSE", 120000, zone="Candioti")
        repo.add_property("Casa en alquiler Candioti", "HOUSE", 120000, zone="Candioti")
        repo.add_property("Casa en venta Guadalupe", "HOUSE", 110000, zone="Guadalupe")
        criteria = StructuredCriteria(
            property_type=PropertyType.HOUSE,
            operation=Operation.PURCHASE,
            locations=("Candioti",),
        )

        matches = InventoryResolver(repo).resolve(criteria)

        assert _titles(matches) == ["Casa en venta Candioti"]

    def test_operation_matches_subtype(self, repo: PropertyRepository) -> None:
        """The operation keyword may sit in the subtype."""
        repo.add_property("Hermoso chalet", "HOUSE", 90000, subtype="Venta", zone="Candioti")
        criteria = StructuredCriteria(property_type=PropertyType.HOUSE, locations=("Candioti",))

        assert _titles(InventoryResolver(repo).resolve(criteria)) == ["Hermoso chalet"]

    def test_location_matches_any_location_column(self, repo: PropertyRepository) -> None:
        """Address, zone and title are all searched."""
        repo.add_property("Depto venta", "APARTMENT", 80000, address="Bv. Gálvez 1200, Candioti")
        repo.add_property("Depto venta", "APARTMENT", 81000, zone="Candioti Sur")
        repo.add_property("Depto venta en Candioti", "APARTMENT", 82000)
        repo.add_property("Depto venta", "APARTMENT", 83000, zone="Centro")
        criteria = StructuredCriteria(property_type=PropertyType.APARTMENT, locations=("candioti",))

        assert len(InventoryResolver(repo).resolve(criteria)) == 3

    def test_price_tolerance_band(self, repo: PropertyRepository) -> None:
        """Prices up to 10% over budget are included."""
        repo.add_property("Casa venta A", "HOUSE", 109000)
        repo.add_property("Casa venta B", "HOUSE", 110000)
        repo.add_property("Casa venta C", "HOUSE", 111000)
        criteria = StructuredCriteria(property_type=PropertyType.HOUSE, price_max=100000)

        assert _titles(InventoryResolver(repo).resolve(criteria)) == ["Casa venta A", "Casa venta B"]

    def test_currency_mismatch_is_excluded(self, repo: PropertyRepository) -> None:
        """Prices in another currency never match."""
        repo.add_property("Casa venta en pesos", "HOUSE", 90000, currency="ARS")
        criteria = StructuredCriteria(
            property_type=PropertyType.HOUSE, price_max=100000, currency=Currency.USD
        )

        assert InventoryResolver(repo).resolve(criteria) == []

    def test_unpublished_records_are_excluded(self, repo: PropertyRepository) -> None:
        """Drafts are not offered."""
        repo.add_property("Casa venta borrador", "HOUSE", 90000, status="DRAFT")
        repo.add_property("Casa venta aprobada", "HOUSE", 95000, status="APPROVED")

        matches = InventoryResolver(repo).resolve(StructuredCriteria(property_type=PropertyType.HOUSE))

        assert _titles(matches) == ["Casa venta aprobada"]

    def test_bedroom_minimum(self, repo: PropertyRepository) -> None:
        """Test the bedroom minimum."""
        repo.add_property("Depto venta 1d", "APARTMENT", 60000, bedrooms=1)
        repo.add_property("Depto venta 2d", "APARTMENT", 70000, bedrooms=2)
        criteria = StructuredCriteria(property_type=PropertyType.APARTMENT, bedrooms_min=2)

        assert _titles(InventoryResolver(repo).resolve(criteria)) == ["Depto venta 2d"]

    def test_results_are_capped_and_sorted_by_price(self, repo: PropertyRepository) -> None:
        """Cheapest five first."""
        for price in (90000, 50000, 70000, 60000, 80000, 40000, 100000):
            repo.add_property(f"Casa venta {price}", "HOUSE", price)

        matches = InventoryResolver(repo).resolve(StructuredCriteria(property_type=PropertyType.HOUSE))

        assert [m.price for m in matches] == [40000, 50000, 60000, 70000, 80000]
