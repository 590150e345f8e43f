"""Tests for the Catalog Store."""

from decimal import Decimal

import pytest

from order_intake.catalog import load_seed_items
from order_intake.errors import DuplicateSku, InvalidRequest, NotFound
from order_intake.models import InventoryItemCreate, InventoryItemUpdate


def new_item(**overrides):
    data = {"sku": "NEW-1", "name": "Nail Gun", "priceRetail": 199.99, "priceContractor": 179.00,
            "qtyAvailable": 4, "reorderPoint": 1}
    data.update(overrides)
    return InventoryItemCreate.model_validate(data)


class TestReads:

    def test_get_all_is_ordered_by_name(self, catalog):
        assert [item.name for item in catalog.get_all()] == ["Anchor Bolt", "Gizmo", "Widget"]

    def test_get_unknown_sku(self, catalog):
        with pytest.raises(NotFound):
            catalog.get("NOPE")

    def test_snapshots_are_immutable(self, catalog):
        item = catalog.get("WDG-1")
        with pytest.raises(Exception):
            item.qty_available = 0
        assert catalog.get("WDG-1").qty_available == 10


class TestCrud:

    def test_create(self, catalog):
        created = catalog.create(new_item())

        assert created.price_retail == Decimal("199.99")
        assert catalog.get("NEW-1").qty_available == 4

    def test_create_duplicate(self, catalog):
        with pytest.raises(DuplicateSku) as exc_info:
            catalog.create(new_item(sku="WDG-1"))

        assert exc_info.value.status_code == 409
        assert catalog.get("WDG-1").name == "Widget"

    def test_update_changes_only_sent_fields(self, catalog):
        updated = catalog.update("WDG-1", InventoryItemUpdate.model_validate({"qtyAvailable": 25, "notes": "restocked"}))

        assert updated.qty_available == 25
        assert updated.notes == "restocked"
        assert updated.name == "Widget"
        assert updated.price_retail == Decimal("9.00")

    def test_update_unknown_sku(self, catalog):
        with pytest.raises(NotFound):
            catalog.update("NOPE", InventoryItemUpdate(name="x"))

    def test_sku_is_immutable(self, catalog):
        with pytest.raises(InvalidRequest):
            catalog.update("WDG-1", InventoryItemUpdate(sku="WDG-2"))

    def test_update_with_same_sku_is_allowed(self, catalog):
        updated = catalog.update("WDG-1", InventoryItemUpdate(sku="WDG-1", name="Widget Pro"))
        assert updated.name == "Widget Pro"

    def test_delete(self, catalog):
        catalog.delete("GZM-2")

        with pytest.raises(NotFound):
            catalog.get("GZM-2")
        with pytest.raises(NotFound):
            catalog.delete("GZM-2")


class TestSeeding:

    def test_seed_only_when_empty(self, catalog):
        assert catalog.seed_if_empty([new_item()]) == 0
        assert catalog.count() == 3

    def test_seed_empty_store(self, session_factory):
        from order_intake.catalog import CatalogStore

        store = CatalogStore(session_factory)
        written = store.seed_if_empty([new_item(), new_item(qtyAvailable=9), new_item(sku="NEW-2")])

        assert written == 2
        assert store.get("NEW-1").qty_available == 9
        assert store.seed_if_empty([new_item(sku="NEW-3")]) == 0

    def test_bundled_dataset_is_valid(self):
        items = load_seed_items()

        assert len(items) >= 5
        assert len({item.sku for item in items}) == len(items)
        assert all(item.price_contractor <= item.price_retail for item in items)
