"""
Unit Tests for the Reservation Engine

Covers all-or-nothing behaviour, the pre-decrement snapshot and
concurrent reservations against the same SKU.
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from order_intake.errors import InsufficientStock, InvalidRequest, NotFound, UnknownSku
from order_intake.models import Demand


def qty(catalog, sku):
    return catalog.get(sku).qty_available


class TestReserve:
    """Tests for ReservationEngine.reserve"""

    def test_decrements_each_demand(self, reservations, catalog):
        reservations.reserve([Demand(sku="GZM-2", qty=2), Demand(sku="WDG-1", qty=4)])

        assert qty(catalog, "WDG-1") == 6
        assert qty(catalog, "GZM-2") == 1
        assert qty(catalog, "ABC-0") == 50

    def test_returns_snapshot_taken_before_decrement(self, reservations):
        lines = reservations.reserve([Demand(sku="WDG-1", qty=4)])

        assert len(lines) == 1
        line = lines[0]
        assert line.sku == "WDG-1"
        assert line.name == "Widget"
        assert line.price_retail == Decimal("9.00")
        assert line.price_contractor == Decimal("7.00")
        assert line.qty == 4

    def test_exact_remaining_quantity_can_be_reserved(self, reservations, catalog):
        reservations.reserve([Demand(sku="GZM-2", qty=3)])

        assert qty(catalog, "GZM-2") == 0

    def test_insufficient_stock_reports_structured_details(self, reservations, catalog):
        with pytest.raises(InsufficientStock) as exc_info:
            reservations.reserve([Demand(sku="WDG-1", qty=11)])

        assert exc_info.value.details == {"sku": "WDG-1", "requested": 11, "available": 10}
        assert exc_info.value.status_code == 400
        assert qty(catalog, "WDG-1") == 10

    def test_failure_on_later_demand_rolls_back_earlier_ones(self, reservations, catalog):
        with pytest.raises(InsufficientStock):
            reservations.reserve([Demand(sku="ABC-0", qty=5), Demand(sku="GZM-2", qty=9999)])

        assert qty(catalog, "ABC-0") == 50
        assert qty(catalog, "GZM-2") == 3

    def test_unknown_sku_rolls_back(self, reservations, catalog):
        with pytest.raises(UnknownSku) as exc_info:
            reservations.reserve([Demand(sku="ABC-0", qty=5), Demand(sku="NOPE-9", qty=1)])

        assert isinstance(exc_info.value, NotFound)
        assert exc_info.value.details == {"sku": "NOPE-9"}
        assert qty(catalog, "ABC-0") == 50

    def test_duplicate_demands_are_rejected(self, reservations, catalog):
        with pytest.raises(InvalidRequest):
            reservations.reserve([Demand(sku="WDG-1", qty=2), Demand(sku="WDG-1", qty=3)])

        assert qty(catalog, "WDG-1") == 10


class TestConcurrentReservations:
    """Concurrent orders for one SKU never oversell it"""

    def test_no_oversell_under_contention(self, reservations, catalog):
        def attempt(_):
            try:
                reservations.reserve([Demand(sku="WDG-1", qty=3)])
                return True
            except InsufficientStock:
                return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(attempt, range(8)))

        assert outcomes.count(True) == 3
        assert qty(catalog, "WDG-1") == 1

    def test_overlapping_multi_sku_orders(self, reservations, catalog):
        def attempt(_):
            try:
                reservations.reserve([Demand(sku="ABC-0", qty=10), Demand(sku="GZM-2", qty=1)])
                return True
            except InsufficientStock:
                return False

        with ThreadPoolExecutor(max_workers=6) as pool:
            outcomes = list(pool.map(attempt, range(6)))

        # GZM-2 (3 units) is the bottleneck
        assert outcomes.count(True) == 3
        assert qty(catalog, "GZM-2") == 0
        assert qty(catalog, "ABC-0") == 20


class TestRelease:
    """Tests for the compensating release"""

    def test_release_restocks_reserved_lines(self, reservations, catalog):
        lines = reservations.reserve([Demand(sku="GZM-2", qty=2), Demand(sku="WDG-1", qty=4)])

        reservations.release(lines)

        assert qty(catalog, "WDG-1") == 10
        assert qty(catalog, "GZM-2") == 3

    def test_release_skips_deleted_items(self, reservations, catalog):
        lines = reservations.reserve([Demand(sku="GZM-2", qty=1), Demand(sku="WDG-1", qty=1)])
        catalog.delete("GZM-2")

        reservations.release(lines)

        assert qty(catalog, "WDG-1") == 10
