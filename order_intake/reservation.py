"""
reservation.py — Reservation Engine

Turns a set of stock demands into decremented inventory rows inside a single
transaction, or changes nothing at all.

Every row is read with an exclusive lock and decremented while that lock is
still held, so two concurrent orders touching the same SKU are serialized by
the database and can never push `qty_available` below zero. Callers must pass
one demand per SKU, sorted by SKU, so that overlapping orders always acquire
their locks in the same order.
"""
from __future__ import annotations

from typing import List, Sequence

from sqlalchemy.orm import Session, sessionmaker

from .catalog import CatalogStore
from .database import transaction
from .errors import InsufficientStock, InvalidRequest, UnknownSku
from .logging_config import get_logger
from .models import Demand, ReservedLineItem

log = get_logger(__name__)


class ReservationEngine:
    """
    All-or-nothing stock reservation across a demand set.

    Args:
        catalog (CatalogStore): Provides locked reads and in-place decrements.
        session_factory: Source of the per-call transaction.
    """

    def __init__(self, catalog: CatalogStore, session_factory: sessionmaker[Session]):
        self.catalog = catalog
        self.session_factory = session_factory

    def reserve(self, demands: Sequence[Demand]) -> List[ReservedLineItem]:
        """
        Reserve every demand or none of them.

        Args:
            demands: One aggregated demand per SKU, in lock order.

        Returns:
            List[ReservedLineItem]: One line per demand carrying the item's name and
            prices as they were before the decrement, plus the granted quantity.

        Raises:
            UnknownSku: A demanded SKU has no catalog row.
            InsufficientStock: A row holds fewer units than demanded.
            InvalidRequest: The same SKU appears twice in `demands`.
            sqlalchemy.exc.SQLAlchemyError: Any persistence failure.
            In every case the transaction is rolled back and no stock changes.
        """
        seen = set()
        for demand in demands:
            if demand.sku in seen:
                raise InvalidRequest(f"Duplicate demand for SKU {demand.sku}", {"sku": demand.sku})
            seen.add(demand.sku)

        with transaction(self.session_factory) as session:
            reserved = []
            for demand in demands:
                row = self.catalog.get_for_update(session, demand.sku)
                if row is None:
                    raise UnknownSku(demand.sku)
                if row.qty_available < demand.qty:
                    raise InsufficientStock(demand.sku, demand.qty, row.qty_available)

                reserved.append(ReservedLineItem(
                    sku=row.sku,
                    name=row.name,
                    price_retail=row.price_retail,
                    price_contractor=row.price_contractor,
                    qty=demand.qty,
                ))
                self.catalog.decrement(session, row, demand.qty)

        log.info("Reserved " + ", ".join(f"{line.sku} x{line.qty}" for line in reserved))
        return reserved

    def release(self, lines: Sequence[ReservedLineItem]) -> None:
        """
        Compensation: put previously reserved units back on the shelf.

        Lines whose SKU has since been deleted are skipped with a warning.
        Raises on persistence failures; the caller decides how loudly to report it.
        """
        with transaction(self.session_factory) as session:
            for line in sorted(lines, key=lambda l: l.sku):
                row = self.catalog.get_for_update(session, line.sku)
                if row is None:
                    log.warning(f"Release skipped: SKU {line.sku} no longer exists ({line.qty} units)")
                    continue
                self.catalog.increment(session, row, line.qty)

        log.info("Released " + ", ".join(f"{line.sku} x{line.qty}" for line in lines))
