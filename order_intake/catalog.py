"""
catalog.py — Catalog Store

The Catalog Store is the only owner of inventory rows. Everything it returns to
callers is an immutable `InventoryItem` snapshot; mutable ORM rows only leave
this module through `get_for_update`, and only inside a transaction the caller
already holds (the reservation engine).
"""
from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .database import transaction
from .db_models import InventoryRow
from .errors import DuplicateSku, InvalidRequest, NotFound
from .logging_config import get_logger
from .models import InventoryItem, InventoryItemCreate, InventoryItemUpdate

log = get_logger(__name__)

DEFAULT_SEED_FILE = Path(__file__).resolve().parent / "data" / "inventory.json"

CENT = Decimal("0.01")


def snapshot(row: InventoryRow) -> InventoryItem:
    return InventoryItem(
        sku=row.sku,
        name=row.name,
        category=row.category or "",
        supplier=row.supplier or "",
        notes=row.notes,
        price_retail=Decimal(row.price_retail).quantize(CENT),
        price_contractor=Decimal(row.price_contractor).quantize(CENT),
        qty_available=row.qty_available,
        reorder_point=row.reorder_point or 0,
    )


class CatalogStore:
    """
    Inventory records keyed by SKU on top of a SQLAlchemy session factory.

    Args:
        session_factory: Factory producing sessions bound to the application's engine.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    # --- Reads ---

    def get_all(self) -> List[InventoryItem]:
        """Full catalog, ordered by name (SKU breaks ties)."""
        with self.session_factory() as session:
            rows = session.scalars(select(InventoryRow).order_by(InventoryRow.name, InventoryRow.sku)).all()
            return [snapshot(row) for row in rows]

    def get(self, sku: str) -> InventoryItem:
        with self.session_factory() as session:
            row = session.get(InventoryRow, sku)
            if row is None:
                raise NotFound(f"Item {sku} not found", {"sku": sku})
            return snapshot(row)

    def count(self) -> int:
        with self.session_factory() as session:
            return session.scalar(select(func.count()).select_from(InventoryRow))

    # --- Transactional primitives (caller owns the transaction) ---

    def get_for_update(self, session: Session, sku: str) -> Optional[InventoryRow]:
        """
        Load one row and hold an exclusive lock on it until `session` ends its
        transaction. Returns None when the SKU does not exist.
        """
        stmt = select(InventoryRow).where(InventoryRow.sku == sku).with_for_update()
        return session.scalars(stmt).one_or_none()

    def decrement(self, session: Session, row: InventoryRow, qty: int) -> None:
        # the row must come from get_for_update() on the same session
        row.qty_available = row.qty_available - qty
        session.flush()

    def increment(self, session: Session, row: InventoryRow, qty: int) -> None:
        row.qty_available = row.qty_available + qty
        session.flush()

    # --- Admin CRUD ---

    def create(self, item: InventoryItemCreate) -> InventoryItem:
        try:
            with transaction(self.session_factory) as session:
                if session.get(InventoryRow, item.sku) is not None:
                    raise DuplicateSku(item.sku)
                row = InventoryRow(**item.model_dump())
                session.add(row)
                session.flush()
                created = snapshot(row)
        except IntegrityError as e:
            # lost a race with a concurrent insert of the same SKU
            raise DuplicateSku(item.sku) from e
        log.info(f"Catalog: created {created.sku} ({created.name}), qty {created.qty_available}")
        return created

    def update(self, sku: str, fields: InventoryItemUpdate) -> InventoryItem:
        changes = fields.model_dump(exclude_unset=True)
        new_sku = changes.pop("sku", None)
        if new_sku is not None and new_sku != sku:
            raise InvalidRequest("SKU cannot be changed", {"sku": sku})
        if changes.get("name", "") is None:
            raise InvalidRequest("Name cannot be empty", {"sku": sku})
        for key in ("price_retail", "price_contractor", "qty_available", "reorder_point"):
            if key in changes and changes[key] is None:
                raise InvalidRequest(f"{key} cannot be null", {"sku": sku})
        for key in ("category", "supplier"):
            if key in changes and changes[key] is None:
                changes[key] = ""

        with transaction(self.session_factory) as session:
            row = self.get_for_update(session, sku)
            if row is None:
                raise NotFound(f"Item {sku} not found", {"sku": sku})
            for key, value in changes.items():
                setattr(row, key, value)
            session.flush()
            updated = snapshot(row)
        log.info(f"Catalog: updated {sku} ({', '.join(sorted(changes)) or 'no fields'})")
        return updated

    def delete(self, sku: str) -> None:
        with transaction(self.session_factory) as session:
            row = self.get_for_update(session, sku)
            if row is None:
                raise NotFound(f"Item {sku} not found", {"sku": sku})
            session.delete(row)
        log.info(f"Catalog: deleted {sku}")

    # --- Seeding ---

    def seed_if_empty(self, items: Iterable[InventoryItemCreate]) -> int:
        """
        Bulk upsert `items` when the table holds no rows yet.

        Running it again against a populated table is a no-op, and duplicate SKUs
        inside `items` collapse onto one row (last one wins).

        Returns:
            int: Number of rows written.
        """
        with transaction(self.session_factory) as session:
            if session.scalar(select(func.count()).select_from(InventoryRow)):
                return 0
            by_sku = {item.sku: item for item in items}
            for item in by_sku.values():
                session.merge(InventoryRow(**item.model_dump()))
        log.info(f"Catalog: seeded {len(by_sku)} items")
        return len(by_sku)


def load_seed_items(path: Optional[Path] = None) -> List[InventoryItemCreate]:
    """Read the bundled (or configured) seed dataset."""
    source = Path(path) if path else DEFAULT_SEED_FILE
    with open(source, encoding="utf-8") as fh:
        raw = json.load(fh)
    return [InventoryItemCreate.model_validate(entry) for entry in raw]
