"""ORM model for the inventory table."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class InventoryRow(Base):
    """
    One catalog entry keyed by SKU.

    Attributes:
        sku: Stock keeping unit, primary key, never changed after creation.
        qty_available: Units on hand. The CHECK constraint backs up the
            transactional guard in the reservation engine.
        reorder_point: Informational threshold shown in the admin console.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        CheckConstraint("qty_available >= 0", name="ck_inventory_qty_nonnegative"),
        CheckConstraint("price_retail >= 0", name="ck_inventory_price_retail_nonnegative"),
        CheckConstraint("price_contractor >= 0", name="ck_inventory_price_contractor_nonnegative"),
    )

    sku: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    supplier: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price_retail: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    price_contractor: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    qty_available: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reorder_point: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<InventoryRow sku={self.sku!r} qty_available={self.qty_available}>"
