"""
models.py — Data Models for Order Intake

This module defines the data structures exchanged with API clients and passed
between the service components. It uses Pydantic models to validate incoming
data at the HTTP boundary and to hand immutable snapshots around internally.

JSON payloads use camelCase keys (`priceRetail`, `qtyAvailable`, `authToken`);
the Python side uses snake_case attribute names.

Models:
    - InventoryItem: Read-only snapshot of one catalog entry.
    - InventoryItemCreate / InventoryItemUpdate: Admin CRUD payloads.
    - OrderLine / OrderRequest: Shopping-cart submission.
    - Demand: One aggregated (sku, qty) pair handed to the reservation engine.
    - ReservedLineItem: Price/name snapshot of a granted reservation.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Prices are Decimals internally and plain JSON numbers on the wire.
Money = Annotated[
    Decimal,
    Field(ge=0),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class Tier(str, Enum):
    """Pricing category selecting which catalog price applies."""
    RETAIL = "retail"
    CONTRACTOR = "contractor"

    @classmethod
    def parse(cls, value) -> "Tier":
        """Only the exact string "contractor" selects contractor pricing."""
        if value == cls.CONTRACTOR.value:
            return cls.CONTRACTOR
        return cls.RETAIL


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Catalog ---

class InventoryItem(CamelModel):
    """
    Immutable snapshot of one catalog entry as returned by the Catalog Store.

    Attributes:
        sku (str): Unique stock keeping unit.
        name (str): Display name.
        category (str): Free-form grouping used by the storefront.
        supplier (str): Supplier name.
        notes (str | None): Free text for the admin console.
        price_retail (Decimal): Unit price for the retail tier.
        price_contractor (Decimal): Unit price for the contractor tier.
        qty_available (int): Units on hand, never negative.
        reorder_point (int): Informational reorder threshold.
    """
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True, frozen=True
    )

    sku: str
    name: str
    category: str = ""
    supplier: str = ""
    notes: Optional[str] = None
    price_retail: Money
    price_contractor: Money
    qty_available: int = Field(ge=0)
    reorder_point: int = Field(default=0, ge=0)


class InventoryItemCreate(CamelModel):
    """Admin payload for a new catalog entry."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    sku: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    category: str = ""
    supplier: str = ""
    notes: Optional[str] = None
    price_retail: Money = Decimal("0")
    price_contractor: Money = Decimal("0")
    qty_available: int = Field(default=0, ge=0)
    reorder_point: int = Field(default=0, ge=0)


class InventoryItemUpdate(CamelModel):
    """Admin payload for editing an entry; only the fields sent are changed."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    sku: Optional[str] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category: Optional[str] = None
    supplier: Optional[str] = None
    notes: Optional[str] = None
    price_retail: Optional[Money] = None
    price_contractor: Optional[Money] = None
    qty_available: Optional[int] = Field(default=None, ge=0)
    reorder_point: Optional[int] = Field(default=None, ge=0)


# --- Orders ---

class OrderLine(BaseModel):
    """
    One cart entry as submitted by the client.

    Both fields are accepted loosely here; the order workflow decides whether
    they describe a valid demand so that it can report the offending SKU.
    """
    sku: Optional[str] = None
    qty: Optional[Union[int, float, str]] = None


class OrderRequest(CamelModel):
    """
    A shopping-cart order submission.

    Attributes:
        company, name, email, phone, address (str | None): Buyer contact fields.
        po (str | None): Buyer's PO / job reference.
        tier (str | None): "contractor" or anything else (retail).
        items (List[OrderLine] | None): Requested SKUs; duplicates are allowed.
        auth_token (str | None): Contractor session token (JSON key `authToken`).
    """
    company: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    po: Optional[str] = None
    tier: Optional[str] = None
    items: Optional[List[OrderLine]] = None
    auth_token: Optional[str] = None


class Demand(BaseModel):
    """An aggregated request for `qty` units of `sku`."""
    model_config = ConfigDict(frozen=True)

    sku: str
    qty: int = Field(gt=0)


class ReservedLineItem(BaseModel):
    """Snapshot of an item's name and prices at reservation time plus the granted qty."""
    model_config = ConfigDict(frozen=True)

    sku: str
    name: str
    price_retail: Decimal
    price_contractor: Decimal
    qty: int

    def unit_price(self, tier: Tier) -> Decimal:
        return self.price_contractor if tier is Tier.CONTRACTOR else self.price_retail


# --- Access gate payloads ---

class ContractorLoginRequest(BaseModel):
    email: Optional[str] = None
    code: Optional[str] = None


class TokenRequest(BaseModel):
    token: Optional[str] = None


class AdminLoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
