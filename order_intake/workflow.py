"""
workflow.py — Core Orchestration Logic for Order Processing

This module contains the main workflow logic for a single order submission.
It coordinates all service interactions in the correct sequence.

Workflow Overview:
1. Validate the request and aggregate cart lines into one demand per SKU
2. Enforce the contractor tier gate
3. Reserve stock via the Reservation Engine (one database transaction)
4. Render the purchase order PDF from the reserved price snapshot
5. Email the purchase order to the store owner and the buyer
6. Return a fresh catalog snapshot

State machine per order:
    Received → Validated → Authorized → Reserved → Documented → Notified → Completed
with Failed reachable from every state before Completed. Reserved is the only
state with a committed side effect.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from .access import ContractorGate
from .catalog import CatalogStore
from .clients import Notifier
from .documents import PurchaseOrder, build_purchase_order
from .errors import Forbidden, InternalError, InvalidRequest, OrderIntakeError
from .models import Demand, InventoryItem, OrderLine, OrderRequest, ReservedLineItem, Tier
from .reservation import ReservationEngine

log = logging.getLogger(__name__)

# Upper bound of the inventory quantity column (32-bit signed integer).
MAX_QUANTITY = 2**31 - 1


class OrderState(str, Enum):
    RECEIVED = "Received"
    VALIDATED = "Validated"
    AUTHORIZED = "Authorized"
    RESERVED = "Reserved"
    DOCUMENTED = "Documented"
    NOTIFIED = "Notified"
    COMPLETED = "Completed"
    FAILED = "Failed"


@dataclass
class OrderServices:
    """Collaborators the workflow needs; built once per application."""
    catalog: CatalogStore
    reservations: ReservationEngine
    contractor_gate: ContractorGate
    notifier: Notifier
    settings: object


@dataclass(frozen=True)
class OrderResult:
    reference: str
    purchase_order: PurchaseOrder
    inventory: List[InventoryItem]


def new_order_reference() -> str:
    return uuid.uuid4().hex[:10].upper()


def parse_quantity(value) -> Optional[int]:
    """
    Interpret a client-supplied quantity.

    Accepts ints, integral floats and integral numeric strings ("3", " 4 ", "2.0").
    Returns None for anything that is not a positive integer up to MAX_QUANTITY.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        qty = value
    else:
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            return None
        if not number.is_finite() or number.adjusted() >= len(str(MAX_QUANTITY)):
            return None
        if number != number.to_integral_value():
            return None
        qty = int(number)
    return qty if 0 < qty <= MAX_QUANTITY else None


def aggregate_items(items: Sequence[OrderLine]) -> List[Demand]:
    """
    Validate cart lines and merge them into one demand per SKU.

    Quantities of repeated SKUs are summed. The result is sorted by SKU so that
    concurrent reservations lock rows in the same order.

    Raises:
        InvalidRequest: A line has no SKU or a quantity that is not a positive integer.
    """
    totals: Dict[str, int] = {}
    for line in items:
        sku = line.sku.strip() if isinstance(line.sku, str) else ""
        if not sku:
            raise InvalidRequest("Invalid SKU: unspecified", {"sku": line.sku})
        qty = parse_quantity(line.qty)
        if qty is None:
            raise InvalidRequest(f"Invalid quantity for SKU {sku}", {"sku": sku})
        totals[sku] = totals.get(sku, 0) + qty
    return [Demand(sku=sku, qty=qty) for sku, qty in sorted(totals.items())]


def _advance(log_prefix: str, state: OrderState) -> OrderState:
    log.info(f"{log_prefix} -> {state.value}")
    return state


def _compensate(log_prefix: str, services: OrderServices, reserved: Sequence[ReservedLineItem]) -> None:
    log.info(f"{log_prefix} Compensation: releasing reserved stock.")
    try:
        services.reservations.release(reserved)
        log.info(f"{log_prefix} Compensation succeeded.")
    except Exception as comp_e:
        log.critical(f"{log_prefix} COMPENSATION FAILED: {comp_e}. Stock must be corrected manually!",
                     exc_info=True)


def _notification_text(order: OrderRequest, store_name: str):
    subject = f"New Order — {store_name} — {order.name} ({order.company or 'N/A'})"
    body = (
        f"New order received for {store_name}. PO attached. "
        f"Contact: {order.name} ({order.email}, {order.phone or 'no phone'})."
    )
    return subject, body


def process_order_workflow(order: OrderRequest, services: OrderServices) -> OrderResult:
    """
    Executes the complete processing workflow for a single order.

    Args:
        order (OrderRequest): The submitted cart with buyer contact fields.
        services (OrderServices): Catalog, reservation engine, contractor gate, notifier and settings.

    Returns:
        OrderResult: Order reference, the priced purchase order and the post-reservation catalog.

    Raises:
        InvalidRequest: Missing name/email/items, or an invalid cart line.
        Forbidden: Contractor tier without a valid contractor token.
        UnknownSku / InsufficientStock: Reservation rejected; no stock was changed.
        InternalError: Persistence, document or mail failure.

    Compensation:
        Once stock is reserved the transaction is final. Only with
        RELEASE_ON_NOTIFY_FAILURE enabled does a document or mail failure put the
        reserved units back.
    """
    settings = services.settings
    reference = new_order_reference()
    log_prefix = f"[Order: {reference}]"

    state = _advance(log_prefix, OrderState.RECEIVED)
    reserved: Optional[List[ReservedLineItem]] = None

    try:
        # --- 1. Validation & aggregation ---
        if not (order.name or "").strip() or not (order.email or "").strip() or not order.items:
            raise InvalidRequest("Missing name/email/items")
        demands = aggregate_items(order.items)
        state = _advance(log_prefix, OrderState.VALIDATED)

        # --- 2. Tier gate ---
        tier = Tier.parse(order.tier)
        if tier is Tier.CONTRACTOR and not services.contractor_gate.validate(order.auth_token):
            raise Forbidden("Contractor login required")
        state = _advance(log_prefix, OrderState.AUTHORIZED)

        # --- 3. Reservation ---
        log.info(f"{log_prefix} Reserving " + ", ".join(f"{d.sku} x{d.qty}" for d in demands))
        try:
            reserved = services.reservations.reserve(demands)
        except SQLAlchemyError as e:
            log.error(f"{log_prefix} Reservation failed in the database: {e}")
            raise InternalError("Inventory could not be updated") from e
        state = _advance(log_prefix, OrderState.RESERVED)

        # --- 4. Purchase order ---
        try:
            purchase_order = build_purchase_order(
                reference, order, reserved, tier,
                tax_rate=settings.TAX_RATE,
                store_name=settings.STORE_NAME,
                logo_path=settings.LOGO_PATH,
            )
        except Exception as e:
            log.error(f"{log_prefix} Purchase order generation failed: {e}", exc_info=True)
            raise InternalError("Purchase order could not be generated") from e
        state = _advance(log_prefix, OrderState.DOCUMENTED)

        # --- 5. Notification ---
        recipients = [settings.OWNER_EMAIL]
        if order.email.strip().lower() != settings.OWNER_EMAIL.lower():
            recipients.append(order.email.strip())
        subject, body = _notification_text(order, settings.STORE_NAME)
        try:
            services.notifier.send_purchase_order(
                recipients, subject, body, purchase_order.pdf, purchase_order.filename
            )
        except Exception as e:
            log.error(f"{log_prefix} Purchase order could not be mailed: {e}")
            raise InternalError("Order email could not be sent") from e
        state = _advance(log_prefix, OrderState.NOTIFIED)

        # --- 6. Response ---
        try:
            inventory = services.catalog.get_all()
        except SQLAlchemyError as e:
            log.error(f"{log_prefix} Catalog snapshot failed after a completed order: {e}")
            raise InternalError("Inventory not available") from e
        _advance(log_prefix, OrderState.COMPLETED)
        return OrderResult(reference=reference, purchase_order=purchase_order, inventory=inventory)

    except OrderIntakeError as e:
        level = logging.ERROR if isinstance(e, InternalError) else logging.WARNING
        log.log(level, f"{log_prefix} -> {OrderState.FAILED.value} in {state.value}: {e.message}")
        if (reserved is not None and settings.RELEASE_ON_NOTIFY_FAILURE
                and state in (OrderState.RESERVED, OrderState.DOCUMENTED)):
            _compensate(log_prefix, services, reserved)
        elif reserved is not None and state is not OrderState.NOTIFIED:
            log.warning(f"{log_prefix} Stock stays reserved although the order failed after reservation.")
        raise
