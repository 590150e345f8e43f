"""
errors.py — Error Taxonomy for the Order Intake Service

Every expected failure of the service is one of the classes below. Each class
carries the HTTP status it maps to and a stable machine-readable `code`; the
top-level exception handler in `main.py` turns them into the JSON envelope

    {"ok": false, "error": "<message>", "code": "<CODE>", "details": {...}}

Anything that is not an `OrderIntakeError` is treated as an internal failure.
"""

from typing import Any, Dict, Optional


class OrderIntakeError(Exception):
    """Base class for all errors that are reported to API clients."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body = {"ok": False, "error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class InvalidRequest(OrderIntakeError):
    status_code = 400
    code = "INVALID_REQUEST"


class Forbidden(OrderIntakeError):
    status_code = 403
    code = "FORBIDDEN"


class AuthenticationRequired(OrderIntakeError):
    status_code = 401
    code = "UNAUTHORIZED"


class InvalidCredentials(AuthenticationRequired):
    code = "INVALID_CREDENTIALS"


class NotFound(OrderIntakeError):
    status_code = 404
    code = "NOT_FOUND"


class UnknownSku(NotFound):
    """A demanded SKU does not exist in the catalog (client error on orders)."""

    status_code = 400
    code = "UNKNOWN_SKU"

    def __init__(self, sku: str):
        super().__init__(f"Unknown SKU: {sku}", {"sku": sku})
        self.sku = sku


class DuplicateSku(OrderIntakeError):
    status_code = 409
    code = "DUPLICATE_SKU"

    def __init__(self, sku: str):
        super().__init__(f"SKU {sku} already exists", {"sku": sku})
        self.sku = sku


class InsufficientStock(OrderIntakeError):
    status_code = 400
    code = "INSUFFICIENT_STOCK"

    def __init__(self, sku: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for SKU {sku}: requested {requested}, available {available}",
            {"sku": sku, "requested": requested, "available": available},
        )
        self.sku = sku
        self.requested = requested
        self.available = available


class InternalError(OrderIntakeError):
    status_code = 500
    code = "INTERNAL_ERROR"
