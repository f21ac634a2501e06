# Overview: Domain error taxonomy shared by services and routes.

"""
Domain errors.

Every error raised on purpose by the service layer derives from PosError and
knows its HTTP status. Routes render them with to_dict(); anything else is an
unexpected failure and is answered with a generic 500.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for errors surfaced to API callers."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(PosError):
    """400-level input problem. Carries field-level messages."""
    status_code = 400

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_fields(cls, errors: list[dict]) -> "ValidationError":
        if len(errors) == 1:
            return cls(errors[0]["message"], errors)
        return cls("Invalid request payload", errors)

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.errors:
            body["errors"] = self.errors
        return body


class NotFoundError(PosError):
    status_code = 404


class ForbiddenError(PosError):
    status_code = 403


class UnauthorizedError(PosError):
    status_code = 401


class ConflictError(PosError):
    """409-level business rule conflict (e.g., duplicate product name)."""
    status_code = 409


class InsufficientStockError(PosError):
    """Requested quantity exceeds the product's current stock."""
    status_code = 400

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product: {product_name}. Available: {available}",
            details={
                "productId": product_id,
                "productName": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


class ServerError(PosError):
    """Unexpected failure; message stays generic."""
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
