"""
Typed errors raised by the inventory and sales services.

Every error carries a machine-readable ``code`` and an HTTP status so the
API layer can translate it without parsing messages:

    TextileInventoryError
    +-- ValidationError             400  VALIDATION_ERROR
    +-- NotFoundError               404  NOT_FOUND
    +-- InsufficientQuantityError   400  INSUFFICIENT_QUANTITY
    +-- DependentRecordsError       400  HAS_DEPENDENTS
"""

from typing import Any, Optional


class TextileInventoryError(Exception):
    code: str = "TEXTILE_INVENTORY_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(TextileInventoryError):
    """Missing or malformed input: required fields, enum values, ids."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(TextileInventoryError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found", details={"id": entity_id})


class InsufficientQuantityError(TextileInventoryError):
    """An outbound movement would take an item below zero."""

    code = "INSUFFICIENT_QUANTITY"
    status_code = 400

    def __init__(self, inventory_id: int, available: int, requested: int):
        self.inventory_id = inventory_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient inventory quantity. Available: {available}, Requested: {requested}",
            details={"inventoryId": inventory_id, "available": available, "requested": requested},
        )


class DependentRecordsError(TextileInventoryError):
    """Delete refused because other records still point at the entity."""

    code = "HAS_DEPENDENTS"
    status_code = 400

    def __init__(self, entity: str, dependents: str, count: int):
        self.entity = entity
        self.dependents = dependents
        self.count = count
        super().__init__(
            f"Cannot delete {entity} with existing {dependents}",
            details={dependents: count},
        )
