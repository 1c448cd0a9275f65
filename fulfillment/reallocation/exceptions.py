"""
Custom exceptions for the Fulfillment Reallocation Engine.
"""

from typing import Dict, Any


class BusinessException(Exception):
    """Base exception for business logic errors."""

    def __init__(self, message: str, code: str = "BUSINESS_ERROR", details: Dict[str, Any] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class InvalidTransitionException(BusinessException):
    """Raised when attempting an invalid workflow transition."""

    def __init__(self, current_status: str, attempted_status: str, entity_type: str = "order"):
        message = f"Invalid transition for {entity_type}: cannot move from {current_status} to {attempted_status}"
        super().__init__(message, "INVALID_TRANSITION", {
            "current_status": current_status,
            "attempted_status": attempted_status,
            "entity_type": entity_type
        })


class ValidationException(BusinessException):
    """Raised when data validation fails."""

    def __init__(self, message: str, field_errors: Dict[str, Any] = None, code: str = "VALIDATION_ERROR"):
        super().__init__(message, code, field_errors or {})


class NotFoundException(BusinessException):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity_type: str, entity_id, code: str):
        super().__init__(f"{entity_type} {entity_id} not found", code, {
            "entity_type": entity_type,
            "entity_id": str(entity_id)
        })


class NothingToReassignException(BusinessException):
    """Raised when a pick list has no outstanding work left to move."""

    def __init__(self, batch_number: str):
        super().__init__(
            f"Nothing to reassign - pick list {batch_number} is complete",
            "NOTHING_TO_REASSIGN",
            {"batch_number": batch_number}
        )


class NothingToPackException(BusinessException):
    """Raised when every line of an order is already shipped or accounted for."""

    def __init__(self, order_number: str):
        super().__init__(
            f"Nothing to pack for order {order_number}",
            "NOTHING_TO_PACK",
            {"order_number": order_number}
        )


class AlreadyProcessedException(BusinessException):
    """Raised when a back order has already left the PENDING queue."""

    def __init__(self, back_order_id, current_status: str):
        super().__init__(
            f"Back order {back_order_id} is not pending (current status: {current_status})",
            "ALREADY_PROCESSED",
            {"back_order_id": str(back_order_id), "current_status": current_status}
        )


class ConcurrentModificationException(BusinessException):
    """Raised when a pick list changed since the caller last read it."""

    def __init__(self, batch_number: str, expected_version: int, actual_version: int):
        super().__init__(
            f"Pick list {batch_number} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})",
            "STALE_PICKLIST",
            {"expected_version": expected_version, "actual_version": actual_version}
        )


class ConservationViolation(BusinessException):
    """Raised when a reassignment would create or destroy outstanding units."""

    def __init__(self, before: int, after: int):
        super().__init__(
            f"Outstanding quantity changed from {before} to {after}",
            "CONSERVATION_VIOLATION",
            {"before": before, "after": after}
        )


class ImmutableRecordException(BusinessException):
    """Raised when code tries to rewrite an append-only or frozen record."""

    def __init__(self, entity_type: str):
        super().__init__(f"{entity_type} records cannot be modified once created", "IMMUTABLE_RECORD", {
            "entity_type": entity_type
        })
