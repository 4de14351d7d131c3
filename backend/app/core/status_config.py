"""Status Configuration and Transition Rules

This module defines valid status values and allowed transitions for
Production Orders, plus the inventory transaction types. Status transitions
are validated to prevent invalid state changes.
"""
from enum import Enum
from typing import Dict, List, Set

from app.exceptions import InvalidStateError


# =============================================================================
# Production Order Status
# =============================================================================

class ProductionOrderStatus(str, Enum):
    """Valid status values for Production Orders"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Allowed transitions: current_status -> set of allowed next statuses
PRODUCTION_ORDER_TRANSITIONS: Dict[str, Set[str]] = {
    ProductionOrderStatus.PENDING: {
        ProductionOrderStatus.IN_PROGRESS,
        ProductionOrderStatus.COMPLETED,
        ProductionOrderStatus.CANCELLED,
    },
    ProductionOrderStatus.IN_PROGRESS: {
        ProductionOrderStatus.PENDING,
        ProductionOrderStatus.COMPLETED,
        ProductionOrderStatus.CANCELLED,
    },
    ProductionOrderStatus.COMPLETED: set(),  # Terminal state - no transitions allowed
    ProductionOrderStatus.CANCELLED: set(),  # Terminal state
}

# Orders whose lines may still be edited
EDITABLE_PRODUCTION_ORDER_STATUSES = {
    ProductionOrderStatus.PENDING.value,
    ProductionOrderStatus.IN_PROGRESS.value,
}


def get_allowed_production_order_transitions(current_status: str) -> List[str]:
    """Get list of allowed next statuses for a production order"""
    return sorted(s.value for s in PRODUCTION_ORDER_TRANSITIONS.get(current_status, set()))


def is_valid_production_order_transition(current_status: str, new_status: str) -> bool:
    """Check if a production order status transition is valid"""
    if current_status == new_status:
        return True  # No change is always valid
    allowed = PRODUCTION_ORDER_TRANSITIONS.get(current_status, set())
    return new_status in allowed


# =============================================================================
# Inventory Transactions
# =============================================================================

class TransactionType(str, Enum):
    """Direction of an inventory movement"""
    IN = "in"
    OUT = "out"


class TransactionReason(str, Enum):
    PURCHASE = "purchase"
    PRODUCTION = "production"
    CONSUMPTION = "consumption"
    ADJUSTMENT = "adjustment"


# =============================================================================
# Validation Helpers
# =============================================================================

class StatusTransitionError(InvalidStateError):
    """Raised when an invalid status transition is attempted"""

    error_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, entity: str, current: str, requested: str, allowed: List[str]):
        self.entity = entity
        self.current = current
        self.requested = requested
        self.allowed = allowed
        super().__init__(
            f"Invalid {entity} status transition: '{current}' -> '{requested}'. "
            f"Allowed: {allowed if allowed else 'none (terminal state)'}",
            current_state=current,
            allowed_states=allowed,
            details={"requested_state": requested},
        )


def validate_production_order_transition(current: str, new: str) -> None:
    """Validate and raise error if transition is invalid"""
    if not is_valid_production_order_transition(current, new):
        raise StatusTransitionError(
            "production order",
            current,
            new,
            get_allowed_production_order_transitions(current)
        )
