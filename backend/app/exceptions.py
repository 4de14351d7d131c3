"""
BakeOps - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes for consistent
error handling across the application.

Usage:
    from app.exceptions import NotFoundError, InvalidYieldError

    # In a service
    raise NotFoundError("Recipe", recipe_id)

    # With custom message
    raise ValidationError("Recipe name is required", field="name")
"""
from typing import Any, Dict, List, Optional


class BakeOpsException(Exception):
    """
    Base exception for all BakeOps errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "VALIDATION_ERROR")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "BAKEOPS_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(BakeOpsException):
    """Raised when input validation fails."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details=details)


class InvalidStateError(BakeOpsException):
    """Raised when an operation is invalid for the current state."""

    error_code = "INVALID_STATE"
    status_code = 400

    def __init__(
        self,
        message: str = "Operation not allowed in current state",
        *,
        current_state: Optional[str] = None,
        allowed_states: Optional[list] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if current_state:
            details["current_state"] = current_state
        if allowed_states:
            details["allowed_states"] = allowed_states
        super().__init__(message, details=details)


class DuplicateError(BakeOpsException):
    """Raised when attempting to create a duplicate resource."""

    error_code = "DUPLICATE_ERROR"
    status_code = 400

    def __init__(
        self,
        resource: str = "Resource",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        message = f"{resource} already exists"
        if field and value:
            message = f"{resource} with {field}='{value}' already exists"
        super().__init__(message, details=details)


class TenantRequiredError(BakeOpsException):
    """Raised when a request does not identify its company."""

    error_code = "TENANT_REQUIRED"
    status_code = 400

    def __init__(
        self,
        message: str = "Company identifier is required",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


# ===================
# 403 Forbidden Errors
# ===================


class PermissionDeniedError(BakeOpsException):
    """Raised when an action is not allowed on a resource."""

    error_code = "PERMISSION_DENIED"
    status_code = 403

    def __init__(
        self,
        message: str = "Permission denied",
        *,
        action: Optional[str] = None,
        resource: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if action:
            details["action"] = action
        if resource:
            details["resource"] = resource
        super().__init__(message, details=details)


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(BakeOpsException):
    """Raised when a resource is not found."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 409 Conflict Errors
# ===================


class ConflictError(BakeOpsException):
    """Raised when there's a resource conflict."""

    error_code = "CONFLICT"
    status_code = 409

    def __init__(
        self,
        message: str = "Resource conflict",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


# ===================
# 422 Unprocessable Entity Errors
# ===================


class BusinessRuleError(BakeOpsException):
    """Raised when a business rule is violated."""

    error_code = "BUSINESS_RULE_ERROR"
    status_code = 422

    def __init__(
        self,
        message: str = "Business rule violation",
        *,
        rule: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if rule:
            details["rule"] = rule
        super().__init__(message, details=details)


class InvalidYieldError(BusinessRuleError):
    """Raised when a recipe's yield_kg is missing, zero or negative."""

    error_code = "INVALID_YIELD"

    def __init__(
        self,
        recipe_id: Any = None,
        *,
        recipe_name: Optional[str] = None,
        yield_kg: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if recipe_id is not None:
            details["recipe_id"] = recipe_id
        if recipe_name:
            details["recipe_name"] = recipe_name
        details["yield_kg"] = None if yield_kg is None else str(yield_kg)
        label = f"'{recipe_name}'" if recipe_name else f"#{recipe_id}"
        message = f"Recipe {label} must have a yield greater than zero (got {yield_kg})"
        super().__init__(message, rule="positive_yield", details=details)


class CycleDetectedError(BusinessRuleError):
    """Raised when a recipe reaches itself through its sub-recipes."""

    error_code = "CYCLE_DETECTED"

    def __init__(
        self,
        chain: List[Any],
        *,
        names: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        self.chain = list(chain)
        details["chain"] = self.chain
        if names:
            details["names"] = names
        path = " -> ".join(names) if names else " -> ".join(str(c) for c in self.chain)
        message = f"Sub-recipe cycle detected: {path}"
        super().__init__(message, rule="acyclic_bom", details=details)


class UnitMismatchError(BusinessRuleError):
    """Raised when quantities of the same material use incompatible units."""

    error_code = "UNIT_MISMATCH"

    def __init__(
        self,
        product_name: str,
        *,
        expected_unit: str,
        found_unit: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["product"] = product_name
        details["expected_unit"] = expected_unit
        details["found_unit"] = found_unit
        message = (
            f"Incompatible units for {product_name}: "
            f"'{found_unit}' cannot be added to '{expected_unit}'"
        )
        super().__init__(message, rule="consistent_units", details=details)


class UnresolvedIngredientError(BusinessRuleError):
    """
    An ingredient points at a product or sub-recipe that no longer exists.

    Expansion and roll-up treat this as a warning: the ingredient is skipped
    and the message is reported alongside the result.
    """

    error_code = "UNRESOLVED_INGREDIENT"

    def __init__(
        self,
        ingredient_id: Any,
        *,
        recipe_id: Any = None,
        reference: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["ingredient_id"] = ingredient_id
        if recipe_id is not None:
            details["recipe_id"] = recipe_id
        if reference:
            details["reference"] = reference
        message = f"Ingredient {ingredient_id} of recipe {recipe_id} references a missing {reference or 'item'}"
        super().__init__(message, rule="resolvable_ingredient", details=details)


class ProductTypeMissingError(BusinessRuleError):
    """The product type registry could not provide a required type."""

    error_code = "PRODUCT_TYPE_MISSING"

    def __init__(
        self,
        type_name: str,
        *,
        company_id: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["type_name"] = type_name
        if company_id is not None:
            details["company_id"] = company_id
        message = f"Product type '{type_name}' is not available"
        super().__init__(message, rule="product_type_registered", details=details)
