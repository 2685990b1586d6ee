"""Service layer exception classes for Pack Tracker.

This module defines all custom exceptions used by the service layer to provide
consistent error handling across the application.

Exception Hierarchy:
    ServiceError (base)
    ├── NotFound
    │   ├── MaterialNotFound
    │   ├── ProductNotFound
    │   └── ProductionLogNotFound
    ├── InsufficientStock
    ├── InvalidInput
    ├── ConflictRetryable
    ├── MaterialInUse
    └── DatabaseError

ImmutableRecordError (raised by the model layer on ledger updates) is
re-exported here.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

from src.models.base import ImmutableRecordError  # noqa: F401


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class NotFound(ServiceError):
    """Raised when a referenced entity does not exist at transaction time.

    Args:
        entity: Entity kind ("Material", "Product", ...)
        identifier: The id that was looked up
    """

    def __init__(self, entity: str, identifier):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} with ID {identifier} not found")


class MaterialNotFound(NotFound):
    """Raised when a material cannot be found by ID.

    Example:
        >>> raise MaterialNotFound(12)
        MaterialNotFound: Material with ID 12 not found
    """

    def __init__(self, material_id):
        self.material_id = material_id
        super().__init__("Material", material_id)


class ProductNotFound(NotFound):
    """Raised when a product cannot be found by ID.

    Example:
        >>> raise ProductNotFound(123)
        ProductNotFound: Product with ID 123 not found
    """

    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__("Product", product_id)


class ProductionLogNotFound(NotFound):
    """Raised when a production log cannot be found by ID."""

    def __init__(self, production_log_id):
        self.production_log_id = production_log_id
        super().__init__("ProductionLog", production_log_id)


@dataclass(frozen=True)
class Shortage:
    """One stock field that cannot cover a requested decrement."""

    entity: str
    entity_id: Optional[int]
    name: str
    required: Decimal
    available: Decimal

    @property
    def short_by(self) -> Decimal:
        return self.required - self.available

    def describe(self) -> str:
        return f"{self.name}: required {self.required}, available {self.available}"


class InsufficientStock(ServiceError):
    """Raised when a decrement would drive a stock field negative.

    Args:
        shortages: One Shortage per deficient material or product

    Example:
        >>> raise InsufficientStock([Shortage("Product", 1, "Sauce", Decimal(15), Decimal(10))])
        InsufficientStock: Insufficient stock for Sauce: required 15, available 10
    """

    def __init__(self, shortages: Iterable[Shortage]):
        self.shortages: List[Shortage] = list(shortages)
        details = "; ".join(s.describe() for s in self.shortages)
        super().__init__(f"Insufficient stock for {details}")

    @property
    def entity_ids(self) -> List[Optional[int]]:
        return [s.entity_id for s in self.shortages]


class InvalidInput(ServiceError):
    """Raised when input validation fails.

    Args:
        errors: Human-readable messages, one per problem
    """

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(f"Validation failed: {'; '.join(self.errors)}")


class ConflictRetryable(ServiceError):
    """Raised when concurrent writers kept invalidating a transaction.

    The operation can be retried from scratch by the caller.

    Args:
        operation: Name of the service operation
        attempts: Number of attempts made before giving up
    """

    def __init__(self, operation: str, attempts: int, original_error: Exception = None):
        self.operation = operation
        self.attempts = attempts
        self.original_error = original_error
        super().__init__(
            f"{operation} conflicted with a concurrent update after {attempts} attempt(s)"
        )


class MaterialInUse(ServiceError):
    """Raised when deleting a material that product formulas still reference."""

    def __init__(self, material_id: int, product_names: List[str]):
        self.material_id = material_id
        self.product_names = list(product_names)
        super().__init__(
            f"Cannot delete material {material_id}: used in formula of "
            f"{', '.join(self.product_names)}"
        )


class DatabaseError(ServiceError):
    """Raised when a database operation fails for a non-retryable reason."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
