"""Services package - Business logic layer for Pack Tracker.

This package contains all service modules that provide business logic
and database operations for the application.

Architecture:
- Services: Stateless functions organized by domain (material, product, production, sales)
- Transactions: session_scope() for plain reads/writes, run_atomic() for
  stock-moving operations that must commit all-or-nothing and retry on conflict
- Exceptions: Consistent error handling via ServiceError hierarchy
- Validation: Input validation before database operations

Service Modules:
- material_service: Material catalog CRUD and low-stock queries
- product_service: Product catalog and formula management
- stock_validator: Pure stock sufficiency checks for a formula
- material_transaction_service: Material imports, exports and ledger queries
- production_service: Packaging runs that convert materials into product stock
- sales_service: Product sales and revenue queries
- report_service: Financial and inventory metrics, dashboard stats
- inventory_snapshot_service: Point-in-time inventory valuation

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- database: Session management and database utilities
- logging_utils: Structured operation logging
"""

# Service modules
from . import (
    database,
    material_service,
    product_service,
    stock_validator,
    material_transaction_service,
    production_service,
    sales_service,
    report_service,
    inventory_snapshot_service,
)

# Exceptions
from .exceptions import (
    ServiceError,
    NotFound,
    MaterialNotFound,
    ProductNotFound,
    ProductionLogNotFound,
    Shortage,
    InsufficientStock,
    InvalidInput,
    ConflictRetryable,
    MaterialInUse,
    DatabaseError,
    ImmutableRecordError,
)

__all__ = [
    # Modules
    "database",
    "material_service",
    "product_service",
    "stock_validator",
    "material_transaction_service",
    "production_service",
    "sales_service",
    "report_service",
    "inventory_snapshot_service",
    # Exceptions
    "ServiceError",
    "NotFound",
    "MaterialNotFound",
    "ProductNotFound",
    "ProductionLogNotFound",
    "Shortage",
    "InsufficientStock",
    "InvalidInput",
    "ConflictRetryable",
    "MaterialInUse",
    "DatabaseError",
    "ImmutableRecordError",
]
