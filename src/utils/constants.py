"""
Constants for the Pack Tracker application.

This module defines all system-wide constants including:
- Application metadata
- Inventory and reporting thresholds
- Validation limits and error messages
"""

from decimal import Decimal

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Pack Tracker"
APP_VERSION = "0.1.0"
DATABASE_VERSION = "1.0"
DATABASE_FILENAME = "pack_tracker.db"

# ============================================================================
# Inventory Rules
# ============================================================================

# Materials whose stock is strictly below this are reported as low stock
LOW_STOCK_THRESHOLD = Decimal("10")

# Attempts made by run_atomic before surfacing ConflictRetryable
MAX_TRANSACTION_ATTEMPTS = 3

# ============================================================================
# Reporting
# ============================================================================

TOP_SELLING_LIMIT = 5
DASHBOARD_LOW_STOCK_LIMIT = 5
DASHBOARD_ACTIVITY_LIMIT = 10

# Production logs averaged when valuing a product in an inventory snapshot
SNAPSHOT_COST_HISTORY_LIMIT = 10

# ============================================================================
# Validation Limits
# ============================================================================

MAX_NAME_LENGTH = 200
MAX_UNIT_LENGTH = 50
MAX_NOTES_LENGTH = 2000
MAX_CUSTOMER_NAME_LENGTH = 200
MAX_PHONE_LENGTH = 50

# Scale of quantity and price columns; amount columns hold quantity * price unrounded
QUANTITY_DECIMAL_PLACES = 4
AMOUNT_DECIMAL_PLACES = 8

# ============================================================================
# Error Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_NUMBER = "Please enter a valid number"
ERROR_INVALID_POSITIVE = "Value must be greater than zero"
ERROR_INVALID_NON_NEGATIVE = "Value must be zero or greater"
ERROR_INVALID_WHOLE_NUMBER = "Value must be a whole number"
ERROR_TOO_MANY_DECIMALS = f"Value must have at most {QUANTITY_DECIMAL_PLACES} decimal places"
ERROR_EMPTY_FORMULA = "Formula must contain at least one material"
ERROR_STOCK_READ_ONLY = (
    "Stock can only change through imports, production or sales"
)
