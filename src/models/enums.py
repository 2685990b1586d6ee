"""
Enumerations for inventory tracking.

This module contains enums used across ledger models and reports:
- TransactionType: Direction of a material stock movement
- ActivityType: Kinds of entries in the dashboard activity feed
"""

from enum import Enum


class TransactionType(str, Enum):
    """
    Direction of a MaterialTransaction.

    Values:
        IMPORT: Stock bought in (increases current_stock)
        EXPORT: Stock withdrawn, either consumed by production or taken out manually
    """

    IMPORT = "import"
    EXPORT = "export"


class ActivityType(str, Enum):
    """Kinds of entries shown in the recent activity feed."""

    SALE = "sale"
    PRODUCTION = "production"
    MATERIAL_IMPORT = "material_import"
