"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import AppendOnlyModel, Base, BaseModel, ImmutableRecordError
from .enums import ActivityType, TransactionType
from .material import Material
from .product import FormulaLine, Product
from .material_transaction import MaterialTransaction
from .production_log import ProductionLog, ProductionMaterialUsage
from .sale import Sale
from .inventory_snapshot import InventorySnapshot, SnapshotMaterial, SnapshotProduct

__all__ = [
    "Base",
    "BaseModel",
    "AppendOnlyModel",
    "ImmutableRecordError",
    # Enums
    "ActivityType",
    "TransactionType",
    # Catalog
    "Material",
    "Product",
    "FormulaLine",
    # Ledgers
    "MaterialTransaction",
    "ProductionLog",
    "ProductionMaterialUsage",
    "Sale",
    # Snapshots
    "InventorySnapshot",
    "SnapshotMaterial",
    "SnapshotProduct",
]
