"""
Inventory Snapshot models for point-in-time inventory valuation.

This module contains:
- InventorySnapshot: One valuation per calendar date
- SnapshotMaterial: Material stock and value at snapshot time
- SnapshotProduct: Product stock and value at snapshot time
"""

from decimal import Decimal

from sqlalchemy import Column, Date, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class InventorySnapshot(BaseModel):
    """
    Inventory snapshot capturing stock levels and values on a date.

    Attributes:
        snapshot_date: Calendar date the snapshot describes (unique)
        total_material_value: Sum of material line values
        total_product_value: Sum of product line values
    """

    __tablename__ = "inventory_snapshots"

    snapshot_date = Column(Date, nullable=False, unique=True)
    total_material_value = Column(Numeric(20, 8), nullable=False, default=Decimal("0"))
    total_product_value = Column(Numeric(20, 8), nullable=False, default=Decimal("0"))

    materials = relationship(
        "SnapshotMaterial",
        back_populates="snapshot",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    products = relationship(
        "SnapshotProduct",
        back_populates="snapshot",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (Index("idx_snapshot_date", "snapshot_date"),)

    def __repr__(self) -> str:
        """String representation of snapshot."""
        return f"InventorySnapshot(id={self.id}, date='{self.snapshot_date}')"

    def to_dict(self, include_relationships: bool = False) -> dict:
        result = super().to_dict(include_relationships)
        result["snapshot_date"] = self.snapshot_date.isoformat() if self.snapshot_date else None
        result["materials"] = [line.to_dict() for line in self.materials]
        result["products"] = [line.to_dict() for line in self.products]
        return result


class SnapshotMaterial(BaseModel):
    """Material line of an inventory snapshot."""

    __tablename__ = "snapshot_materials"

    snapshot_id = Column(
        Integer, ForeignKey("inventory_snapshots.id", ondelete="CASCADE"), nullable=False
    )
    material_id = Column(Integer, nullable=False)
    material_name = Column(String(200), nullable=False)
    stock = Column(Numeric(14, 4), nullable=False)
    value = Column(Numeric(20, 8), nullable=False)

    snapshot = relationship("InventorySnapshot", back_populates="materials")

    __table_args__ = (Index("idx_snapshot_material_snapshot", "snapshot_id"),)


class SnapshotProduct(BaseModel):
    """Product line of an inventory snapshot."""

    __tablename__ = "snapshot_products"

    snapshot_id = Column(
        Integer, ForeignKey("inventory_snapshots.id", ondelete="CASCADE"), nullable=False
    )
    product_id = Column(Integer, nullable=False)
    product_name = Column(String(200), nullable=False)
    stock = Column(Numeric(14, 4), nullable=False)
    value = Column(Numeric(20, 8), nullable=False)

    snapshot = relationship("InventorySnapshot", back_populates="products")

    __table_args__ = (Index("idx_snapshot_product_snapshot", "snapshot_id"),)
