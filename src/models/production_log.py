"""
ProductionLog models for packaging runs.

This module contains:
- ProductionLog: One production (packaging) run of a product
- ProductionMaterialUsage: Material consumed by a run, priced at run time

Formula quantities and material prices are captured when the run is
recorded; later formula edits or imports never change these rows.
"""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .base import AppendOnlyModel


class ProductionLog(AppendOnlyModel):
    """
    ProductionLog model for a production run.

    This model is IMMUTABLE after creation - no updated_at field.

    Attributes:
        product_id: Product produced (not a foreign key, see MaterialTransaction)
        product_name: Product name snapshot
        quantity_produced: Units added to product stock (> 0)
        total_cost: Sum of quantity_used * unit_price over materials_used
        cost_per_unit: total_cost / quantity_produced
        note: Optional production notes
        created_by: Actor identifier
    """

    __tablename__ = "production_logs"

    # Override BaseModel's updated_at - production logs are immutable
    updated_at = None

    product_id = Column(Integer, nullable=False)
    product_name = Column(String(200), nullable=False)
    quantity_produced = Column(Integer, nullable=False)
    total_cost = Column(Numeric(20, 8), nullable=False, default=Decimal("0"))
    cost_per_unit = Column(Numeric(20, 8), nullable=False, default=Decimal("0"))
    note = Column(Text, nullable=True)
    created_by = Column(String(200), nullable=True)

    materials_used = relationship(
        "ProductionMaterialUsage",
        back_populates="production_log",
        order_by="ProductionMaterialUsage.id",
        lazy="selectin",
    )
    material_transactions = relationship(
        "MaterialTransaction",
        back_populates="production_log",
    )

    __table_args__ = (
        Index("idx_production_log_product", "product_id"),
        Index("idx_production_log_created_at", "created_at"),
        CheckConstraint("quantity_produced > 0", name="ck_production_log_quantity_positive"),
        CheckConstraint("total_cost >= 0", name="ck_production_log_total_cost_non_negative"),
        CheckConstraint("cost_per_unit >= 0", name="ck_production_log_cost_per_unit_non_negative"),
    )

    def __repr__(self) -> str:
        """String representation of production log."""
        return (
            f"ProductionLog(id={self.id}, product_id={self.product_id}, "
            f"quantity_produced={self.quantity_produced})"
        )

    def computed_total_cost(self) -> Decimal:
        """Rebuild total cost from the usage rows."""
        return sum(
            (usage.line_cost for usage in self.materials_used),
            Decimal("0"),
        )

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert production log to dictionary.

        materials_used is always included; it is part of the log entry.
        """
        result = super().to_dict(include_relationships)
        result["materials_used"] = [
            {
                "material_id": usage.material_id,
                "material_name": usage.material_name,
                "quantity_used": usage.quantity_used,
                "unit_price": usage.unit_price,
            }
            for usage in self.materials_used
        ]
        return result


class ProductionMaterialUsage(AppendOnlyModel):
    """
    Material consumed by one production run.

    Attributes:
        production_log_id: Parent ProductionLog
        material_id: Material consumed (not a foreign key)
        material_name: Material name snapshot
        quantity_used: formula quantity * quantity produced
        unit_price: Material unit price at production time
    """

    __tablename__ = "production_material_usages"

    updated_at = None

    production_log_id = Column(
        Integer,
        ForeignKey("production_logs.id", ondelete="RESTRICT"),
        nullable=False,
    )
    material_id = Column(Integer, nullable=False)
    material_name = Column(String(200), nullable=False)
    quantity_used = Column(Numeric(14, 4), nullable=False)
    unit_price = Column(Numeric(14, 4), nullable=False)

    production_log = relationship("ProductionLog", back_populates="materials_used")

    __table_args__ = (
        Index("idx_production_usage_log", "production_log_id"),
        Index("idx_production_usage_material", "material_id"),
        CheckConstraint("quantity_used > 0", name="ck_production_usage_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_production_usage_price_non_negative"),
    )

    @property
    def line_cost(self) -> Decimal:
        return Decimal(self.quantity_used) * Decimal(self.unit_price)
