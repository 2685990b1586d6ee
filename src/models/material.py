"""
Material model for raw inputs consumed by production.

A material is bought in (imported), held as stock, and consumed when
products are packaged according to their formula.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, Index, Integer, Numeric, String

from .base import BaseModel


class Material(BaseModel):
    """
    Material model representing a stocked raw input.

    Attributes:
        name: Material display name (e.g., "Bottle 500ml")
        unit: Unit of measure for stock and formula quantities
        current_stock: On-hand quantity, never negative
        unit_price: Latest import price per unit (last price wins)
        version_id: Optimistic concurrency counter, bumped on every UPDATE

    current_stock is only written by the import, export, production and
    sales services; see material_service.update_material.
    """

    __tablename__ = "materials"

    name = Column(String(200), nullable=False)
    unit = Column(String(50), nullable=False)
    current_stock = Column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    unit_price = Column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        Index("idx_material_name", "name"),
        Index("idx_material_stock", "current_stock"),
        CheckConstraint("current_stock >= 0", name="ck_material_stock_non_negative"),
        CheckConstraint("unit_price >= 0", name="ck_material_unit_price_non_negative"),
    )

    def __repr__(self) -> str:
        """String representation of material."""
        return f"Material(id={self.id}, name='{self.name}', stock={self.current_stock})"

    @property
    def stock_value(self) -> Decimal:
        """Inventory value at the latest unit price."""
        return Decimal(self.current_stock or 0) * Decimal(self.unit_price or 0)
