"""
Product models for packaged goods and their formulas.

This module contains:
- Product: A sellable good with stock and a selling price
- FormulaLine: One material of a product's bill of materials
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
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class Product(BaseModel):
    """
    Product model representing a packaged, sellable good.

    Attributes:
        name: Product display name (e.g., "Sauce 500ml")
        selling_price: Nominal price per unit
        current_stock: On-hand units, never negative
        version_id: Optimistic concurrency counter

    Relationships:
        formula: Ordered FormulaLine rows (units of material per product unit)
    """

    __tablename__ = "products"

    name = Column(String(200), nullable=False)
    selling_price = Column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    current_stock = Column(Numeric(14, 4), nullable=False, default=Decimal("0"))
    version_id = Column(Integer, nullable=False)

    formula = relationship(
        "FormulaLine",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="FormulaLine.position",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = (
        Index("idx_product_name", "name"),
        CheckConstraint("current_stock >= 0", name="ck_product_stock_non_negative"),
        CheckConstraint("selling_price >= 0", name="ck_product_selling_price_non_negative"),
    )

    def __repr__(self) -> str:
        """String representation of product."""
        return f"Product(id={self.id}, name='{self.name}', stock={self.current_stock})"

    def to_dict(self, include_relationships: bool = False) -> dict:
        """
        Convert product to dictionary.

        The formula is always included since a product is meaningless without it.
        """
        result = super().to_dict(include_relationships)
        result["formula"] = [line.to_dict() for line in self.formula]
        return result


class FormulaLine(BaseModel):
    """
    One line of a product formula.

    Attributes:
        product_id: Owning product
        position: Order of the line within the formula
        material_id: Material consumed
        material_name: Material name captured when the line was written
        quantity: Units of material consumed per unit of product (> 0)
    """

    __tablename__ = "product_formula_lines"

    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    position = Column(Integer, nullable=False, default=0)
    material_id = Column(
        Integer, ForeignKey("materials.id", ondelete="RESTRICT"), nullable=False
    )
    material_name = Column(String(200), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False)

    product = relationship("Product", back_populates="formula")

    __table_args__ = (
        Index("idx_formula_line_product", "product_id"),
        Index("idx_formula_line_material", "material_id"),
        UniqueConstraint("product_id", "material_id", name="uq_formula_line_material"),
        CheckConstraint("quantity > 0", name="ck_formula_line_quantity_positive"),
    )

    def __repr__(self) -> str:
        """String representation of formula line."""
        return (
            f"FormulaLine(product_id={self.product_id}, material_id={self.material_id}, "
            f"quantity={self.quantity})"
        )
