"""
Sale model for product sales.
"""

from sqlalchemy import CheckConstraint, Column, Index, Integer, Numeric, String, Text

from .base import AppendOnlyModel


class Sale(AppendOnlyModel):
    """
    Sale model recording one sale of a product.

    This model is IMMUTABLE after creation - no updated_at field.

    Attributes:
        product_id: Product sold (not a foreign key)
        product_name: Product name snapshot
        quantity: Units sold (> 0)
        unit_price: Price actually charged per unit; may differ from the
            product's selling_price (discounts)
        total_revenue: quantity * unit_price
        customer_name: Optional customer name
        customer_phone: Optional customer phone
        note: Optional free text
        created_by: Actor identifier
    """

    __tablename__ = "sales"

    updated_at = None

    product_id = Column(Integer, nullable=False)
    product_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 4), nullable=False)
    total_revenue = Column(Numeric(16, 4), nullable=False)
    customer_name = Column(String(200), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    note = Column(Text, nullable=True)
    created_by = Column(String(200), nullable=True)

    __table_args__ = (
        Index("idx_sale_product", "product_id"),
        Index("idx_sale_created_at", "created_at"),
        CheckConstraint("quantity > 0", name="ck_sale_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_sale_unit_price_non_negative"),
    )

    def __repr__(self) -> str:
        """String representation of sale."""
        return (
            f"Sale(id={self.id}, product_id={self.product_id}, quantity={self.quantity}, "
            f"total_revenue={self.total_revenue})"
        )
