"""
MaterialTransaction model for the material stock ledger.

Every import, manual export and production consumption of a material is
recorded here with the price in effect at that moment.
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
from .enums import TransactionType


class MaterialTransaction(AppendOnlyModel):
    """
    MaterialTransaction model for material stock movements.

    This model is IMMUTABLE after creation - no updated_at field.

    Note: material_id is not a foreign key so the ledger survives material
    deletion; material_name is the name at transaction time.

    Attributes:
        material_id: Material that moved
        material_name: Material name snapshot
        transaction_type: 'import' or 'export'
        quantity: Units moved (> 0)
        unit_price: Price per unit at transaction time
        total_amount: quantity * unit_price
        note: Optional free text
        created_by: Actor identifier from the identity provider
        production_log_id: Set when the export was consumed by production
    """

    __tablename__ = "material_transactions"

    # Override BaseModel's updated_at - ledger rows are immutable
    updated_at = None

    material_id = Column(Integer, nullable=False)
    material_name = Column(String(200), nullable=False)
    transaction_type = Column(String(20), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False)
    unit_price = Column(Numeric(14, 4), nullable=False)
    total_amount = Column(Numeric(20, 8), nullable=False)
    note = Column(Text, nullable=True)
    created_by = Column(String(200), nullable=True)
    production_log_id = Column(
        Integer,
        ForeignKey("production_logs.id", ondelete="RESTRICT"),
        nullable=True,
    )

    production_log = relationship("ProductionLog", back_populates="material_transactions")

    __table_args__ = (
        Index("idx_material_txn_material", "material_id"),
        Index("idx_material_txn_created_at", "created_at"),
        Index("idx_material_txn_type", "transaction_type"),
        CheckConstraint(
            "transaction_type IN ('import', 'export')", name="ck_material_txn_type"
        ),
        CheckConstraint("quantity > 0", name="ck_material_txn_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_material_txn_price_non_negative"),
    )

    def __repr__(self) -> str:
        """String representation of material transaction."""
        return (
            f"MaterialTransaction(id={self.id}, material_id={self.material_id}, "
            f"type={self.transaction_type}, quantity={self.quantity})"
        )

    @property
    def is_import(self) -> bool:
        return self.transaction_type == TransactionType.IMPORT.value

    def computed_total(self) -> Decimal:
        """Recompute quantity * unit_price from the stored parts."""
        return Decimal(self.quantity) * Decimal(self.unit_price)
