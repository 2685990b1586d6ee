"""
Inventory Snapshot Service for point-in-time inventory valuation.

A snapshot records, for one calendar date, every material's stock and value
(stock * unit_price) and every product's stock and value (stock * average
cost_per_unit over the product's most recent production logs).

Session Management Pattern:
- All public functions accept session=None parameter
- If session provided, use it directly
- If session is None, create a new session via session_scope()
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from src.models import (
    InventorySnapshot,
    Material,
    Product,
    ProductionLog,
    SnapshotMaterial,
    SnapshotProduct,
)
from src.services.database import session_scope
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import SNAPSHOT_COST_HISTORY_LIMIT
from src.utils.datetime_utils import utc_now
from src.utils.validators import quantize_amount

logger = get_service_logger(__name__)


def create_snapshot(
    snapshot_date: Optional[date] = None,
    session: Session = None,
) -> Dict[str, Any]:
    """
    Capture current inventory levels and values for a date.

    Creating a snapshot for a date that already has one replaces its lines
    and totals.

    Args:
        snapshot_date: Date the snapshot describes (today when None)
        session: Optional SQLAlchemy session for transaction sharing

    Returns:
        dict with snapshot data including materials and products lines
    """
    snapshot_date = snapshot_date or utc_now().date()
    if session is not None:
        return _create_snapshot_impl(snapshot_date, session)
    with session_scope() as session:
        return _create_snapshot_impl(snapshot_date, session)


def _average_recent_cost(session: Session, product_id: int) -> Decimal:
    costs = [
        Decimal(cost)
        for (cost,) in session.query(ProductionLog.cost_per_unit)
        .filter(ProductionLog.product_id == product_id)
        .order_by(ProductionLog.created_at.desc(), ProductionLog.id.desc())
        .limit(SNAPSHOT_COST_HISTORY_LIMIT)
        .all()
    ]
    if not costs:
        return Decimal("0")
    return sum(costs, Decimal("0")) / len(costs)


def _create_snapshot_impl(snapshot_date: date, session: Session) -> Dict[str, Any]:
    snapshot = session.query(InventorySnapshot).filter_by(snapshot_date=snapshot_date).first()
    replaced = snapshot is not None
    if snapshot is None:
        snapshot = InventorySnapshot(snapshot_date=snapshot_date)
        session.add(snapshot)
    else:
        snapshot.materials.clear()
        snapshot.products.clear()
        session.flush()

    material_total = Decimal("0")
    for material in session.query(Material).order_by(Material.name, Material.id).all():
        value = material.stock_value
        material_total += value
        snapshot.materials.append(
            SnapshotMaterial(
                material_id=material.id,
                material_name=material.name,
                stock=material.current_stock,
                value=value,
            )
        )

    product_total = Decimal("0")
    for product in session.query(Product).order_by(Product.name, Product.id).all():
        value = quantize_amount(
            Decimal(product.current_stock) * _average_recent_cost(session, product.id)
        )
        product_total += value
        snapshot.products.append(
            SnapshotProduct(
                product_id=product.id,
                product_name=product.name,
                stock=product.current_stock,
                value=value,
            )
        )

    snapshot.total_material_value = material_total
    snapshot.total_product_value = product_total
    session.flush()

    log_operation(
        logger,
        operation="create_snapshot",
        outcome="replaced" if replaced else "success",
        snapshot_id=snapshot.id,
        snapshot_date=snapshot_date.isoformat(),
        total_material_value=str(material_total),
        total_product_value=str(product_total),
    )
    return snapshot.to_dict()


def get_snapshot_by_date(
    snapshot_date: date,
    session: Session = None,
) -> Optional[Dict[str, Any]]:
    """
    Get the snapshot for a date.

    Returns:
        Snapshot dict, or None if no snapshot exists for the date
    """
    if session is not None:
        return _get_snapshot_by_date_impl(snapshot_date, session)
    with session_scope() as session:
        return _get_snapshot_by_date_impl(snapshot_date, session)


def _get_snapshot_by_date_impl(snapshot_date: date, session: Session) -> Optional[Dict[str, Any]]:
    snapshot = session.query(InventorySnapshot).filter_by(snapshot_date=snapshot_date).first()
    return snapshot.to_dict() if snapshot else None


def get_all_snapshots(
    limit: Optional[int] = None,
    session: Session = None,
) -> List[Dict[str, Any]]:
    """
    Get snapshots ordered by date (newest first).

    Args:
        limit: Optional maximum number of snapshots
        session: Optional SQLAlchemy session
    """

    def _query(session: Session) -> List[Dict[str, Any]]:
        query = session.query(InventorySnapshot).order_by(InventorySnapshot.snapshot_date.desc())
        if limit is not None:
            query = query.limit(limit)
        return [s.to_dict() for s in query.all()]

    if session is not None:
        return _query(session)
    with session_scope() as session:
        return _query(session)
