"""Report Service - read-only financial and inventory metrics.

This module provides:
- get_report(): revenue, cost, profit and margin (all time and for a date
  window), period-over-period growth, top sellers, low stock and inventory
  valuation
- get_dashboard_stats(): headline numbers and the recent activity feed
- Pure helpers (calculate_margin, calculate_growth, previous_window,
  summarize_top_sellers) usable on data the caller already holds

Nothing here writes. Reads happen in one session; a coherent-enough view
for display is all that is required.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..models import (
    ActivityType,
    Material,
    MaterialTransaction,
    Product,
    ProductionLog,
    Sale,
    TransactionType,
)
from ..utils.config import get_config
from ..utils.constants import (
    DASHBOARD_ACTIVITY_LIMIT,
    DASHBOARD_LOW_STOCK_LIMIT,
)
from ..utils.datetime_utils import as_naive_utc, day_bounds, utc_now
from .database import session_scope
from .exceptions import InvalidInput

ZERO = Decimal("0")


# =============================================================================
# Report Data
# =============================================================================


@dataclass
class TopSeller:
    product_id: int
    product_name: str
    quantity_sold: int
    revenue: Decimal


@dataclass
class ReportData:
    """Aggregated metrics returned by get_report.

    Margins and growth rates are ratios (0.25 == 25%).
    """

    start_date: date
    end_date: date

    # All-time financials
    total_revenue: Decimal = ZERO
    total_cost: Decimal = ZERO
    total_profit: Decimal = ZERO
    profit_margin: Decimal = ZERO

    # Window financials
    period_revenue: Decimal = ZERO
    period_cost: Decimal = ZERO
    period_profit: Decimal = ZERO
    period_margin: Decimal = ZERO

    # Window vs the preceding window of equal length
    previous_start_date: Optional[date] = None
    previous_end_date: Optional[date] = None
    revenue_growth: Decimal = ZERO
    cost_growth: Decimal = ZERO
    profit_growth: Decimal = ZERO

    # Inventory
    total_material_value: Decimal = ZERO
    total_product_value: Decimal = ZERO
    low_stock_items: int = 0

    # Activity totals (all time)
    total_sales_quantity: int = 0
    total_production_quantity: int = 0
    total_material_imports: Decimal = ZERO

    top_selling_products: List[TopSeller] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        for key in ("start_date", "end_date", "previous_start_date", "previous_end_date"):
            if result[key] is not None:
                result[key] = result[key].isoformat()
        return result


# =============================================================================
# Pure Helpers
# =============================================================================


def calculate_margin(profit: Decimal, revenue: Decimal) -> Decimal:
    """profit / revenue, or 0 when revenue is 0."""
    revenue = Decimal(revenue)
    if revenue == 0:
        return ZERO
    return Decimal(profit) / revenue


def calculate_growth(current: Decimal, previous: Decimal) -> Decimal:
    """(current - previous) / previous, or 0 when previous is 0."""
    previous = Decimal(previous)
    if previous == 0:
        return ZERO
    return (Decimal(current) - previous) / previous


def previous_window(start: date, end: date) -> Tuple[date, date]:
    """
    The window of equal length that ends the day before ``start``.

    Example:
        >>> previous_window(date(2024, 3, 11), date(2024, 3, 20))
        (datetime.date(2024, 3, 1), datetime.date(2024, 3, 10))
    """
    length = (end - start).days + 1
    previous_end = start - timedelta(days=1)
    return previous_end - timedelta(days=length - 1), previous_end


def summarize_top_sellers(sales: Iterable[Any], top_n: int) -> List[TopSeller]:
    """
    Group sales by product, sum quantity and revenue, keep the top N by revenue.

    Sales may be Sale objects or dicts. The product name of the latest sale
    seen for a product is used.
    """
    grouped: Dict[int, TopSeller] = {}
    for sale in sales:
        get = sale.get if isinstance(sale, dict) else lambda key: getattr(sale, key)
        product_id = get("product_id")
        entry = grouped.get(product_id)
        if entry is None:
            entry = grouped[product_id] = TopSeller(
                product_id=product_id,
                product_name=get("product_name"),
                quantity_sold=0,
                revenue=ZERO,
            )
        entry.quantity_sold += get("quantity")
        entry.revenue += Decimal(get("total_revenue"))

    ranked = sorted(grouped.values(), key=lambda s: (-s.revenue, s.product_name))
    return ranked[:top_n]


def average_cost_per_unit(cost_per_unit_values: Iterable[Decimal]) -> Decimal:
    """Mean of cost_per_unit values, 0 for none."""
    values = [Decimal(v) for v in cost_per_unit_values]
    if not values:
        return ZERO
    return sum(values, ZERO) / len(values)


def _sum(values: Iterable) -> Decimal:
    return sum((Decimal(v) for v in values), ZERO)


def _in_window(created_at, window: Tuple[Any, Any]) -> bool:
    start, end = window
    created_at = as_naive_utc(created_at)
    return start <= created_at < end


def _default_window(start_date: Optional[date], end_date: Optional[date], today: date):
    end = end_date or today
    start = start_date or end.replace(day=1)
    if end < start:
        raise InvalidInput(["End date must not be before start date"])
    return start, end


# =============================================================================
# Reports
# =============================================================================


def get_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    *,
    top_n: Optional[int] = None,
    low_stock_threshold: Any = None,
    today: Optional[date] = None,
    session: Optional[Session] = None,
) -> ReportData:
    """
    Build the report for the inclusive window [start_date, end_date].

    Args:
        start_date: First day of the window (first day of end_date's month
            when None)
        end_date: Last day of the window (today when None)
        top_n: Number of top sellers (config default 5)
        low_stock_threshold: Low-stock level (config default 10)
        today: Override for "today" (tests)
        session: Optional database session

    Returns:
        ReportData

    Raises:
        InvalidInput: If end_date is before start_date
    """
    config = get_config()
    today = today or utc_now().date()
    start, end = _default_window(start_date, end_date, today)
    previous_start, previous_end = previous_window(start, end)
    top_n = config.top_selling_limit if top_n is None else top_n
    threshold = Decimal(
        config.low_stock_threshold if low_stock_threshold is None else low_stock_threshold
    )

    if session is not None:
        return _build_report(
            session, start, end, previous_start, previous_end, top_n, threshold
        )
    with session_scope() as session:
        return _build_report(
            session, start, end, previous_start, previous_end, top_n, threshold
        )


def _build_report(
    session: Session,
    start: date,
    end: date,
    previous_start: date,
    previous_end: date,
    top_n: int,
    threshold: Decimal,
) -> ReportData:
    sales = session.query(Sale).all()
    logs = session.query(ProductionLog).all()
    imports = (
        session.query(MaterialTransaction)
        .filter(MaterialTransaction.transaction_type == TransactionType.IMPORT.value)
        .all()
    )
    materials = session.query(Material).all()
    products = session.query(Product).all()

    window = day_bounds(start, end)
    prior = day_bounds(previous_start, previous_end)

    period_sales = [s for s in sales if _in_window(s.created_at, window)]
    period_logs = [p for p in logs if _in_window(p.created_at, window)]
    prior_sales = [s for s in sales if _in_window(s.created_at, prior)]
    prior_logs = [p for p in logs if _in_window(p.created_at, prior)]

    report = ReportData(
        start_date=start,
        end_date=end,
        previous_start_date=previous_start,
        previous_end_date=previous_end,
    )

    report.total_revenue = _sum(s.total_revenue for s in sales)
    report.total_cost = _sum(p.total_cost for p in logs)
    report.total_profit = report.total_revenue - report.total_cost
    report.profit_margin = calculate_margin(report.total_profit, report.total_revenue)

    report.period_revenue = _sum(s.total_revenue for s in period_sales)
    report.period_cost = _sum(p.total_cost for p in period_logs)
    report.period_profit = report.period_revenue - report.period_cost
    report.period_margin = calculate_margin(report.period_profit, report.period_revenue)

    previous_revenue = _sum(s.total_revenue for s in prior_sales)
    previous_cost = _sum(p.total_cost for p in prior_logs)
    report.revenue_growth = calculate_growth(report.period_revenue, previous_revenue)
    report.cost_growth = calculate_growth(report.period_cost, previous_cost)
    report.profit_growth = calculate_growth(
        report.period_profit, previous_revenue - previous_cost
    )

    costs_by_product: Dict[int, List[Decimal]] = {}
    for log in logs:
        costs_by_product.setdefault(log.product_id, []).append(log.cost_per_unit)

    report.total_material_value = _sum(m.stock_value for m in materials)
    report.total_product_value = _sum(
        Decimal(p.current_stock) * average_cost_per_unit(costs_by_product.get(p.id, []))
        for p in products
    )
    report.low_stock_items = sum(1 for m in materials if Decimal(m.current_stock) < threshold)

    report.total_sales_quantity = sum(s.quantity for s in sales)
    report.total_production_quantity = sum(p.quantity_produced for p in logs)
    report.total_material_imports = _sum(t.quantity for t in imports)

    report.top_selling_products = summarize_top_sellers(period_sales, top_n)
    return report


def get_dashboard_stats(
    *,
    today: Optional[date] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Headline numbers for the dashboard.

    Returns:
        Dict with total_materials, total_products, total_revenue, total_cost,
        total_profit, today_sales, low_stock_items, low_stock_materials (the
        five lowest) and recent_activities (ten newest sales, productions and
        imports, newest first)
    """
    today = today or utc_now().date()
    threshold = get_config().low_stock_threshold

    def _stats(session: Session) -> Dict[str, Any]:
        total_revenue = _sum(r for (r,) in session.query(Sale.total_revenue).all())
        total_cost = _sum(c for (c,) in session.query(ProductionLog.total_cost).all())
        today_window = day_bounds(today, today)
        today_sales = _sum(
            r
            for (r,) in session.query(Sale.total_revenue)
            .filter(Sale.created_at >= today_window[0], Sale.created_at < today_window[1])
            .all()
        )
        low_stock = (
            session.query(Material)
            .filter(Material.current_stock < threshold)
            .order_by(Material.current_stock, Material.name)
            .all()
        )

        return {
            "total_materials": session.query(Material).count(),
            "total_products": session.query(Product).count(),
            "total_revenue": total_revenue,
            "total_cost": total_cost,
            "total_profit": total_revenue - total_cost,
            "today_sales": today_sales,
            "low_stock_items": len(low_stock),
            "low_stock_materials": [m.to_dict() for m in low_stock[:DASHBOARD_LOW_STOCK_LIMIT]],
            "recent_activities": _recent_activities(session),
        }

    if session is not None:
        return _stats(session)
    with session_scope() as session:
        return _stats(session)


def _recent_activities(session: Session) -> List[Dict[str, Any]]:
    sales = session.query(Sale).order_by(Sale.created_at.desc(), Sale.id.desc()).limit(5).all()
    logs = (
        session.query(ProductionLog)
        .order_by(ProductionLog.created_at.desc(), ProductionLog.id.desc())
        .limit(3)
        .all()
    )
    imports = (
        session.query(MaterialTransaction)
        .filter(MaterialTransaction.transaction_type == TransactionType.IMPORT.value)
        .order_by(MaterialTransaction.created_at.desc(), MaterialTransaction.id.desc())
        .limit(3)
        .all()
    )

    activities = [
        {
            "type": ActivityType.SALE.value,
            "record_id": sale.id,
            "description": f"Sold {sale.quantity} {sale.product_name}",
            "amount": sale.total_revenue,
            "timestamp": as_naive_utc(sale.created_at),
        }
        for sale in sales
    ]
    activities += [
        {
            "type": ActivityType.PRODUCTION.value,
            "record_id": log.id,
            "description": f"Packaged {log.quantity_produced} {log.product_name}",
            "amount": -Decimal(log.total_cost),
            "timestamp": as_naive_utc(log.created_at),
        }
        for log in logs
    ]
    activities += [
        {
            "type": ActivityType.MATERIAL_IMPORT.value,
            "record_id": txn.id,
            "description": f"Imported {txn.quantity} {txn.material_name}",
            "amount": -Decimal(txn.total_amount),
            "timestamp": as_naive_utc(txn.created_at),
        }
        for txn in imports
    ]

    activities.sort(key=lambda a: a["timestamp"], reverse=True)
    return activities[:DASHBOARD_ACTIVITY_LIMIT]
