"""Sales Service - selling products and querying sales.

A sale, in one transaction, checks product stock, decrements it and appends
a Sale with total_revenue = quantity * unit_price. The unit price defaults to
the product's selling_price; a caller-supplied price (discounts, bulk
deals) is accepted as long as it is greater than zero.
"""

import logging
from collections import OrderedDict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..models import Product, Sale
from ..utils.constants import (
    MAX_CUSTOMER_NAME_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_PHONE_LENGTH,
)
from ..utils.datetime_utils import as_naive_utc, day_bounds
from ..utils.validators import (
    collect_errors,
    to_decimal,
    validate_positive_integer,
    validate_positive_number,
    validate_string_length,
)
from .database import run_atomic, session_scope
from .exceptions import InsufficientStock, InvalidInput, ProductNotFound, Shortage
from .logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)


def sell(
    product_id: int,
    quantity: Any,
    unit_price: Any = None,
    *,
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
    note: Optional[str] = None,
    actor: Optional[str] = None,
    sold_at: Optional[datetime] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Sell units of a product.

    Args:
        product_id: Product being sold
        quantity: Units sold (positive whole number)
        unit_price: Price per unit charged; the product's selling_price when None
        customer_name: Optional customer name
        customer_phone: Optional customer phone
        note: Optional note
        actor: Identity of the user recording the sale
        sold_at: Optional timestamp (defaults to now)
        session: Optional caller-owned session (no commit, no retry)

    Returns:
        The Sale as a dict

    Raises:
        InvalidInput: If quantity is not a positive whole number or
            the unit price (given or defaulted) is not positive
        ProductNotFound: If the product doesn't exist
        InsufficientStock: If product stock < quantity; nothing is written
        ConflictRetryable: If concurrent writers exhausted the retries
    """
    checks = [
        validate_positive_integer(quantity, "Quantity"),
        validate_string_length(customer_name, MAX_CUSTOMER_NAME_LENGTH, "Customer name"),
        validate_string_length(customer_phone, MAX_PHONE_LENGTH, "Customer phone"),
        validate_string_length(note, MAX_NOTES_LENGTH, "Note"),
    ]
    if unit_price is not None:
        checks.append(validate_positive_number(unit_price, "Unit price"))
    errors = collect_errors(*checks)
    if errors:
        raise InvalidInput(errors)
    units = int(to_decimal(quantity))
    requested_price = to_decimal(unit_price) if unit_price is not None else None

    def _sell(session: Session) -> Dict[str, Any]:
        product = session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)

        price = requested_price if requested_price is not None else Decimal(product.selling_price)
        if price <= 0:
            raise InvalidInput([f"Unit price: {product.name} has no selling price; pass unit_price"])

        available = Decimal(product.current_stock)
        if available < units:
            raise InsufficientStock(
                [
                    Shortage(
                        entity="Product",
                        entity_id=product.id,
                        name=product.name,
                        required=Decimal(units),
                        available=available,
                    )
                ]
            )

        product.current_stock = available - units

        sale = Sale(
            product_id=product.id,
            product_name=product.name,
            quantity=units,
            unit_price=price,
            total_revenue=price * units,
            customer_name=customer_name,
            customer_phone=customer_phone,
            note=note,
            created_by=actor,
        )
        if sold_at is not None:
            sale.created_at = as_naive_utc(sold_at)
        session.add(sale)
        session.flush()
        return sale.to_dict()

    try:
        result = run_atomic(_sell, operation="sell", session=session)
    except InsufficientStock as e:
        shortage = e.shortages[0]
        log_operation(
            logger,
            operation="sell",
            outcome="insufficient_stock",
            level=logging.WARNING,
            product_id=product_id,
            requested=units,
            available=str(shortage.available),
        )
        raise
    except ProductNotFound:
        log_operation(
            logger,
            operation="sell",
            outcome="not_found",
            level=logging.WARNING,
            product_id=product_id,
        )
        raise

    log_operation(
        logger,
        operation="sell",
        outcome="success",
        sale_id=result["id"],
        product_id=product_id,
        quantity=units,
        total_revenue=str(result["total_revenue"]),
    )
    return result


def get_sales_history(
    *,
    product_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    session: Optional[Session] = None,
) -> List[Dict[str, Any]]:
    """
    Query sales, newest first.

    Args:
        product_id: Optional filter by product
        start_date: Optional inclusive lower bound on created_at
        end_date: Optional exclusive upper bound on created_at
        limit: Maximum number of results (all when None)
        offset: Number of results to skip
    """

    def _query(session: Session) -> List[Dict[str, Any]]:
        query = session.query(Sale)
        if product_id is not None:
            query = query.filter(Sale.product_id == product_id)
        if start_date is not None:
            query = query.filter(Sale.created_at >= as_naive_utc(start_date))
        if end_date is not None:
            query = query.filter(Sale.created_at < as_naive_utc(end_date))

        query = query.order_by(Sale.created_at.desc(), Sale.id.desc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [sale.to_dict() for sale in query.all()]

    if session is not None:
        return _query(session)
    with session_scope() as session:
        return _query(session)


def get_revenue_by_date_range(
    start: date,
    end: date,
    *,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Revenue summary for the inclusive date range [start, end].

    Returns:
        Dict with:
            - "total_revenue": Decimal
            - "total_quantity": int units sold
            - "sales_by_product": {product_name: {"quantity", "revenue"}},
              ordered by revenue descending
    """
    if end < start:
        raise InvalidInput(["End date must not be before start date"])
    window_start, window_end = day_bounds(start, end)
    sales = get_sales_history(start_date=window_start, end_date=window_end, session=session)

    total_revenue = Decimal("0")
    total_quantity = 0
    by_product: Dict[str, Dict[str, Any]] = {}
    for sale in sales:
        total_revenue += Decimal(sale["total_revenue"])
        total_quantity += sale["quantity"]
        entry = by_product.setdefault(
            sale["product_name"], {"quantity": 0, "revenue": Decimal("0")}
        )
        entry["quantity"] += sale["quantity"]
        entry["revenue"] += Decimal(sale["total_revenue"])

    ordered = OrderedDict(
        sorted(by_product.items(), key=lambda item: item[1]["revenue"], reverse=True)
    )
    return {
        "total_revenue": total_revenue,
        "total_quantity": total_quantity,
        "sales_by_product": ordered,
    }
