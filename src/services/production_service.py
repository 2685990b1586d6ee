"""
Production Service for packaging products from their formulas.

This module provides functions for:
- Checking material availability before production (dry run)
- Recording production with atomic stock movements
- Querying production history

A production run, in one transaction:
1. Reads the product and every formula material
2. Validates stock with stock_validator against that fresh snapshot
3. Decrements each material by formula quantity * units
4. Increments product stock by units
5. Appends a ProductionLog with per-material usage priced at run time
6. Appends an export MaterialTransaction per consumed material

Material and Product rows carry a version counter; a concurrent write to
any of them between steps 1 and the commit aborts the attempt and
run_atomic replays it against the new state.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..models import (
    MaterialTransaction,
    Product,
    ProductionLog,
    ProductionMaterialUsage,
    TransactionType,
)
from ..utils.constants import MAX_NOTES_LENGTH
from ..utils.datetime_utils import as_naive_utc
from ..utils.validators import (
    collect_errors,
    quantize_amount,
    to_decimal,
    validate_positive_integer,
    validate_string_length,
)
from . import stock_validator
from .database import run_atomic, session_scope
from .exceptions import (
    InsufficientStock,
    InvalidInput,
    MaterialNotFound,
    NotFound,
    ProductionLogNotFound,
    ProductNotFound,
)
from .logging_utils import get_service_logger, log_operation
from .material_service import load_material_snapshot

logger = get_service_logger(__name__)


# =============================================================================
# Availability Check Functions
# =============================================================================


def check_can_produce(
    product_id: int,
    quantity: Any,
    *,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Check if a product can be produced with current material stock.

    Args:
        product_id: Product to produce
        quantity: Units to produce
        session: Optional database session

    Returns:
        Dict with keys:
            - "is_valid" (bool): True if every material covers the run
            - "errors" (List[str]): one message per missing/insufficient material
            - "can_produce" (int): maximum producible units
            - "missing_materials" (List[str])
            - "shortages" (List[Dict]): material_id, material_name, required,
              available, short_by

    Raises:
        ProductNotFound: If product doesn't exist
        InvalidInput: If quantity is not a positive whole number
    """
    if session is not None:
        return _check_can_produce_impl(product_id, quantity, session)
    with session_scope() as session:
        return _check_can_produce_impl(product_id, quantity, session)


def _check_can_produce_impl(product_id: int, quantity: Any, session: Session) -> Dict[str, Any]:
    """Implementation of check_can_produce that uses provided session."""
    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)

    materials = load_material_snapshot(session, [line.material_id for line in product.formula])
    result = stock_validator.validate_stock(product.formula, quantity, materials)

    log_operation(
        logger,
        operation="check_can_produce",
        outcome="available" if result.is_valid else "insufficient_stock",
        level=logging.DEBUG,
        product_id=product_id,
        can_produce=result.can_produce,
    )
    return result.to_dict()


# =============================================================================
# Production Recording Functions
# =============================================================================


def produce(
    product_id: int,
    quantity: Any,
    *,
    note: Optional[str] = None,
    actor: Optional[str] = None,
    produced_at: Optional[datetime] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Record a production (packaging) run.

    Args:
        product_id: Product being produced
        quantity: Units produced (positive whole number)
        note: Optional production notes
        actor: Identity of the user recording the run
        produced_at: Optional production timestamp (defaults to now)
        session: Optional caller-owned session (no commit, no retry)

    Returns:
        The ProductionLog as a dict:
            - "id", "uuid", "product_id", "product_name", "quantity_produced"
            - "total_cost": Decimal, "cost_per_unit": Decimal
            - "materials_used": List[Dict] with material_id, material_name,
              quantity_used, unit_price
            - "note", "created_by", "created_at"

    Raises:
        InvalidInput: If quantity is not a positive whole number or the
            product has an empty formula
        ProductNotFound: If product doesn't exist
        MaterialNotFound: If a formula material doesn't exist
        InsufficientStock: If any material cannot cover the run; carries
            every shortage. Nothing is written.
        ConflictRetryable: If concurrent writers exhausted the retries
    """
    errors = collect_errors(
        validate_positive_integer(quantity, "Quantity"),
        validate_string_length(note, MAX_NOTES_LENGTH, "Note"),
    )
    if errors:
        raise InvalidInput(errors)
    units = int(to_decimal(quantity))

    def _produce(session: Session) -> Dict[str, Any]:
        product = session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        formula = list(product.formula)
        if not formula:
            raise InvalidInput([f"Product {product.name} has no formula"])

        materials = load_material_snapshot(session, [line.material_id for line in formula])
        for line in formula:
            if line.material_id not in materials:
                raise MaterialNotFound(line.material_id)

        check = stock_validator.validate_stock(formula, units, materials)
        if not check.is_valid:
            raise InsufficientStock(check.shortages)

        production_log = ProductionLog(
            product_id=product.id,
            product_name=product.name,
            quantity_produced=units,
            note=note,
            created_by=actor,
        )
        if produced_at is not None:
            production_log.created_at = as_naive_utc(produced_at)

        total_cost = Decimal("0")
        for line in formula:
            material = materials[line.material_id]
            quantity_used = Decimal(line.quantity) * units
            unit_price = Decimal(material.unit_price)
            line_cost = quantity_used * unit_price

            material.current_stock = Decimal(material.current_stock) - quantity_used

            production_log.materials_used.append(
                ProductionMaterialUsage(
                    material_id=material.id,
                    material_name=material.name,
                    quantity_used=quantity_used,
                    unit_price=unit_price,
                )
            )
            export = MaterialTransaction(
                material_id=material.id,
                material_name=material.name,
                transaction_type=TransactionType.EXPORT.value,
                quantity=quantity_used,
                unit_price=unit_price,
                total_amount=line_cost,
                note=f"Production of {units} {product.name}",
                created_by=actor,
                production_log=production_log,
            )
            if produced_at is not None:
                export.created_at = production_log.created_at
            total_cost += line_cost

        production_log.total_cost = total_cost
        production_log.cost_per_unit = quantize_amount(total_cost / Decimal(units))

        product.current_stock = Decimal(product.current_stock) + units

        session.add(production_log)
        session.flush()
        return production_log.to_dict()

    try:
        result = run_atomic(_produce, operation="produce", session=session)
    except InsufficientStock as e:
        log_operation(
            logger,
            operation="produce",
            outcome="insufficient_stock",
            level=logging.WARNING,
            product_id=product_id,
            quantity=units,
            shortages=[s.describe() for s in e.shortages],
        )
        raise
    except NotFound as e:
        log_operation(
            logger,
            operation="produce",
            outcome="not_found",
            level=logging.WARNING,
            product_id=product_id,
            error=str(e),
        )
        raise

    log_operation(
        logger,
        operation="produce",
        outcome="success",
        production_log_id=result["id"],
        product_id=product_id,
        quantity=units,
        total_cost=str(result["total_cost"]),
    )
    return result


# =============================================================================
# History Query Functions
# =============================================================================


def get_production_history(
    *,
    product_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    session: Optional[Session] = None,
) -> List[Dict[str, Any]]:
    """
    Query production logs, newest first.

    Args:
        product_id: Optional filter by product
        start_date: Optional inclusive lower bound on created_at
        end_date: Optional exclusive upper bound on created_at
        limit: Maximum number of results (all when None)
        offset: Number of results to skip (for pagination)
        session: Optional database session

    Returns:
        List of production log dictionaries including materials_used
    """

    def _query(session: Session) -> List[Dict[str, Any]]:
        query = session.query(ProductionLog)
        if product_id is not None:
            query = query.filter(ProductionLog.product_id == product_id)
        if start_date is not None:
            query = query.filter(ProductionLog.created_at >= as_naive_utc(start_date))
        if end_date is not None:
            query = query.filter(ProductionLog.created_at < as_naive_utc(end_date))

        query = query.order_by(ProductionLog.created_at.desc(), ProductionLog.id.desc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [log.to_dict() for log in query.all()]

    if session is not None:
        return _query(session)
    with session_scope() as session:
        return _query(session)


def get_production_log(
    production_log_id: int, *, session: Optional[Session] = None
) -> Dict[str, Any]:
    """
    Get a single production log with its material usage.

    Raises:
        ProductionLogNotFound: If the log doesn't exist
    """

    def _get(session: Session) -> Dict[str, Any]:
        log = session.get(ProductionLog, production_log_id)
        if log is None:
            raise ProductionLogNotFound(production_log_id)
        return log.to_dict()

    if session is not None:
        return _get(session)
    with session_scope() as session:
        return _get(session)
