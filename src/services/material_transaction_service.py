"""Material Transaction Service - material imports, exports and their ledger.

This module provides functions for:
- Importing material stock (existing material, or a new one created in the
  same transaction)
- Exporting (withdrawing) material stock manually
- Querying the material transaction ledger

Imports overwrite Material.unit_price with the import price (last price
wins); no weighted average is kept.

Every stock write runs inside database.run_atomic, so the read, the checks
and the writes commit together or not at all, and a concurrent writer of
the same material forces a clean retry.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..models import Material, MaterialTransaction, TransactionType
from ..utils.constants import MAX_NOTES_LENGTH
from ..utils.datetime_utils import as_naive_utc
from ..utils.validators import (
    collect_errors,
    to_decimal,
    validate_positive_number,
    validate_string_length,
)
from .database import run_atomic, session_scope
from .exceptions import InsufficientStock, InvalidInput, MaterialNotFound, Shortage
from .logging_utils import get_service_logger, log_operation
from .material_service import add_material

logger = get_service_logger(__name__)


def _validate_movement(quantity: Any, note: Optional[str], unit_price: Any = None) -> None:
    results = [
        validate_positive_number(quantity, "Quantity"),
        validate_string_length(note, MAX_NOTES_LENGTH, "Note"),
    ]
    if unit_price is not None:
        results.append(validate_positive_number(unit_price, "Unit price"))
    errors = collect_errors(*results)
    if errors:
        raise InvalidInput(errors)


def import_material(
    material_id: Optional[int] = None,
    quantity: Any = None,
    unit_price: Any = None,
    *,
    new_material: Optional[Dict[str, Any]] = None,
    note: Optional[str] = None,
    actor: Optional[str] = None,
    imported_at: Optional[datetime] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Import (buy in) material stock.

    This function atomically:
    1. Loads the material, or creates it from ``new_material``
    2. Adds ``quantity`` to current_stock
    3. Sets the material's unit_price to ``unit_price``
    4. Appends an import MaterialTransaction

    Args:
        material_id: Existing material to import into
        quantity: Units imported (> 0)
        unit_price: Price per unit paid (> 0)
        new_material: {"name": ..., "unit": ...} to create the material
            instead; mutually exclusive with material_id
        note: Optional note
        actor: Identity of the user recording the import
        imported_at: Optional timestamp (defaults to now)
        session: Optional caller-owned session (no commit, no retry)

    Returns:
        The MaterialTransaction as a dict, plus "material" with the
        material's state after the import

    Raises:
        InvalidInput: If quantity or unit_price is not positive, or not
            exactly one of material_id / new_material is given
        MaterialNotFound: If material_id does not exist
        ConflictRetryable: If concurrent writers exhausted the retries
    """
    if (material_id is None) == (new_material is None):
        raise InvalidInput(["Provide exactly one of material_id or new_material"])
    _validate_movement(quantity, note, unit_price)
    quantity = to_decimal(quantity)
    unit_price = to_decimal(unit_price)

    def _import(session: Session) -> Dict[str, Any]:
        if new_material is not None:
            material = add_material(
                session,
                new_material.get("name"),
                new_material.get("unit"),
                unit_price=unit_price,
            )
        else:
            material = session.get(Material, material_id)
            if material is None:
                raise MaterialNotFound(material_id)

        material.current_stock = Decimal(material.current_stock) + quantity
        material.unit_price = unit_price

        transaction = MaterialTransaction(
            material_id=material.id,
            material_name=material.name,
            transaction_type=TransactionType.IMPORT.value,
            quantity=quantity,
            unit_price=unit_price,
            total_amount=quantity * unit_price,
            note=note,
            created_by=actor,
        )
        if imported_at is not None:
            transaction.created_at = as_naive_utc(imported_at)
        session.add(transaction)
        session.flush()

        result = transaction.to_dict()
        result["material"] = material.to_dict()
        return result

    try:
        result = run_atomic(_import, operation="import_material", session=session)
    except MaterialNotFound:
        log_operation(
            logger,
            operation="import_material",
            outcome="not_found",
            level=logging.WARNING,
            material_id=material_id,
        )
        raise

    log_operation(
        logger,
        operation="import_material",
        outcome="success",
        transaction_id=result["id"],
        material_id=result["material_id"],
        quantity=str(quantity),
        unit_price=str(unit_price),
        created_material=new_material is not None,
    )
    return result


def export_material(
    material_id: int,
    quantity: Any,
    *,
    note: Optional[str] = None,
    actor: Optional[str] = None,
    exported_at: Optional[datetime] = None,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Withdraw material stock outside of production (waste, samples, returns).

    The export is priced at the material's current unit_price.

    Raises:
        InvalidInput: If quantity is not positive
        MaterialNotFound: If the material does not exist
        InsufficientStock: If current_stock < quantity; nothing is written
        ConflictRetryable: If concurrent writers exhausted the retries
    """
    _validate_movement(quantity, note)
    quantity = to_decimal(quantity)

    def _export(session: Session) -> Dict[str, Any]:
        material = session.get(Material, material_id)
        if material is None:
            raise MaterialNotFound(material_id)

        available = Decimal(material.current_stock)
        if available < quantity:
            raise InsufficientStock(
                [
                    Shortage(
                        entity="Material",
                        entity_id=material.id,
                        name=material.name,
                        required=quantity,
                        available=available,
                    )
                ]
            )

        material.current_stock = available - quantity
        price = Decimal(material.unit_price)
        transaction = MaterialTransaction(
            material_id=material.id,
            material_name=material.name,
            transaction_type=TransactionType.EXPORT.value,
            quantity=quantity,
            unit_price=price,
            total_amount=quantity * price,
            note=note,
            created_by=actor,
        )
        if exported_at is not None:
            transaction.created_at = as_naive_utc(exported_at)
        session.add(transaction)
        session.flush()

        result = transaction.to_dict()
        result["material"] = material.to_dict()
        return result

    try:
        result = run_atomic(_export, operation="export_material", session=session)
    except InsufficientStock as e:
        log_operation(
            logger,
            operation="export_material",
            outcome="insufficient_stock",
            level=logging.WARNING,
            material_id=material_id,
            shortages=[s.describe() for s in e.shortages],
        )
        raise
    except MaterialNotFound:
        log_operation(
            logger,
            operation="export_material",
            outcome="not_found",
            level=logging.WARNING,
            material_id=material_id,
        )
        raise

    log_operation(
        logger,
        operation="export_material",
        outcome="success",
        transaction_id=result["id"],
        material_id=material_id,
        quantity=str(quantity),
    )
    return result


def get_transaction_history(
    *,
    material_id: Optional[int] = None,
    transaction_type: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    session: Optional[Session] = None,
) -> List[Dict[str, Any]]:
    """
    Query the material ledger, newest first.

    Args:
        material_id: Optional filter by material
        transaction_type: Optional 'import' or 'export'
        start_date: Optional inclusive lower bound on created_at
        end_date: Optional exclusive upper bound on created_at
        limit: Maximum number of rows (all when None)
        offset: Rows to skip (pagination)
    """
    if transaction_type is not None:
        try:
            transaction_type = TransactionType(transaction_type).value
        except ValueError:
            raise InvalidInput([f"Unknown transaction type: {transaction_type}"]) from None

    def _query(session: Session) -> List[Dict[str, Any]]:
        query = session.query(MaterialTransaction)
        if material_id is not None:
            query = query.filter(MaterialTransaction.material_id == material_id)
        if transaction_type is not None:
            query = query.filter(MaterialTransaction.transaction_type == transaction_type)
        if start_date is not None:
            query = query.filter(MaterialTransaction.created_at >= as_naive_utc(start_date))
        if end_date is not None:
            query = query.filter(MaterialTransaction.created_at < as_naive_utc(end_date))

        query = query.order_by(
            MaterialTransaction.created_at.desc(), MaterialTransaction.id.desc()
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [t.to_dict() for t in query.all()]

    if session is not None:
        return _query(session)
    with session_scope() as session:
        return _query(session)
