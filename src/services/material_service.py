"""Material Service - catalog operations for raw materials.

Creation, lookup, editing and deletion of materials. Stock is deliberately
absent from update_material: current_stock only moves through
material_transaction_service (import/export) and production_service.

All functions accept an optional session parameter. Writes go through
run_atomic, so version conflicts surface as ConflictRetryable and other
store failures as DatabaseError.
"""

from contextlib import nullcontext
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..models import FormulaLine, Material, Product
from ..utils.config import get_config
from ..utils.constants import ERROR_STOCK_READ_ONLY, MAX_NAME_LENGTH, MAX_UNIT_LENGTH
from ..utils.validators import (
    collect_errors,
    to_decimal,
    validate_non_negative_number,
    validate_required_string,
    validate_string_length,
)
from .database import run_atomic, session_scope
from .exceptions import InvalidInput, MaterialInUse, MaterialNotFound
from .logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)

_EDITABLE_FIELDS = ("name", "unit", "unit_price")


def _scope(session: Optional[Session]):
    return nullcontext(session) if session is not None else session_scope()


def validate_material_data(name: Any, unit: Any, unit_price: Any = 0, initial_stock: Any = 0) -> List[str]:
    """Return every validation message for a new material."""
    return collect_errors(
        validate_required_string(name, "Name"),
        validate_string_length(name, MAX_NAME_LENGTH, "Name"),
        validate_required_string(unit, "Unit"),
        validate_string_length(unit, MAX_UNIT_LENGTH, "Unit"),
        validate_non_negative_number(unit_price, "Unit price"),
        validate_non_negative_number(initial_stock, "Initial stock"),
    )


def add_material(
    session: Session,
    name: str,
    unit: str,
    unit_price: Any = 0,
    initial_stock: Any = 0,
) -> Material:
    """
    Validate and add a Material to ``session`` without committing.

    Used by create_material and by import_material when a new material is
    created in the same transaction as its first import.

    Raises:
        InvalidInput: If any field is invalid
    """
    errors = validate_material_data(name, unit, unit_price, initial_stock)
    if errors:
        raise InvalidInput(errors)

    material = Material(
        name=name.strip(),
        unit=unit.strip(),
        unit_price=to_decimal(unit_price),
        current_stock=to_decimal(initial_stock),
    )
    session.add(material)
    session.flush()
    return material


def create_material(
    name: str,
    unit: str,
    *,
    unit_price: Any = 0,
    initial_stock: Any = 0,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Create a new material.

    Args:
        name: Display name
        unit: Unit of measure
        unit_price: Initial price per unit (>= 0)
        initial_stock: Opening stock (>= 0)
        session: Optional database session

    Returns:
        Material as a dict

    Raises:
        InvalidInput: For a blank name/unit or a negative price/stock
    """

    def _create(session: Session) -> Dict[str, Any]:
        return add_material(session, name, unit, unit_price, initial_stock).to_dict()

    result = run_atomic(_create, operation="create_material", session=session)
    log_operation(
        logger,
        operation="create_material",
        outcome="success",
        material_id=result["id"],
        material_name=result["name"],
    )
    return result


def get_material(material_id: int, *, session: Optional[Session] = None) -> Dict[str, Any]:
    """
    Get a material by ID.

    Raises:
        MaterialNotFound: If the material does not exist
    """
    with _scope(session) as session:
        material = session.get(Material, material_id)
        if material is None:
            raise MaterialNotFound(material_id)
        return material.to_dict()


def get_all_materials(*, session: Optional[Session] = None) -> List[Dict[str, Any]]:
    """All materials ordered by name."""
    with _scope(session) as session:
        materials = session.query(Material).order_by(Material.name, Material.id).all()
        return [m.to_dict() for m in materials]


def load_material_snapshot(session: Session, material_ids=None) -> Dict[int, Material]:
    """
    Load current materials keyed by id.

    Args:
        session: Session to read through (inside the caller's transaction)
        material_ids: Optional ids to restrict the load to

    Returns:
        Dict of material id to Material
    """
    query = session.query(Material)
    if material_ids is not None:
        ids = list(material_ids)
        if not ids:
            return {}
        query = query.filter(Material.id.in_(ids))
    return {m.id: m for m in query.all()}


def update_material(
    material_id: int,
    data: Dict[str, Any],
    *,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Update a material's name, unit or unit price.

    Formula lines keep the material name captured when they were written;
    renaming a material does not rewrite products or history.

    Args:
        material_id: Material to update
        data: Fields to change (name, unit, unit_price)

    Raises:
        MaterialNotFound: If the material does not exist
        InvalidInput: For invalid values, unknown fields, or current_stock
        ConflictRetryable: If a concurrent write changed the material first
    """
    if "current_stock" in data:
        raise InvalidInput([f"current_stock: {ERROR_STOCK_READ_ONLY}"])
    unknown = sorted(set(data) - set(_EDITABLE_FIELDS))
    if unknown:
        raise InvalidInput([f"Unknown material field(s): {', '.join(unknown)}"])

    errors = []
    if "name" in data:
        errors += collect_errors(
            validate_required_string(data["name"], "Name"),
            validate_string_length(data["name"], MAX_NAME_LENGTH, "Name"),
        )
    if "unit" in data:
        errors += collect_errors(
            validate_required_string(data["unit"], "Unit"),
            validate_string_length(data["unit"], MAX_UNIT_LENGTH, "Unit"),
        )
    if "unit_price" in data:
        errors += collect_errors(validate_non_negative_number(data["unit_price"], "Unit price"))
    if errors:
        raise InvalidInput(errors)

    changes = dict(data)
    for key in ("name", "unit"):
        if key in changes:
            changes[key] = changes[key].strip()
    if "unit_price" in changes:
        changes["unit_price"] = to_decimal(changes["unit_price"])

    def _update(session: Session) -> Dict[str, Any]:
        material = session.get(Material, material_id)
        if material is None:
            raise MaterialNotFound(material_id)
        material.update_from_dict(changes)
        session.flush()
        return material.to_dict()

    result = run_atomic(_update, operation="update_material", session=session)
    log_operation(
        logger,
        operation="update_material",
        outcome="success",
        material_id=material_id,
        fields=sorted(data),
    )
    return result


def delete_material(material_id: int, *, session: Optional[Session] = None) -> None:
    """
    Delete a material.

    Transactions and production logs keep their snapshotted names.

    Raises:
        MaterialNotFound: If the material does not exist
        MaterialInUse: If any product formula references it
    """

    def _delete(session: Session) -> None:
        material = session.get(Material, material_id)
        if material is None:
            raise MaterialNotFound(material_id)

        product_names = [
            name
            for (name,) in session.query(Product.name)
            .join(FormulaLine, FormulaLine.product_id == Product.id)
            .filter(FormulaLine.material_id == material_id)
            .order_by(Product.name)
            .all()
        ]
        if product_names:
            raise MaterialInUse(material_id, product_names)

        session.delete(material)
        session.flush()

    run_atomic(_delete, operation="delete_material", session=session)
    log_operation(logger, operation="delete_material", outcome="success", material_id=material_id)


def get_low_stock_materials(
    threshold: Any = None,
    *,
    limit: Optional[int] = None,
    session: Optional[Session] = None,
) -> List[Dict[str, Any]]:
    """
    Materials whose stock is strictly below ``threshold``, lowest first.

    Args:
        threshold: Stock level (config default 10)
        limit: Optional maximum number of rows
    """
    if threshold is None:
        threshold = get_config().low_stock_threshold
    threshold = to_decimal(threshold)
    if threshold is None:
        raise InvalidInput(["Threshold: Please enter a valid number"])

    with _scope(session) as session:
        query = (
            session.query(Material)
            .filter(Material.current_stock < threshold)
            .order_by(Material.current_stock, Material.name)
        )
        if limit is not None:
            query = query.limit(limit)
        return [m.to_dict() for m in query.all()]


def count_low_stock_materials(threshold: Any = None, *, session: Optional[Session] = None) -> int:
    """Number of materials strictly below the low-stock threshold."""
    return len(get_low_stock_materials(threshold, session=session))


def total_material_value(materials) -> Decimal:
    """Sum of current_stock * unit_price over materials (objects or dicts)."""
    total = Decimal("0")
    for material in materials:
        if isinstance(material, dict):
            total += Decimal(material["current_stock"]) * Decimal(material["unit_price"])
        else:
            total += material.stock_value
    return total
