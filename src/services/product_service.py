"""Product Service - catalog operations for products and their formulas.

A product's formula lists the units of each material consumed to make one
unit of product. Editing a formula affects future production only; logs
capture the quantities and prices used at production time.

Stock is not editable here; it moves through production_service (+) and
sales_service (-).
"""

from contextlib import nullcontext
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..models import FormulaLine, Product
from ..utils.constants import ERROR_EMPTY_FORMULA, ERROR_STOCK_READ_ONLY, MAX_NAME_LENGTH
from ..utils.validators import (
    collect_errors,
    to_decimal,
    validate_non_negative_number,
    validate_positive_number,
    validate_required_string,
    validate_string_length,
)
from . import stock_validator
from .database import run_atomic, session_scope
from .exceptions import InvalidInput, MaterialNotFound, ProductNotFound
from .logging_utils import get_service_logger, log_operation
from .material_service import load_material_snapshot

logger = get_service_logger(__name__)

_EDITABLE_FIELDS = ("name", "selling_price", "formula")


def _scope(session: Optional[Session]):
    return nullcontext(session) if session is not None else session_scope()


def _line_value(line: Any, key: str):
    if isinstance(line, dict):
        return line.get(key)
    return getattr(line, key, None)


def validate_formula(formula: Optional[Iterable]) -> List[str]:
    """
    Validate formula lines without touching the database.

    Each line needs a material_id and a positive quantity; a material may
    appear only once.
    """
    lines = list(formula or [])
    if not lines:
        return [ERROR_EMPTY_FORMULA]

    errors = []
    seen = set()
    for index, line in enumerate(lines, start=1):
        material_id = _line_value(line, "material_id")
        if material_id is None:
            errors.append(f"Formula line {index}: material is required")
            continue
        if material_id in seen:
            errors.append(f"Formula line {index}: material {material_id} appears more than once")
        seen.add(material_id)
        errors += collect_errors(
            validate_positive_number(_line_value(line, "quantity"), f"Formula line {index} quantity")
        )
    return errors


def _build_formula_lines(session: Session, formula: Iterable) -> List[FormulaLine]:
    lines = list(formula)
    materials = load_material_snapshot(session, [_line_value(line, "material_id") for line in lines])

    built = []
    for position, line in enumerate(lines):
        material_id = _line_value(line, "material_id")
        material = materials.get(material_id)
        if material is None:
            raise MaterialNotFound(material_id)
        built.append(
            FormulaLine(
                position=position,
                material_id=material.id,
                material_name=material.name,
                quantity=to_decimal(_line_value(line, "quantity")),
            )
        )
    return built


def create_product(
    name: str,
    selling_price: Any,
    formula: Iterable,
    *,
    initial_stock: Any = 0,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Create a product with its formula.

    Args:
        name: Display name
        selling_price: Nominal price per unit (>= 0)
        formula: Iterable of {"material_id", "quantity"} (quantity per unit)
        initial_stock: Opening stock (>= 0)
        session: Optional database session

    Returns:
        Product as a dict including its formula

    Raises:
        InvalidInput: For invalid fields or an empty/invalid formula
        MaterialNotFound: If a formula material does not exist
    """
    formula = list(formula or [])
    errors = collect_errors(
        validate_required_string(name, "Name"),
        validate_string_length(name, MAX_NAME_LENGTH, "Name"),
        validate_non_negative_number(selling_price, "Selling price"),
        validate_non_negative_number(initial_stock, "Initial stock"),
    )
    errors += validate_formula(formula)
    if errors:
        raise InvalidInput(errors)

    def _create(session: Session) -> Dict[str, Any]:
        product = Product(
            name=name.strip(),
            selling_price=to_decimal(selling_price),
            current_stock=to_decimal(initial_stock),
        )
        product.formula = _build_formula_lines(session, formula)
        session.add(product)
        session.flush()
        return product.to_dict()

    result = run_atomic(_create, operation="create_product", session=session)
    log_operation(
        logger,
        operation="create_product",
        outcome="success",
        product_id=result["id"],
        formula_lines=len(formula),
    )
    return result


def get_product(product_id: int, *, session: Optional[Session] = None) -> Dict[str, Any]:
    """
    Get a product and its formula by ID.

    Raises:
        ProductNotFound: If the product does not exist
    """
    with _scope(session) as session:
        product = session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product.to_dict()


def get_all_products(*, session: Optional[Session] = None) -> List[Dict[str, Any]]:
    """All products ordered by name."""
    with _scope(session) as session:
        products = session.query(Product).order_by(Product.name, Product.id).all()
        return [p.to_dict() for p in products]


def update_product(
    product_id: int,
    data: Dict[str, Any],
    *,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """
    Update a product's name, selling price or formula.

    A new formula replaces the old one wholesale.

    Raises:
        ProductNotFound: If the product does not exist
        MaterialNotFound: If a new formula references an unknown material
        InvalidInput: For invalid values, unknown fields, or current_stock
        ConflictRetryable: If a concurrent write changed the product first
    """
    if "current_stock" in data:
        raise InvalidInput([f"current_stock: {ERROR_STOCK_READ_ONLY}"])
    unknown = sorted(set(data) - set(_EDITABLE_FIELDS))
    if unknown:
        raise InvalidInput([f"Unknown product field(s): {', '.join(unknown)}"])
    data = dict(data)
    if "formula" in data:
        data["formula"] = list(data["formula"] or [])

    errors = []
    if "name" in data:
        errors += collect_errors(
            validate_required_string(data["name"], "Name"),
            validate_string_length(data["name"], MAX_NAME_LENGTH, "Name"),
        )
    if "selling_price" in data:
        errors += collect_errors(
            validate_non_negative_number(data["selling_price"], "Selling price")
        )
    if "formula" in data:
        errors += validate_formula(data["formula"])
    if errors:
        raise InvalidInput(errors)

    def _update(session: Session) -> Dict[str, Any]:
        product = session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)

        if "name" in data:
            product.name = data["name"].strip()
        if "selling_price" in data:
            product.selling_price = to_decimal(data["selling_price"])
        if "formula" in data:
            new_lines = _build_formula_lines(session, data["formula"])
            product.formula.clear()
            # Old lines must be gone before the unique (product, material) rows return
            session.flush()
            product.formula.extend(new_lines)
        session.flush()
        return product.to_dict()

    result = run_atomic(_update, operation="update_product", session=session)
    log_operation(
        logger,
        operation="update_product",
        outcome="success",
        product_id=product_id,
        fields=sorted(data),
    )
    return result


def delete_product(product_id: int, *, session: Optional[Session] = None) -> None:
    """
    Delete a product and its formula. Sales and production logs are kept.

    Raises:
        ProductNotFound: If the product does not exist
    """

    def _delete(session: Session) -> None:
        product = session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        session.delete(product)
        session.flush()

    run_atomic(_delete, operation="delete_product", session=session)
    log_operation(logger, operation="delete_product", outcome="success", product_id=product_id)


def check_production_capacity(
    product_id: int, *, session: Optional[Session] = None
) -> Dict[str, Any]:
    """
    How many units of a product current material stock can make.

    Returns:
        Dict with "can_produce" (int) and "missing_materials" (names of
        formula materials that no longer exist)

    Raises:
        ProductNotFound: If the product does not exist
    """
    with _scope(session) as session:
        product = session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)

        materials = load_material_snapshot(session, [line.material_id for line in product.formula])
        missing = [
            line.material_name for line in product.formula if line.material_id not in materials
        ]
        return {
            "can_produce": stock_validator.max_producible(product.formula, materials),
            "missing_materials": missing,
        }
