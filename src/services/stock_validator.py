"""
Stock Validator - pure stock sufficiency checks for production.

Given a product formula, a production quantity and a snapshot of material
stock, decides whether the run can go ahead and how many units the stock
could support. No database access: callers load a fresh snapshot (inside
their transaction when the answer gates a write).

Formula lines and materials may be ORM objects or plain mappings, so the
presentation layer can validate against data it already holds.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .exceptions import InvalidInput, Shortage
from src.utils.validators import to_decimal, validate_positive_integer


@dataclass
class StockCheckResult:
    """Outcome of validate_stock.

    Attributes:
        is_valid: True iff every formula material exists and covers the run
        errors: One message per missing or insufficient material
        can_produce: Largest quantity the snapshot supports
        shortages: Structured detail for insufficient materials
        missing_materials: Names of formula materials absent from the snapshot
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    can_produce: int = 0
    shortages: List[Shortage] = field(default_factory=list)
    missing_materials: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "can_produce": self.can_produce,
            "missing_materials": list(self.missing_materials),
            "shortages": [
                {
                    "material_id": s.entity_id,
                    "material_name": s.name,
                    "required": s.required,
                    "available": s.available,
                    "short_by": s.short_by,
                }
                for s in self.shortages
            ],
        }


def _field(item: Any, name: str, default=None):
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def _material_map(materials: Union[Mapping, Iterable]) -> Dict[Any, Any]:
    if isinstance(materials, Mapping):
        return dict(materials)
    return {_field(m, "id"): m for m in materials}


def _line_quantity(line: Any) -> Decimal:
    quantity = to_decimal(_field(line, "quantity"))
    if quantity is None or quantity <= 0:
        raise InvalidInput(
            [f"Formula quantity for {_field(line, 'material_name')} must be greater than zero"]
        )
    return quantity


def max_producible(formula: Iterable, materials: Union[Mapping, Iterable]) -> int:
    """
    Maximum number of units the material snapshot can support.

    min over formula lines of floor(current_stock / quantity_per_unit);
    0 when any material is missing or the formula is empty.
    """
    material_map = _material_map(materials)
    lines = list(formula)
    if not lines:
        return 0

    capacity: Optional[int] = None
    for line in lines:
        material = material_map.get(_field(line, "material_id"))
        if material is None:
            return 0
        stock = to_decimal(_field(material, "current_stock")) or Decimal("0")
        possible = int(stock // _line_quantity(line)) if stock > 0 else 0
        capacity = possible if capacity is None else min(capacity, possible)
    return capacity or 0


def validate_stock(
    formula: Iterable,
    quantity: Any,
    materials: Union[Mapping, Iterable],
) -> StockCheckResult:
    """
    Check whether ``quantity`` units can be produced from the snapshot.

    Args:
        formula: Lines with material_id, material_name, quantity (per unit)
        quantity: Units to produce (positive whole number)
        materials: Mapping of material id to material, or an iterable of
            materials with an ``id``; each needs ``current_stock`` and ``name``

    Returns:
        StockCheckResult

    Raises:
        InvalidInput: If quantity is not a positive whole number or a
            formula quantity is not positive
    """
    is_valid, error = validate_positive_integer(quantity, "Quantity")
    if not is_valid:
        raise InvalidInput([error])
    units = to_decimal(quantity)

    material_map = _material_map(materials)
    lines = list(formula)

    errors: List[str] = []
    shortages: List[Shortage] = []
    missing: List[str] = []

    for line in lines:
        material_id = _field(line, "material_id")
        per_unit = _line_quantity(line)
        material = material_map.get(material_id)
        line_name = _field(line, "material_name") or str(material_id)

        if material is None:
            missing.append(line_name)
            errors.append(f"Material not found: {line_name}")
            continue

        material_name = _field(material, "name") or line_name
        required = per_unit * units
        available = to_decimal(_field(material, "current_stock")) or Decimal("0")
        if available < required:
            shortages.append(
                Shortage(
                    entity="Material",
                    entity_id=material_id,
                    name=material_name,
                    required=required,
                    available=available,
                )
            )
            errors.append(
                f"Insufficient {material_name}: required {required}, available {available}"
            )

    return StockCheckResult(
        is_valid=not errors,
        errors=errors,
        can_produce=max_producible(lines, material_map),
        shortages=shortages,
        missing_materials=missing,
    )
