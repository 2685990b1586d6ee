"""Tests for the pure stock validator.

These tests use plain dicts; no database is involved.
"""

from decimal import Decimal

import pytest

from src.services.exceptions import InvalidInput
from src.services.stock_validator import max_producible, validate_stock


@pytest.fixture
def materials():
    return {
        1: {"id": 1, "name": "Bottle", "current_stock": Decimal("150")},
        2: {"id": 2, "name": "Cap", "current_stock": Decimal("40")},
        3: {"id": 3, "name": "Label", "current_stock": Decimal("5")},
    }


@pytest.fixture
def formula():
    return [
        {"material_id": 1, "material_name": "Bottle", "quantity": Decimal("1")},
        {"material_id": 2, "material_name": "Cap", "quantity": Decimal("2")},
        {"material_id": 3, "material_name": "Label", "quantity": Decimal("0.5")},
    ]


class TestValidateStock:
    """Tests for validate_stock()."""

    def test_sufficient_stock_is_valid(self, formula, materials):
        result = validate_stock(formula, 10, materials)

        assert result.is_valid
        assert result.errors == []
        assert result.shortages == []
        assert result.can_produce == 10

    def test_reports_every_shortage(self, formula, materials):
        result = validate_stock(formula, 25, materials)

        assert not result.is_valid
        assert len(result.errors) == 2
        names = [s.name for s in result.shortages]
        assert names == ["Cap", "Label"]

        cap = result.shortages[0]
        assert cap.required == Decimal("50")
        assert cap.available == Decimal("40")
        assert cap.short_by == Decimal("10")
        assert "Insufficient Cap" in result.errors[0]

    def test_missing_material(self, formula, materials):
        del materials[2]

        result = validate_stock(formula, 1, materials)

        assert not result.is_valid
        assert result.missing_materials == ["Cap"]
        assert result.errors == ["Material not found: Cap"]
        assert result.can_produce == 0

    def test_exact_stock_is_valid(self, formula, materials):
        # Label 5 / 0.5 = 10 units exactly
        assert validate_stock(formula, 10, materials).is_valid
        assert not validate_stock(formula, 11, materials).is_valid

    def test_empty_formula(self, materials):
        result = validate_stock([], 3, materials)

        assert result.is_valid
        assert result.can_produce == 0

    @pytest.mark.parametrize("quantity", [0, -1, Decimal("1.5"), "abc", None])
    def test_rejects_bad_quantity(self, formula, materials, quantity):
        with pytest.raises(InvalidInput):
            validate_stock(formula, quantity, materials)

    def test_zero_formula_quantity_lists_the_line(self, formula, materials):
        formula[1]["quantity"] = Decimal("0")

        with pytest.raises(InvalidInput) as exc_info:
            validate_stock(formula, 1, materials)

        assert exc_info.value.errors == ["Formula quantity for Cap must be greater than zero"]

    def test_accepts_material_iterable(self, formula, materials):
        result = validate_stock(formula, 2, list(materials.values()))
        assert result.is_valid

    def test_to_dict(self, formula, materials):
        data = validate_stock(formula, 25, materials).to_dict()

        assert data["is_valid"] is False
        assert data["can_produce"] == 10
        assert data["shortages"][0]["material_id"] == 2
        assert data["shortages"][0]["short_by"] == Decimal("10")


class TestMaxProducible:
    """Tests for max_producible()."""

    def test_limited_by_scarcest_material(self, formula, materials):
        # Bottle 150, Cap 40/2 = 20, Label 5/0.5 = 10
        assert max_producible(formula, materials) == 10

    def test_floor_of_fractional_capacity(self, materials):
        formula = [{"material_id": 1, "material_name": "Bottle", "quantity": Decimal("0.7")}]
        # 150 / 0.7 = 214.28...
        assert max_producible(formula, materials) == 214

    def test_zero_stock(self, formula, materials):
        materials[1]["current_stock"] = Decimal("0")
        assert max_producible(formula, materials) == 0

    def test_empty_formula(self, materials):
        assert max_producible([], materials) == 0

    def test_non_positive_formula_quantity(self, materials):
        formula = [{"material_id": 1, "material_name": "Bottle", "quantity": 0}]
        with pytest.raises(InvalidInput):
            max_producible(formula, materials)
