"""Tests for material imports, exports and the material ledger."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from src.services import material_service, material_transaction_service
from src.services.exceptions import InsufficientStock, InvalidInput, MaterialNotFound


class TestImportMaterial:
    """Tests for import_material()."""

    def test_import_into_existing_material(self, test_db, bottle):
        result = material_transaction_service.import_material(
            bottle["id"], 50, "0.60", note="Supplier A", actor="kim"
        )

        assert result["transaction_type"] == "import"
        assert result["quantity"] == Decimal("50")
        assert result["unit_price"] == Decimal("0.60")
        assert result["total_amount"] == Decimal("30")
        assert result["material_name"] == "Bottle"
        assert result["created_by"] == "kim"

        material = material_service.get_material(bottle["id"])
        assert material["current_stock"] == Decimal("150")
        assert material["unit_price"] == Decimal("0.60")
        assert result["material"]["current_stock"] == Decimal("150")

    def test_last_price_wins(self, test_db, bottle):
        material_transaction_service.import_material(bottle["id"], 10, "0.70")
        material_transaction_service.import_material(bottle["id"], 10, "0.40")

        assert material_service.get_material(bottle["id"])["unit_price"] == Decimal("0.40")

    def test_import_creates_new_material(self, test_db):
        result = material_transaction_service.import_material(
            new_material={"name": "Shrink Wrap", "unit": "m"}, quantity="12.5", unit_price=2
        )

        material = material_service.get_material(result["material_id"])
        assert material["name"] == "Shrink Wrap"
        assert material["current_stock"] == Decimal("12.5")
        assert material["unit_price"] == Decimal("2")

    def test_new_material_rolled_back_with_failed_import(self, test_db):
        with pytest.raises(InvalidInput):
            material_transaction_service.import_material(
                new_material={"name": "", "unit": "m"}, quantity=1, unit_price=1
            )
        assert material_service.get_all_materials() == []

    def test_requires_exactly_one_target(self, test_db, bottle):
        with pytest.raises(InvalidInput):
            material_transaction_service.import_material(quantity=1, unit_price=1)
        with pytest.raises(InvalidInput):
            material_transaction_service.import_material(
                bottle["id"], 1, 1, new_material={"name": "X", "unit": "m"}
            )

    @pytest.mark.parametrize("quantity,price", [(0, 1), (-5, 1), (1, 0), (1, -1), ("x", 1)])
    def test_rejects_non_positive_values(self, test_db, bottle, quantity, price):
        with pytest.raises(InvalidInput):
            material_transaction_service.import_material(bottle["id"], quantity, price)

        material = material_service.get_material(bottle["id"])
        assert material["current_stock"] == Decimal("100")
        assert material_transaction_service.get_transaction_history() == []

    @pytest.mark.parametrize("quantity,price", [("0.00004", 1), (1, "0.12345")])
    def test_rejects_values_finer_than_stock_scale(self, test_db, bottle, quantity, price):
        with pytest.raises(InvalidInput) as exc_info:
            material_transaction_service.import_material(bottle["id"], quantity, price)

        assert "at most 4 decimal places" in exc_info.value.errors[0]
        assert material_service.get_material(bottle["id"])["current_stock"] == Decimal("100")

    def test_fractional_amount_kept_exactly(self, test_db, bottle):
        result = material_transaction_service.import_material(bottle["id"], "0.3333", "0.3333")

        stored = material_transaction_service.get_transaction_history()[0]
        assert result["total_amount"] == Decimal("0.11108889")
        assert stored["total_amount"] == Decimal("0.11108889")

    def test_missing_material(self, test_db):
        with pytest.raises(MaterialNotFound):
            material_transaction_service.import_material(404, 1, 1)
        assert material_transaction_service.get_transaction_history() == []


class TestExportMaterial:
    """Tests for export_material()."""

    def test_export_decrements_stock(self, test_db, bottle):
        result = material_transaction_service.export_material(bottle["id"], 30, note="Damaged")

        assert result["transaction_type"] == "export"
        assert result["unit_price"] == Decimal("0.50")
        assert result["total_amount"] == Decimal("15")
        assert material_service.get_material(bottle["id"])["current_stock"] == Decimal("70")

    def test_export_more_than_stock(self, test_db, label):
        with pytest.raises(InsufficientStock) as exc_info:
            material_transaction_service.export_material(label["id"], 21)

        shortage = exc_info.value.shortages[0]
        assert shortage.entity == "Material"
        assert shortage.required == Decimal("21")
        assert shortage.available == Decimal("20")
        assert material_service.get_material(label["id"])["current_stock"] == Decimal("20")
        assert material_transaction_service.get_transaction_history() == []

    def test_export_entire_stock(self, test_db, label):
        material_transaction_service.export_material(label["id"], 20)
        assert material_service.get_material(label["id"])["current_stock"] == Decimal("0")


class TestTransactionHistory:
    """Tests for get_transaction_history()."""

    def test_filters_and_order(self, test_db, bottle, cap):
        base = datetime(2024, 3, 1, 9, 0)
        material_transaction_service.import_material(bottle["id"], 1, 1, imported_at=base)
        material_transaction_service.import_material(
            cap["id"], 2, 1, imported_at=base + timedelta(days=1)
        )
        material_transaction_service.export_material(
            bottle["id"], 3, exported_at=base + timedelta(days=2)
        )

        history = material_transaction_service.get_transaction_history()
        assert [t["quantity"] for t in history] == [Decimal("3"), Decimal("2"), Decimal("1")]

        bottle_only = material_transaction_service.get_transaction_history(material_id=bottle["id"])
        assert len(bottle_only) == 2

        imports = material_transaction_service.get_transaction_history(transaction_type="import")
        assert {t["transaction_type"] for t in imports} == {"import"}
        assert len(imports) == 2

        window = material_transaction_service.get_transaction_history(
            start_date=base + timedelta(days=1), end_date=base + timedelta(days=2)
        )
        assert [t["material_name"] for t in window] == ["Cap"]

        page = material_transaction_service.get_transaction_history(limit=1, offset=1)
        assert [t["quantity"] for t in page] == [Decimal("2")]

    def test_unknown_type(self, test_db):
        with pytest.raises(InvalidInput):
            material_transaction_service.get_transaction_history(transaction_type="transfer")
