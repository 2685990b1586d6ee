"""Tests for inventory snapshot service."""

from datetime import date, datetime, timedelta
from decimal import Decimal

from src.models import InventorySnapshot, SnapshotMaterial
from src.services import (
    inventory_snapshot_service,
    material_transaction_service,
    production_service,
    sales_service,
)


class TestCreateSnapshot:
    """Tests for create_snapshot()."""

    def test_values_materials_and_products(self, test_db, water, bottle, cap, label):
        production_service.produce(water["id"], 10)

        snapshot = inventory_snapshot_service.create_snapshot(date(2024, 3, 31))

        assert snapshot["snapshot_date"] == "2024-03-31"
        # Bottle 90 * 0.50 + Cap 90 * 0.10 + Label 15 * 0.20
        assert snapshot["total_material_value"] == Decimal("57")
        # Water 10 * 0.70
        assert snapshot["total_product_value"] == Decimal("7")

        materials = {line["material_name"]: line for line in snapshot["materials"]}
        assert materials["Bottle"]["stock"] == Decimal("90")
        assert materials["Bottle"]["value"] == Decimal("45")
        assert snapshot["products"][0]["product_name"] == "Water 500ml"
        assert snapshot["products"][0]["stock"] == Decimal("10")

    def test_product_value_uses_ten_most_recent_logs(self, test_db, water, bottle):
        # Twelve one-unit runs; the first two at the old bottle price
        material_transaction_service.import_material(bottle["id"], 100, "0.50")
        base = datetime(2024, 3, 1, 8)
        for day in range(2):
            production_service.produce(water["id"], 1, produced_at=base + timedelta(days=day))
        material_transaction_service.import_material(bottle["id"], 1, "1.50")
        for day in range(2, 12):
            production_service.produce(water["id"], 1, produced_at=base + timedelta(days=day))

        snapshot = inventory_snapshot_service.create_snapshot(date(2024, 3, 31))

        # Recent runs cost 1.50 + 0.10 + 0.10 = 1.70 per unit
        assert snapshot["total_product_value"] == Decimal("12") * Decimal("1.7")

    def test_product_without_logs_is_worth_zero(self, test_db, water):
        snapshot = inventory_snapshot_service.create_snapshot(date(2024, 3, 31))
        assert snapshot["total_product_value"] == Decimal("0")

    def test_recreating_a_date_replaces_it(self, test_db, water, bottle):
        first = inventory_snapshot_service.create_snapshot(date(2024, 3, 31))
        material_transaction_service.export_material(bottle["id"], 100)

        second = inventory_snapshot_service.create_snapshot(date(2024, 3, 31))

        assert second["id"] == first["id"]
        assert second["total_material_value"] == first["total_material_value"] - Decimal("50")

        session = test_db()
        assert session.query(InventorySnapshot).count() == 1
        assert session.query(SnapshotMaterial).count() == 3

    def test_defaults_to_today(self, test_db):
        snapshot = inventory_snapshot_service.create_snapshot()
        assert snapshot["snapshot_date"] is not None


class TestReadSnapshots:
    """Tests for get_snapshot_by_date() and get_all_snapshots()."""

    def test_get_by_date(self, test_db, water):
        inventory_snapshot_service.create_snapshot(date(2024, 3, 1))

        assert inventory_snapshot_service.get_snapshot_by_date(date(2024, 3, 1)) is not None
        assert inventory_snapshot_service.get_snapshot_by_date(date(2024, 3, 2)) is None

    def test_all_newest_first(self, test_db, water):
        for day in (5, 1, 9):
            inventory_snapshot_service.create_snapshot(date(2024, 3, day))

        dates = [s["snapshot_date"] for s in inventory_snapshot_service.get_all_snapshots()]
        assert dates == ["2024-03-09", "2024-03-05", "2024-03-01"]
        assert len(inventory_snapshot_service.get_all_snapshots(limit=2)) == 2

    def test_snapshot_is_independent_of_later_sales(self, test_db, water):
        production_service.produce(water["id"], 5)
        inventory_snapshot_service.create_snapshot(date(2024, 3, 1))
        sales_service.sell(water["id"], 5)

        stored = inventory_snapshot_service.get_snapshot_by_date(date(2024, 3, 1))
        assert stored["products"][0]["stock"] == Decimal("5")
