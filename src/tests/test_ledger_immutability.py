"""Tests that ledger records are append-only and consistent with stock."""

from decimal import Decimal

import pytest

from src.models import (
    ImmutableRecordError,
    MaterialTransaction,
    ProductionLog,
    ProductionMaterialUsage,
    Sale,
)
from src.services import (
    material_service,
    material_transaction_service,
    product_service,
    production_service,
    sales_service,
)


@pytest.fixture
def ledger(test_db, water, bottle):
    material_transaction_service.import_material(bottle["id"], 10, "0.50")
    log = production_service.produce(water["id"], 4)
    sale = sales_service.sell(water["id"], 1)
    return {"log": log, "sale": sale}


class TestAppendOnly:
    """Ledger rows reject updates and deletes."""

    @pytest.mark.parametrize(
        "model,field,value",
        [
            (Sale, "quantity", 99),
            (ProductionLog, "quantity_produced", 99),
            (ProductionMaterialUsage, "quantity_used", Decimal("99")),
            (MaterialTransaction, "quantity", Decimal("99")),
        ],
    )
    def test_update_rejected(self, test_db, ledger, model, field, value):
        session = test_db()
        record = session.query(model).first()
        setattr(record, field, value)

        with pytest.raises(ImmutableRecordError):
            session.flush()
        session.rollback()
        session.close()

    @pytest.mark.parametrize("model", [Sale, MaterialTransaction])
    def test_delete_rejected(self, test_db, ledger, model):
        session = test_db()
        session.delete(session.query(model).first())

        with pytest.raises(ImmutableRecordError):
            session.flush()
        session.rollback()
        session.close()


class TestLedgerConsistency:
    """Current stock equals the sum of the movements that produced it."""

    def test_material_stock_matches_ledger(self, test_db, ledger, bottle, label):
        material_transaction_service.export_material(label["id"], 3)

        for material in (bottle, label):
            current = material_service.get_material(material["id"])["current_stock"]
            movements = material_transaction_service.get_transaction_history(
                material_id=material["id"]
            )
            imported = sum(
                (t["quantity"] for t in movements if t["transaction_type"] == "import"),
                Decimal("0"),
            )
            exported = sum(
                (t["quantity"] for t in movements if t["transaction_type"] == "export"),
                Decimal("0"),
            )
            assert current == material["current_stock"] + imported - exported

    def test_product_stock_matches_logs_and_sales(self, test_db, ledger, water):
        produced = sum(
            log["quantity_produced"]
            for log in production_service.get_production_history(product_id=water["id"])
        )
        sold = sum(s["quantity"] for s in sales_service.get_sales_history(product_id=water["id"]))

        current = product_service.get_product(water["id"])["current_stock"]
        assert current == produced - sold == 3

    def test_sale_revenue_is_quantity_times_price(self, test_db, ledger):
        sale = ledger["sale"]
        assert sale["total_revenue"] == sale["quantity"] * sale["unit_price"]

    def test_stored_totals_match_their_parts(self, test_db, ledger):
        session = test_db()
        for txn in session.query(MaterialTransaction).all():
            assert txn.total_amount == txn.computed_total()
        for log in session.query(ProductionLog).all():
            assert log.total_cost == log.computed_total_cost()
        assert sum(1 for txn in session.query(MaterialTransaction).all() if txn.is_import) == 1
        session.close()
