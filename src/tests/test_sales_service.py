"""Tests for sales service."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from src.services import product_service, production_service, sales_service
from src.services.exceptions import InsufficientStock, InvalidInput, ProductNotFound


@pytest.fixture
def stocked_water(test_db, water):
    """Water 500ml with 10 units in stock."""
    production_service.produce(water["id"], 10)
    return product_service.get_product(water["id"])


class TestSell:
    """Tests for sell()."""

    def test_sell_at_selling_price(self, test_db, stocked_water):
        sale = sales_service.sell(stocked_water["id"], 4, customer_name="Corner Shop")

        assert sale["quantity"] == 4
        assert sale["unit_price"] == Decimal("2.00")
        assert sale["total_revenue"] == Decimal("8")
        assert sale["product_name"] == "Water 500ml"
        assert sale["customer_name"] == "Corner Shop"
        assert product_service.get_product(stocked_water["id"])["current_stock"] == Decimal("6")

    def test_sell_at_caller_price(self, test_db, stocked_water):
        sale = sales_service.sell(stocked_water["id"], 5, Decimal("1.50"))

        assert sale["unit_price"] == Decimal("1.50")
        assert sale["total_revenue"] == Decimal("7.5")

    def test_zero_price_rejected(self, test_db, stocked_water, store_dump):
        before = store_dump()

        with pytest.raises(InvalidInput) as exc_info:
            sales_service.sell(stocked_water["id"], 1, 0)

        assert exc_info.value.errors == ["Unit price: Value must be greater than zero"]
        assert store_dump() == before

    def test_unpriced_product_needs_a_price(self, test_db, bottle, store_dump):
        sample = product_service.create_product(
            "Sample", 0, [{"material_id": bottle["id"], "quantity": 1}], initial_stock=3
        )
        before = store_dump()

        with pytest.raises(InvalidInput):
            sales_service.sell(sample["id"], 1)
        assert store_dump() == before

        sale = sales_service.sell(sample["id"], 1, "0.25")
        assert sale["total_revenue"] == Decimal("0.25")

    def test_sell_entire_stock(self, test_db, stocked_water):
        sales_service.sell(stocked_water["id"], 10)
        assert product_service.get_product(stocked_water["id"])["current_stock"] == Decimal("0")

    def test_insufficient_stock(self, test_db, stocked_water, store_dump):
        before = store_dump()

        with pytest.raises(InsufficientStock) as exc_info:
            sales_service.sell(stocked_water["id"], 11)

        shortage = exc_info.value.shortages[0]
        assert shortage.entity == "Product"
        assert shortage.required == Decimal("11")
        assert shortage.available == Decimal("10")
        assert exc_info.value.entity_ids == [stocked_water["id"]]
        assert store_dump() == before

    @pytest.mark.parametrize(
        "quantity,price",
        [
            (0, None),
            (-1, None),
            (Decimal("1.5"), None),
            (1, -1),
            (1, "free"),
            (1, "1.23456"),
        ],
    )
    def test_rejects_bad_input(self, test_db, stocked_water, quantity, price):
        with pytest.raises(InvalidInput):
            sales_service.sell(stocked_water["id"], quantity, price)

    def test_missing_product(self, test_db):
        with pytest.raises(ProductNotFound):
            sales_service.sell(5, 1)


class TestSalesQueries:
    """Tests for get_sales_history() and get_revenue_by_date_range()."""

    @pytest.fixture
    def sales(self, test_db, stocked_water, bottle):
        other = product_service.create_product(
            "Empty Bottle", "0.90", [{"material_id": bottle["id"], "quantity": 1}]
        )
        production_service.produce(other["id"], 10)

        sales_service.sell(stocked_water["id"], 2, sold_at=datetime(2024, 3, 1, 9))
        sales_service.sell(other["id"], 5, sold_at=datetime(2024, 3, 1, 23, 59))
        sales_service.sell(stocked_water["id"], 3, sold_at=datetime(2024, 3, 2, 12))
        sales_service.sell(stocked_water["id"], 1, sold_at=datetime(2024, 3, 5, 12))
        return {"water": stocked_water, "other": other}

    def test_history_newest_first(self, test_db, sales):
        history = sales_service.get_sales_history()
        assert [s["quantity"] for s in history] == [1, 3, 5, 2]

        water_only = sales_service.get_sales_history(product_id=sales["water"]["id"])
        assert [s["quantity"] for s in water_only] == [1, 3, 2]

        assert [s["quantity"] for s in sales_service.get_sales_history(limit=2, offset=1)] == [3, 5]

    def test_revenue_by_date_range(self, test_db, sales):
        summary = sales_service.get_revenue_by_date_range(date(2024, 3, 1), date(2024, 3, 2))

        # Water: 5 units at 2.00; Empty Bottle: 5 units at 0.90
        assert summary["total_revenue"] == Decimal("14.5")
        assert summary["total_quantity"] == 10
        assert list(summary["sales_by_product"]) == ["Water 500ml", "Empty Bottle"]
        assert summary["sales_by_product"]["Water 500ml"] == {
            "quantity": 5,
            "revenue": Decimal("10"),
        }

    def test_single_day_range_is_inclusive(self, test_db, sales):
        summary = sales_service.get_revenue_by_date_range(date(2024, 3, 1), date(2024, 3, 1))
        assert summary["total_quantity"] == 7

    def test_empty_range(self, test_db, sales):
        summary = sales_service.get_revenue_by_date_range(date(2024, 4, 1), date(2024, 4, 30))
        assert summary["total_revenue"] == Decimal("0")
        assert summary["sales_by_product"] == {}

    def test_reversed_range(self, test_db):
        with pytest.raises(InvalidInput):
            sales_service.get_revenue_by_date_range(date(2024, 3, 2), date(2024, 3, 1))
