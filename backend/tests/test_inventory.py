from decimal import Decimal

import pytest

from billing.models import Item
from billing.services import inventory_service
from billing.validation import ConflictError, NotFoundError, ValidationError


class TestStockAdjustment:
    def test_increase_converts_kg_to_bags(self, db_session, wheat):
        inventory_service.adjust_stock(wheat.id, 300, "increase")
        assert wheat.opening_stock == Decimal("10.0000")

    def test_decrease_rounds_to_four_places(self, db_session, wheat):
        inventory_service.adjust_stock(wheat.id, 300, "increase")
        inventory_service.adjust_stock(wheat.id, 10, "decrease")
        assert wheat.opening_stock == Decimal("9.6667")

    def test_decrease_clamps_at_zero(self, db_session, wheat):
        inventory_service.adjust_stock(wheat.id, 60, "increase")
        inventory_service.adjust_stock(wheat.id, 300, "decrease")
        assert wheat.opening_stock == Decimal("0")

    def test_unknown_item(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.adjust_stock(424242, 30, "increase")

    def test_unknown_direction(self, db_session, wheat):
        with pytest.raises(ValidationError):
            inventory_service.adjust_stock(wheat.id, 30, "sideways")

    def test_universal_takes_signed_bags(self, db_session):
        inventory_service.adjust_universal_stock(Decimal("12.5"))
        inventory_service.adjust_universal_stock(Decimal("-2.5"))
        assert inventory_service.get_universal_item().opening_stock == Decimal("10.0000")


class TestUniversalItem:
    def test_created_once(self, db_session):
        first = inventory_service.ensure_universal_item()
        second = inventory_service.ensure_universal_item()
        assert first.id == second.id
        assert db_session.query(Item).filter_by(is_universal=True).count() == 1
        assert first.product_name == "Bardana"

    def test_cannot_be_deleted(self, db_session):
        item = inventory_service.get_universal_item()
        with pytest.raises(ConflictError):
            inventory_service.delete_item(item.id)


class TestItemCrud:
    def test_create_with_stock_in_kg(self, db_session):
        item = inventory_service.create_item({
            "product_name": "Sugar",
            "category": "Kirana",
            "purchase_price": "38.50",
            "opening_stock_kg": 90,
        })
        assert item.opening_stock == Decimal("3.0000")
        assert item.is_universal is False

    def test_invalid_category(self, db_session):
        with pytest.raises(ValidationError) as exc:
            inventory_service.create_item({"product_name": "Oil", "category": "Liquid"})
        assert 'Category must be either "Primary" or "Kirana"' in exc.value.errors

    def test_universal_fields_not_writable(self, db_session):
        with pytest.raises(ValidationError):
            inventory_service.create_item({"product_name": "Fake", "category": "Primary", "is_universal": True})

    def test_low_stock_filter(self, db_session, wheat):
        inventory_service.update_item(wheat.id, {"low_stock_alert": 5})
        inventory_service.create_item({"product_name": "Dal", "category": "Kirana", "opening_stock": 20, "low_stock_alert": 5})

        names = [item.product_name for item in inventory_service.list_items(low_stock=True)]
        assert "Wheat" in names
        assert "Dal" not in names

    def test_delete_regular_item(self, db_session, rice):
        inventory_service.delete_item(rice.id)
        with pytest.raises(NotFoundError):
            inventory_service.get_item(rice.id)
