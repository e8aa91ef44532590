from decimal import Decimal

import pytest

from billing.models import Party, ReconciliationEvent, Sale
from billing.services import inventory_service, sale_service


def _sale(item_id, quantity=90, price=25):
    return {
        "customer_name": "Asha Stores",
        "phone_number": "+91 99887 76655",
        "date": "05/02/2024",
        "items": [{"item_id": item_id, "quantity": quantity, "price": price}],
    }


@pytest.fixture
def stocked_wheat(db_session, wheat):
    inventory_service.update_item(wheat.id, {"opening_stock": 10})
    inventory_service.adjust_universal_stock(Decimal("10"))
    db_session.commit()
    return wheat


class TestSaleLifecycle:
    def test_sale_decreases_stock_and_raises_customer_balance(self, db_session, stocked_wheat):
        sale, warnings, _ = sale_service.create_sale(_sale(stocked_wheat.id))

        assert warnings == []
        assert sale.document_number == "INV-1"
        assert sale.total_amount == Decimal("2250.00")

        customer = db_session.get(Party, sale.party_id)
        assert customer.role == "customer"
        assert customer.balance == Decimal("2250.00")

        assert stocked_wheat.opening_stock == Decimal("7.0000")
        assert inventory_service.get_universal_item().opening_stock == Decimal("7.0000")

    def test_oversell_clamps_at_zero(self, db_session, wheat):
        sale, warnings, _ = sale_service.create_sale(_sale(wheat.id, quantity=600))

        assert warnings == []
        assert wheat.opening_stock == Decimal("0")

        clamped = (
            db_session.query(ReconciliationEvent)
            .filter_by(document_id=sale.id, entity_type="item", entity_id=wheat.id)
            .one()
        )
        assert clamped.note == "clamped at 0"

    def test_update_and_delete_restore_stock(self, db_session, stocked_wheat):
        sale, _, _ = sale_service.create_sale(_sale(stocked_wheat.id))

        sale_service.update_sale(sale.id, {"items": [{"item_id": stocked_wheat.id, "quantity": 30, "price": 25}]})
        assert stocked_wheat.opening_stock == Decimal("9.0000")
        assert db_session.get(Party, sale.party_id).balance == Decimal("750.00")

        party_id = sale.party_id
        sale_service.delete_sale(sale.id)
        assert stocked_wheat.opening_stock == Decimal("10.0000")
        assert inventory_service.get_universal_item().opening_stock == Decimal("10.0000")
        assert db_session.get(Party, party_id).balance == Decimal("0.00")
        assert db_session.query(Sale).count() == 0

    def test_list_filters(self, db_session, stocked_wheat):
        sale_service.create_sale(_sale(stocked_wheat.id, quantity=30))
        other = _sale(stocked_wheat.id, quantity=30)
        other["customer_name"] = "Mehta & Sons"
        other["status"] = "completed"
        sale_service.create_sale(other)

        assert len(sale_service.list_sales()) == 2
        assert [s.party_name for s in sale_service.list_sales(status="completed")] == ["Mehta & Sons"]
        assert [s.party_name for s in sale_service.list_by_party("asha")] == ["Asha Stores"]
        assert len(sale_service.list_sales(search="INV-2")) == 1
