from decimal import Decimal

import pytest

from billing.models import Party, Payment, ReconciliationEvent
from billing.services import party_service
from billing.services.ledger_service import DocumentContext, adjust_balance
from billing.validation import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def supplier(db_session):
    party = party_service.create_party({
        "name": "Ravi Traders",
        "phone_number": "9876543210",
        "role": "supplier",
    })
    return party


class TestAdjustBalance:
    def test_add_subtract_set(self, db_session, supplier):
        adjust_balance(supplier.id, "100.005", "add")
        assert supplier.balance == Decimal("100.01")

        adjust_balance(supplier.id, 40, "subtract")
        assert supplier.balance == Decimal("60.01")

        adjust_balance(supplier.id, 5, "set")
        assert supplier.balance == Decimal("5.00")

    def test_balance_may_go_negative(self, db_session, supplier):
        adjust_balance(supplier.id, 250, "subtract")
        assert supplier.balance == Decimal("-250.00")

    def test_unknown_party(self, db_session):
        with pytest.raises(NotFoundError):
            adjust_balance(99999, 10, "add")

    def test_invalid_operation(self, db_session, supplier):
        with pytest.raises(ValidationError):
            adjust_balance(supplier.id, 10, "multiply")

    def test_context_writes_reconciliation_event(self, db_session, supplier):
        context = DocumentContext("purchase", 7, "BILL-7", "create")
        adjust_balance(supplier.id, 300, "add", context=context)

        event = db_session.query(ReconciliationEvent).one()
        assert event.entity_type == "party"
        assert event.entity_id == supplier.id
        assert event.effect == "add"
        assert event.document_number == "BILL-7"
        assert event.outcome == "applied"


class TestFindOrCreate:
    def test_creates_then_reuses(self, db_session):
        party, created = party_service.find_or_create(
            {"name": "Asha", "phone_number": "98765 43210"}, default_role="customer"
        )
        assert created
        assert party.role == "customer"
        assert party.phone_number == "+919876543210"

        again, created_again = party_service.find_or_create({"name": "Asha", "phone_number": "+919876543210"})
        assert not created_again
        assert again.id == party.id
        assert db_session.query(Party).count() == 1

    def test_existing_balance_is_untouched(self, db_session, supplier):
        adjust_balance(supplier.id, 75, "add")
        db_session.commit()

        party, created = party_service.find_or_create({"name": "Ravi Traders", "phone_number": "9876543210"})
        assert not created
        assert party.balance == Decimal("75.00")

    def test_same_name_different_phone_is_new_party(self, db_session, supplier):
        party, created = party_service.find_or_create({"name": "Ravi Traders", "phone_number": "9000000000"})
        assert created
        assert party.id != supplier.id

    def test_name_and_phone_required(self, db_session):
        with pytest.raises(ValidationError):
            party_service.find_or_create({"name": "", "phone_number": "9876543210"})


class TestPartyCrud:
    def test_duplicate_identity_conflicts(self, db_session, supplier):
        with pytest.raises(ConflictError):
            party_service.create_party({"name": "Ravi Traders", "phone_number": "+919876543210"})

    def test_update_into_existing_identity_conflicts(self, db_session, supplier):
        other = party_service.create_party({"name": "Mohan", "phone_number": "9123456789"})
        with pytest.raises(ConflictError):
            party_service.update_party(other.id, {"name": "Ravi Traders", "phone_number": "9876543210"})

    def test_invalid_role_rejected(self, db_session):
        with pytest.raises(ValidationError):
            party_service.create_party({"name": "X", "phone_number": "9123456789", "role": "vendor"})

    def test_list_filters_by_role_and_search(self, db_session, supplier):
        party_service.create_party({"name": "Mohan", "phone_number": "9123456789", "role": "customer"})

        assert [p.name for p in party_service.list_parties(role="supplier")] == ["Ravi Traders"]
        assert [p.name for p in party_service.list_parties(search="moh")] == ["Mohan"]

    def test_delete_clears_transaction_references(self, db_session, supplier):
        payment = Payment(
            document_number="PAY-IN-1",
            type="payment-in",
            party_id=supplier.id,
            party_name=supplier.name,
            phone_number=supplier.phone_number,
            amount=10,
            total_amount=10,
            date="2024-01-01",
            status="completed",
        )
        db_session.add(payment)
        db_session.commit()
        payment_id = payment.id

        party_service.delete_party(supplier.id)
        db_session.expire_all()

        kept = db_session.get(Payment, payment_id)
        assert kept is not None
        assert kept.party_id is None
        assert kept.party_name == "Ravi Traders"

    def test_get_missing_party(self, db_session):
        with pytest.raises(NotFoundError):
            party_service.get_party(12345)
