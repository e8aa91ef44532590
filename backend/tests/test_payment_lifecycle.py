from decimal import Decimal

import pytest

from billing.extensions import db
from billing.models import Party, Payment
from billing.services import payment_service
from billing.validation import NotFoundError, ValidationError


def _payload(**extra):
    data = {
        "type": "payment-in",
        "party_name": "Asha Stores",
        "phone_number": "9988776655",
        "amount": 500,
        "date": "2024-05-03",
    }
    data.update(extra)
    return data


def _balance(party_id):
    return db.session.get(Party, party_id).balance


class TestCreatePayment:
    def test_payment_in_subtracts(self, db_session):
        payment = payment_service.create_payment(_payload())

        assert payment.document_number == "PAY-IN-1"
        assert payment.status == "completed"
        assert payment.payment_method == "cash"
        assert payment.total_amount == Decimal("500.00")
        assert _balance(payment.party_id) == Decimal("-500.00")

    def test_payment_out_also_subtracts(self, db_session):
        payment = payment_service.create_payment(_payload(type="payment-out"))

        assert payment.document_number == "PAY-OUT-1"
        assert _balance(payment.party_id) == Decimal("-500.00")

    def test_required_fields(self, db_session):
        with pytest.raises(ValidationError) as exc:
            payment_service.create_payment({"party_name": "Asha Stores"})
        assert exc.value.errors == ["Party name, phone number, amount, and date are required"]

    def test_amount_must_be_positive(self, db_session):
        with pytest.raises(ValidationError) as exc:
            payment_service.create_payment(_payload(amount=-5))
        assert "Amount must be greater than 0" in exc.value.errors
        assert db_session.query(Payment).count() == 0

    def test_invalid_type(self, db_session):
        with pytest.raises(ValidationError):
            payment_service.create_payment(_payload(type="refund"))


class TestPaymentStatus:
    def test_toggle_reapplies_subtract(self, db_session):
        payment = payment_service.create_payment(_payload())

        payment_service.set_status(payment.id, "cancelled")
        assert _balance(payment.party_id) == Decimal("-1000.00")

        payment_service.set_status(payment.id, "completed")
        assert _balance(payment.party_id) == Decimal("-1500.00")

    def test_pending_transitions_leave_balance(self, db_session):
        payment = payment_service.create_payment(_payload(status="pending"))
        assert _balance(payment.party_id) == Decimal("-500.00")

        payment_service.set_status(payment.id, "completed")
        assert _balance(payment.party_id) == Decimal("-500.00")

    def test_same_status_is_noop(self, db_session):
        payment = payment_service.create_payment(_payload())
        payment_service.set_status(payment.id, "completed")
        assert _balance(payment.party_id) == Decimal("-500.00")

    def test_cannot_return_to_pending(self, db_session):
        payment = payment_service.create_payment(_payload())
        with pytest.raises(ValidationError):
            payment_service.set_status(payment.id, "pending")

    def test_invalid_status_value(self, db_session):
        payment = payment_service.create_payment(_payload())
        with pytest.raises(ValidationError):
            payment_service.set_status(payment.id, "refunded")


class TestUpdateAndDelete:
    def test_amount_change_moves_difference(self, db_session):
        payment = payment_service.create_payment(_payload())

        updated = payment_service.update_payment(payment.id, {"amount": 800})

        assert updated.amount == Decimal("800.00")
        assert updated.total_amount == Decimal("800.00")
        assert _balance(updated.party_id) == Decimal("-800.00")

    def test_description_only_update_leaves_balance(self, db_session):
        payment = payment_service.create_payment(_payload())

        payment_service.update_payment(payment.id, {"description": "May advance"})

        assert payment.description == "May advance"
        assert _balance(payment.party_id) == Decimal("-500.00")

    def test_party_change_moves_payment(self, db_session):
        payment = payment_service.create_payment(_payload())
        old_party_id = payment.party_id

        updated = payment_service.update_payment(payment.id, {"party_name": "Mehta & Sons", "phone_number": "9000011111"})

        assert _balance(old_party_id) == Decimal("0.00")
        assert _balance(updated.party_id) == Decimal("-500.00")

    def test_delete_completed_restores_balance(self, db_session):
        payment = payment_service.create_payment(_payload())
        party_id = payment.party_id

        payment_service.delete_payment(payment.id)

        assert _balance(party_id) == Decimal("0.00")
        assert db_session.query(Payment).count() == 0

    def test_delete_pending_leaves_balance(self, db_session):
        payment = payment_service.create_payment(_payload(status="pending"))
        party_id = payment.party_id

        payment_service.delete_payment(payment.id)

        assert _balance(party_id) == Decimal("-500.00")

    def test_delete_missing(self, db_session):
        with pytest.raises(NotFoundError):
            payment_service.delete_payment(777)


class TestPaymentQueries:
    def test_summary_groups_by_type(self, db_session):
        payment_service.create_payment(_payload())
        payment_service.create_payment(_payload(amount=250, status="pending"))
        payment_service.create_payment(_payload(type="payment-out", amount=100))

        summary = {row["type"]: row for row in payment_service.get_summary()}

        assert summary["payment-in"]["total_amount"] == 750.0
        assert summary["payment-in"]["total_count"] == 2
        assert summary["payment-in"]["pending_count"] == 1
        assert summary["payment-in"]["completed_count"] == 1
        assert summary["payment-out"]["total_count"] == 1

    def test_filters(self, db_session):
        payment_service.create_payment(_payload())
        payment_service.create_payment(_payload(type="payment-out", payment_method="upi"))

        assert len(payment_service.list_payments(payment_type="payment-out")) == 1
        assert len(payment_service.list_payments(payment_method="upi")) == 1
        assert len(payment_service.list_by_party("asha")) == 2
        assert len(payment_service.list_by_type("payment-in")) == 1
