import logging

import pytest
from sqlalchemy.exc import OperationalError

from billing.models import DocumentSequence, Purchase
from billing.services import document_service, purchase_service
from billing.services.document_service import next_document_number
from billing.validation import ValidationError


def _purchase(number):
    return Purchase(
        document_number=number,
        party_name="Seed Supplier",
        phone_number="+911111111111",
        date="2024-01-01",
        status="pending",
        total_amount=0,
    )


class TestDocumentNumbering:
    def test_fresh_prefix_starts_at_one(self, db_session):
        assert next_document_number("purchase") == "BILL-1"
        assert next_document_number("purchase") == "BILL-2"

    def test_prefixes_are_independent(self, db_session):
        assert next_document_number("sale") == "INV-1"
        assert next_document_number("payment-in") == "PAY-IN-1"
        assert next_document_number("payment-out") == "PAY-OUT-1"
        assert next_document_number("sale") == "INV-2"
        assert next_document_number("purchase") == "BILL-1"

    def test_seeds_from_highest_numeric_suffix(self, db_session):
        # BILL-9 sorts after BILL-10 as text; the suffix is compared as a number
        db_session.add_all([_purchase("BILL-9"), _purchase("BILL-10"), _purchase("BILL-X")])
        db_session.commit()

        assert next_document_number("purchase") == "BILL-11"
        assert next_document_number("purchase") == "BILL-12"

    def test_sequence_row_tracks_next_number(self, db_session):
        next_document_number("sale")
        next_document_number("sale")
        db_session.commit()

        seq = db_session.query(DocumentSequence).filter_by(prefix="INV").one()
        assert seq.next_number == 3

    def test_unknown_document_type(self, db_session):
        with pytest.raises(ValidationError):
            next_document_number("quote")


def _locked(prefix, model):
    raise OperationalError("UPDATE document_sequences", {}, Exception("database is locked"))


class TestNumberingFallback:
    def test_store_error_falls_back_to_first_number(self, db_session, monkeypatch):
        monkeypatch.setattr(document_service, "_allocate", _locked)

        assert next_document_number("purchase") == "BILL-1"
        assert next_document_number("payment-out") == "PAY-OUT-1"

    def test_colliding_fallback_retries_with_fresh_number(self, db_session, wheat, monkeypatch, caplog):
        caplog.set_level(logging.WARNING, logger="billing.services.concurrency")
        monkeypatch.setattr("billing.services.concurrency.time.sleep", lambda _: None)
        first, _, _ = purchase_service.create_purchase({
            "supplier_name": "Ravi Traders",
            "phone_number": "9876543210",
            "date": "2024-05-01",
            "items": [{"item_id": wheat.id, "quantity": 30, "price": 20}],
        })
        assert first.document_number == "BILL-1"

        real_allocate = document_service._allocate
        calls = []

        def flaky(prefix, model):
            calls.append(prefix)
            if len(calls) == 1:
                _locked(prefix, model)
            return real_allocate(prefix, model)

        monkeypatch.setattr(document_service, "_allocate", flaky)

        second, _, _ = purchase_service.create_purchase({
            "supplier_name": "Ravi Traders",
            "phone_number": "9876543210",
            "date": "2024-05-02",
            "items": [{"item_id": wheat.id, "quantity": 30, "price": 20}],
        })

        assert second.document_number == "BILL-2"
        assert calls == ["BILL", "BILL"]
        assert "Retrying after IntegrityError (attempt 1/3)" in caplog.text
        assert db_session.query(Purchase).count() == 2
