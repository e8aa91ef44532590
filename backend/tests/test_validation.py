from datetime import datetime
from decimal import Decimal

import pytest

from billing.money import kg_to_bags, to_bags, to_money
from billing.services.party_service import normalize_phone
from billing.services.trade_service import parse_date_range
from billing.validation import (
    ValidationError,
    is_valid_date_text,
    is_valid_phone,
    validate_amount,
    validate_line_items,
    validate_status,
)


class TestRounding:
    def test_money_rounds_half_up_to_two_places(self):
        assert to_money("2.675") == Decimal("2.68")
        assert to_money(0.125) == Decimal("0.13")

    def test_bags_round_half_up_to_four_places(self):
        assert kg_to_bags(10) == Decimal("0.3333")
        assert kg_to_bags(20) == Decimal("0.6667")
        assert to_bags("1.00005") == Decimal("1.0001")

    def test_thirty_kg_is_one_bag(self):
        assert kg_to_bags(300) == Decimal("10.0000")
        assert kg_to_bags(150) == Decimal("5.0000")

    def test_booleans_are_not_numbers(self):
        with pytest.raises(ValueError):
            to_money(True)


class TestLineItems:
    def test_accepts_item_id_or_id(self):
        lines = validate_line_items([
            {"item_id": 1, "quantity": 300, "price": 20},
            {"id": "2", "quantity": "15.5", "price": "10"},
        ])
        assert [line["item_id"] for line in lines] == [1, 2]
        assert lines[1]["quantity"] == Decimal("15.5")

    def test_empty_list_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_line_items([])
        assert exc.value.errors == ["At least one item is required"]

    def test_collects_every_bad_line(self):
        with pytest.raises(ValidationError) as exc:
            validate_line_items([
                {"item_id": 1, "quantity": 0, "price": 1},
                {"item_id": 2, "quantity": 5, "price": -1},
                {"quantity": 5},
            ])
        assert len(exc.value.errors) == 3

    def test_missing_price_defaults_to_zero(self):
        lines = validate_line_items([{"item_id": 3, "quantity": 30}])
        assert lines[0]["price"] == Decimal("0")

    def test_rounds_to_stored_precision(self):
        lines = validate_line_items([{"item_id": 1, "quantity": "2.0005", "price": "0.335"}])
        assert lines[0]["quantity"] == Decimal("2.001")
        assert lines[0]["price"] == Decimal("0.34")

    def test_quantity_that_rounds_to_zero_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_line_items([{"item_id": 1, "quantity": "0.0004", "price": 10}])
        assert exc.value.errors == ["items[1].quantity must be greater than 0"]

    def test_quantity_above_column_range_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_line_items([{"item_id": 1, "quantity": "100000000000", "price": 0}])
        assert exc.value.errors == ["items[1].quantity cannot exceed 99999999999.999"]

    def test_line_total_above_max_amount_rejected(self):
        with pytest.raises(ValidationError) as exc:
            validate_line_items([{"item_id": 1, "quantity": 1000, "price": "1000000000000"}])
        assert exc.value.errors == ["items[1].price cannot exceed 999999999999.99"]

        with pytest.raises(ValidationError) as exc:
            validate_line_items([{"item_id": 1, "quantity": 1000, "price": "1000000000"}])
        assert exc.value.errors == ["items[1] total cannot exceed 999999999999.99"]

    def test_document_total_above_max_amount_rejected(self):
        line = {"item_id": 1, "quantity": 1000, "price": "600000000"}
        with pytest.raises(ValidationError) as exc:
            validate_line_items([line, dict(line, item_id=2)])
        assert exc.value.errors == ["Total amount cannot exceed 999999999999.99"]


class TestScalars:
    def test_amount_must_be_positive(self):
        assert validate_amount("500") == Decimal("500")
        with pytest.raises(ValidationError):
            validate_amount(0)
        with pytest.raises(ValidationError):
            validate_amount("abc")

    def test_status_values(self):
        assert validate_status("completed") == "completed"
        with pytest.raises(ValidationError):
            validate_status("paid")

    def test_date_formats(self):
        assert is_valid_date_text("2024-05-01")
        assert is_valid_date_text("5/1/2024")
        assert not is_valid_date_text("01-05-2024")

    def test_phone_format(self):
        assert is_valid_phone("+91 98765 43210")
        assert not is_valid_phone("0123")


class TestPhoneNormalization:
    def test_adds_default_country_code(self, app):
        assert normalize_phone("98765 43210") == "+919876543210"

    def test_keeps_explicit_country_code(self, app):
        assert normalize_phone("+1 (555) 010-2000") == "+15550102000"

    def test_blank_stays_blank(self, app):
        assert normalize_phone("  ") == ""


class TestDateRange:
    def test_bare_end_date_covers_whole_day(self):
        start, end = parse_date_range("2024-05-01", "2024-05-01")
        assert start == datetime(2024, 5, 1)
        assert end == datetime(2024, 5, 1, 23, 59, 59, 999999)

    def test_offsets_are_normalized_to_utc(self):
        start, _ = parse_date_range("2024-05-01T05:30:00+05:30", "2024-05-02")
        assert start == datetime(2024, 5, 1, 0, 0)

    def test_both_bounds_required(self):
        with pytest.raises(ValidationError) as exc:
            parse_date_range("2024-05-01", None)
        assert exc.value.errors == ["Start date and end date are required"]

    def test_reversed_range(self):
        with pytest.raises(ValidationError):
            parse_date_range("2024-05-02", "2024-05-01")
