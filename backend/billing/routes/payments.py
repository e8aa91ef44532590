# Overview: Flask API routes for payments; parses input and returns JSON responses.

# backend/billing/routes/payments.py
"""
Payment API Routes

Payments in (from customers) and out (to suppliers). Every create, amount
change, completed<->cancelled toggle and delete adjusts the party balance
in the same transaction as the payment row.
"""

from flask import Blueprint, jsonify, request

from ..decorators import error_response, json_errors
from ..services import payment_service


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


def _listing(payments):
    return jsonify({"items": [p.to_dict() for p in payments], "count": len(payments)})


# =============================================================================
# PAYMENT QUERIES
# =============================================================================

@payments_bp.get("")
@json_errors("Failed to fetch payments")
def list_payments():
    """
    List payments, newest first.

    Query params: type, status, party_name, phone_number, date,
    payment_method, start_date + end_date (creation time), search
    """
    payments = payment_service.list_payments(
        payment_type=request.args.get("type"),
        status=request.args.get("status"),
        party_name=request.args.get("party_name"),
        phone_number=request.args.get("phone_number"),
        date=request.args.get("date"),
        payment_method=request.args.get("payment_method"),
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        search=request.args.get("search"),
    )
    return _listing(payments)


@payments_bp.get("/summary")
@json_errors("Failed to fetch payment summary")
def payment_summary():
    summary = payment_service.get_summary(
        payment_type=request.args.get("type"),
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
    )
    return jsonify({"items": summary, "count": len(summary)})


@payments_bp.get("/party/<string:party_name>")
@json_errors("Failed to fetch payments by party")
def list_payments_by_party(party_name: str):
    payments = payment_service.list_by_party(
        party_name,
        phone_number=request.args.get("phone_number"),
        payment_type=request.args.get("type"),
    )
    return _listing(payments)


@payments_bp.get("/date-range")
@json_errors("Failed to fetch payments by date range")
def list_payments_by_date_range():
    payments = payment_service.list_by_date_range(
        request.args.get("start_date"),
        request.args.get("end_date"),
        payment_type=request.args.get("type"),
    )
    return _listing(payments)


@payments_bp.get("/type/<string:payment_type>")
@json_errors("Failed to fetch payments by type")
def list_payments_by_type(payment_type: str):
    return _listing(payment_service.list_by_type(payment_type))


@payments_bp.get("/<int:payment_id>")
@json_errors("Failed to fetch payment")
def get_payment(payment_id: int):
    return jsonify(payment_service.get_payment(payment_id).to_dict())


# =============================================================================
# PAYMENT LIFECYCLE
# =============================================================================

@payments_bp.post("")
@json_errors("Failed to create payment")
def create_payment():
    """
    Record a payment.

    Request body:
    {
        "type": "payment-in",               (default payment-in)
        "party_name": "Meena Stores",
        "phone_number": "+919812345678",
        "amount": 500,
        "total_amount": 500,                (optional, defaults to amount)
        "date": "2024-05-01",
        "status": "completed",              (default completed)
        "payment_method": "cash",           (cash, bank_transfer, cheque, upi, card, other)
        "description": "...",               (optional)
        "reference": "UTR-123"              (optional)
    }

    Returns:
        201: Payment created
        400: Validation failed
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Invalid JSON payload", 400)
    return jsonify(payment_service.create_payment(data).to_dict()), 201


@payments_bp.put("/<int:payment_id>")
@json_errors("Failed to update payment")
def update_payment(payment_id: int):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Invalid JSON payload", 400)
    return jsonify(payment_service.update_payment(payment_id, data).to_dict())


@payments_bp.patch("/<int:payment_id>/status")
@json_errors("Failed to update payment status")
def update_payment_status(payment_id: int):
    data = request.get_json(silent=True) or {}
    return jsonify(payment_service.set_status(payment_id, data.get("status")).to_dict())


@payments_bp.delete("/<int:payment_id>")
@json_errors("Failed to delete payment")
def delete_payment(payment_id: int):
    payment_service.delete_payment(payment_id)
    return jsonify({"success": True, "message": "Payment deleted successfully"})
