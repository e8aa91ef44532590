# Overview: Flask API routes for purchase bills; parses input and returns JSON responses.

# backend/billing/routes/purchases.py
"""
Purchase Bill API Routes

Every mutating route returns the bill plus the stock warnings produced by
best-effort inventory reconciliation. A bill is persisted even when some
of its lines could not move stock.
"""

from flask import Blueprint, jsonify, request

from ..decorators import error_response, json_errors
from ..services import purchase_service


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


def _filters() -> dict:
    return {
        "status": request.args.get("status"),
        "party_name": request.args.get("party_name") or request.args.get("supplier_name"),
        "phone_number": request.args.get("phone_number"),
        "date": request.args.get("date"),
        "search": request.args.get("search"),
    }


# =============================================================================
# QUERIES
# =============================================================================

@purchases_bp.get("")
@json_errors("Failed to fetch purchases")
def list_purchases():
    """
    List purchases, newest first.

    Query params: status, party_name (or supplier_name), phone_number, date, search
    """
    purchases = purchase_service.list_purchases(**_filters())
    return jsonify({"items": [p.to_dict() for p in purchases], "count": len(purchases)})


@purchases_bp.get("/party/<string:party_name>")
@json_errors("Failed to fetch purchases by party")
def list_purchases_by_party(party_name: str):
    purchases = purchase_service.list_by_party(party_name)
    return jsonify({"items": [p.to_dict() for p in purchases], "count": len(purchases)})


@purchases_bp.get("/date-range")
@json_errors("Failed to fetch purchases by date range")
def list_purchases_by_date_range():
    purchases = purchase_service.list_by_date_range(
        request.args.get("start_date"),
        request.args.get("end_date"),
    )
    return jsonify({"items": [p.to_dict() for p in purchases], "count": len(purchases)})


@purchases_bp.get("/<int:purchase_id>")
@json_errors("Failed to fetch purchase")
def get_purchase(purchase_id: int):
    return jsonify(purchase_service.get_purchase(purchase_id).to_dict())


# =============================================================================
# LIFECYCLE
# =============================================================================

@purchases_bp.post("")
@json_errors("Failed to create purchase")
def create_purchase():
    """
    Create a purchase bill.

    Request body:
    {
        "party_name": "Ravi Traders",       (or "supplier_name")
        "phone_number": "+919876543210",
        "items": [{"item_id": 1, "quantity": 300, "price": 20}],   (quantity in kg)
        "date": "2024-05-01",
        "status": "pending",                (optional)
        "pdf_uri": "https://...",           (optional)
        "notify": true                      (optional, sends the bill on WhatsApp)
    }

    Returns:
        201: Purchase with stock_warnings (and notification when requested)
        400: Validation failed
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Invalid JSON payload", 400)

    purchase, warnings, notification = purchase_service.create_purchase(
        data, notify=bool(data.get("notify"))
    )
    body = purchase.to_dict()
    body["stock_warnings"] = warnings
    if notification is not None:
        body["notification"] = notification
    return jsonify(body), 201


@purchases_bp.put("/<int:purchase_id>")
@json_errors("Failed to update purchase")
def update_purchase(purchase_id: int):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Invalid JSON payload", 400)

    purchase, warnings = purchase_service.update_purchase(purchase_id, data)
    body = purchase.to_dict()
    body["stock_warnings"] = warnings
    return jsonify(body)


@purchases_bp.patch("/<int:purchase_id>/status")
@json_errors("Failed to update purchase status")
def update_purchase_status(purchase_id: int):
    data = request.get_json(silent=True) or {}
    purchase = purchase_service.set_purchase_status(purchase_id, data.get("status"))
    return jsonify(purchase.to_dict())


@purchases_bp.delete("/<int:purchase_id>")
@json_errors("Failed to delete purchase")
def delete_purchase(purchase_id: int):
    warnings = purchase_service.delete_purchase(purchase_id)
    return jsonify({
        "success": True,
        "message": "Purchase deleted successfully",
        "stock_warnings": warnings,
    })
