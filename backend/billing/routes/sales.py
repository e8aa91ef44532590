# Overview: Flask API routes for sale invoices; parses input and returns JSON responses.

# backend/billing/routes/sales.py
"""
Sale Invoice API Routes

Every mutating route returns the invoice plus the stock warnings produced by
best-effort inventory reconciliation. An invoice is persisted even when some
of its lines could not move stock.
"""

from flask import Blueprint, jsonify, request

from ..decorators import error_response, json_errors
from ..services import sale_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _filters() -> dict:
    return {
        "status": request.args.get("status"),
        "party_name": request.args.get("party_name") or request.args.get("customer_name"),
        "phone_number": request.args.get("phone_number"),
        "date": request.args.get("date"),
        "search": request.args.get("search"),
    }


# =============================================================================
# QUERIES
# =============================================================================

@sales_bp.get("")
@json_errors("Failed to fetch sales")
def list_sales():
    """
    List sales, newest first.

    Query params: status, party_name (or customer_name), phone_number, date, search
    """
    sales = sale_service.list_sales(**_filters())
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.get("/party/<string:party_name>")
@json_errors("Failed to fetch sales by party")
def list_sales_by_party(party_name: str):
    sales = sale_service.list_by_party(party_name)
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.get("/date-range")
@json_errors("Failed to fetch sales by date range")
def list_sales_by_date_range():
    sales = sale_service.list_by_date_range(
        request.args.get("start_date"),
        request.args.get("end_date"),
    )
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.get("/<int:sale_id>")
@json_errors("Failed to fetch sale")
def get_sale(sale_id: int):
    return jsonify(sale_service.get_sale(sale_id).to_dict())


# =============================================================================
# LIFECYCLE
# =============================================================================

@sales_bp.post("")
@json_errors("Failed to create sale")
def create_sale():
    """
    Create a sale invoice.

    Request body:
    {
        "party_name": "Meena Stores",       (or "customer_name")
        "phone_number": "+919876543210",
        "items": [{"item_id": 1, "quantity": 60, "price": 25}],   (quantity in kg)
        "date": "2024-05-01",
        "status": "pending",                (optional)
        "pdf_uri": "https://...",           (optional)
        "notify": true                      (optional, sends the invoice on WhatsApp)
    }

    Returns:
        201: Sale with stock_warnings (and notification when requested)
        400: Validation failed
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Invalid JSON payload", 400)

    sale, warnings, notification = sale_service.create_sale(
        data, notify=bool(data.get("notify"))
    )
    body = sale.to_dict()
    body["stock_warnings"] = warnings
    if notification is not None:
        body["notification"] = notification
    return jsonify(body), 201


@sales_bp.put("/<int:sale_id>")
@json_errors("Failed to update sale")
def update_sale(sale_id: int):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Invalid JSON payload", 400)

    sale, warnings = sale_service.update_sale(sale_id, data)
    body = sale.to_dict()
    body["stock_warnings"] = warnings
    return jsonify(body)


@sales_bp.patch("/<int:sale_id>/status")
@json_errors("Failed to update sale status")
def update_sale_status(sale_id: int):
    data = request.get_json(silent=True) or {}
    sale = sale_service.set_sale_status(sale_id, data.get("status"))
    return jsonify(sale.to_dict())


@sales_bp.delete("/<int:sale_id>")
@json_errors("Failed to delete sale")
def delete_sale(sale_id: int):
    warnings = sale_service.delete_sale(sale_id)
    return jsonify({
        "success": True,
        "message": "Sale deleted successfully",
        "stock_warnings": warnings,
    })
