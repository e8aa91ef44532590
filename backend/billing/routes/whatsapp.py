# Overview: Flask API routes for WhatsApp delivery of messages, invoices and purchase bills.

from flask import Blueprint, jsonify, request

from ..decorators import error_response, json_errors
from ..services import notification_service
from ..validation import is_valid_phone


whatsapp_bp = Blueprint("whatsapp", __name__, url_prefix="/api/whatsapp")


def _require(data: dict, fields: tuple[str, ...]):
    """Return an error response when the service is off or input is incomplete, else None."""
    if not notification_service.is_configured():
        return error_response("WhatsApp service is not configured", 503)
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        return error_response(f"Missing required fields: {', '.join(missing)}", 400)
    if not is_valid_phone(str(data["to"])):
        return error_response("Invalid phone number format", 400)
    return None


def _result(result: dict):
    return jsonify(result), (200 if result.get("success") else 400)


@whatsapp_bp.post("/send-message")
@json_errors("Failed to send message")
def send_message():
    data = request.get_json(silent=True) or {}
    problem = _require(data, ("to", "text"))
    if problem:
        return problem
    return _result(notification_service.send_text_message(data["to"], data["text"]))


@whatsapp_bp.post("/send-document")
@json_errors("Failed to send document")
def send_document():
    data = request.get_json(silent=True) or {}
    problem = _require(data, ("to", "text", "document_url"))
    if problem:
        return problem
    return _result(notification_service.send_document(
        data["to"], data["text"], data["document_url"], data.get("file_name")
    ))


@whatsapp_bp.post("/send-invoice")
@json_errors("Failed to send invoice")
def send_invoice():
    data = request.get_json(silent=True) or {}
    problem = _require(data, ("to", "customer_name", "invoice_no", "total_amount", "date"))
    if problem:
        return problem
    return _result(notification_service.send_invoice(
        data["to"],
        data["customer_name"],
        data["invoice_no"],
        data["total_amount"],
        data["date"],
        data.get("document_url"),
    ))


@whatsapp_bp.post("/send-purchase-bill")
@json_errors("Failed to send purchase bill")
def send_purchase_bill():
    data = request.get_json(silent=True) or {}
    problem = _require(data, ("to", "supplier_name", "bill_no", "total_amount", "date"))
    if problem:
        return problem
    return _result(notification_service.send_purchase_bill(
        data["to"],
        data["supplier_name"],
        data["bill_no"],
        data["total_amount"],
        data["date"],
        data.get("document_url"),
    ))


@whatsapp_bp.get("/status")
def whatsapp_status():
    return jsonify({
        "success": True,
        "message": "WhatsApp service is running",
        "wasender": notification_service.get_config_info(),
        "endpoints": {
            "send-message": "POST /api/whatsapp/send-message",
            "send-document": "POST /api/whatsapp/send-document",
            "send-invoice": "POST /api/whatsapp/send-invoice",
            "send-purchase-bill": "POST /api/whatsapp/send-purchase-bill",
        },
    })
