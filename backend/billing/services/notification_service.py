# Overview: WhatsApp delivery client (WASender HTTP API) for invoices, bills and free text.

"""
Notification Service

Thin client over the WASender HTTP API. Every call returns a plain result
dict and never raises for delivery problems:

    {"success": True,  "message": "...", "data": {...}}
    {"success": False, "error": "..."}

Callers treat a failed delivery as non-fatal: the document that triggered
it stays persisted and the result is reported next to it.
"""

from __future__ import annotations

import logging
from decimal import Decimal

import httpx
from flask import current_app

from ..money import to_money

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


def is_configured() -> bool:
    cfg = current_app.config
    return bool(cfg.get("WASENDER_API_KEY") and cfg.get("WASENDER_API_BASE_URL"))


def get_config_info() -> dict:
    api_key = current_app.config.get("WASENDER_API_KEY")
    return {
        "api_key": f"***{api_key[-4:]}" if api_key else None,
        "api_base_url": current_app.config.get("WASENDER_API_BASE_URL"),
        "configured": is_configured(),
    }


def _client() -> httpx.Client:
    cfg = current_app.config
    timeout = float(cfg.get("NOTIFICATION_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
    # Tests inject an httpx.MockTransport here
    transport = cfg.get("NOTIFICATION_TRANSPORT")
    return httpx.Client(
        base_url=(cfg.get("WASENDER_API_BASE_URL") or "").rstrip("/"),
        headers={
            "Authorization": f"Bearer {cfg.get('WASENDER_API_KEY') or ''}",
            "Content-Type": "application/json",
        },
        timeout=timeout,
        transport=transport,
    )


def _error_text(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return default


def _post(payload: dict, *, success_message: str, failure_message: str) -> dict:
    if not is_configured():
        return {"success": False, "error": "WhatsApp service is not configured"}

    try:
        with _client() as client:
            response = client.post("/send-message", json=payload)
            response.raise_for_status()
            body = response.json()
    except httpx.TimeoutException:
        logger.warning("WhatsApp send to %s timed out", payload.get("to"))
        return {"success": False, "error": "Request timeout"}
    except httpx.HTTPStatusError as exc:
        logger.warning("WhatsApp send to %s failed with HTTP %s", payload.get("to"), exc.response.status_code)
        return {"success": False, "error": _error_text(exc.response, failure_message)}
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("WhatsApp send to %s failed: %s", payload.get("to"), exc)
        return {"success": False, "error": str(exc) or "Network error occurred"}

    if isinstance(body, dict) and body.get("success"):
        return {"success": True, "message": success_message, "data": body}
    error = body.get("error") if isinstance(body, dict) else None
    return {"success": False, "error": error or failure_message}


def send_text_message(phone_number: str, text: str) -> dict:
    return _post(
        {"to": phone_number, "text": text},
        success_message="Message sent successfully",
        failure_message="Failed to send message",
    )


def send_document(phone_number: str, text: str, document_url: str, file_name: str | None = None) -> dict:
    payload = {"to": phone_number, "text": text, "documentUrl": document_url}
    if file_name:
        payload["fileName"] = file_name
    return _post(
        payload,
        success_message="Document sent successfully",
        failure_message="Failed to send document",
    )


def _format_amount(total_amount) -> str:
    return f"{to_money(total_amount or Decimal('0')):,.2f}"


def send_invoice(phone_number, customer_name, invoice_no, total_amount, date, document_url=None) -> dict:
    text = (
        f"Dear {customer_name},\n\n"
        f"Your invoice {invoice_no} has been generated.\n\n"
        f"Total Amount: ₹{_format_amount(total_amount)}\n"
        f"Date: {date}\n\n"
        "Thank you for your business!"
    )
    if document_url:
        return send_document(phone_number, text, document_url, f"invoice-{invoice_no}.pdf")
    return send_text_message(phone_number, text)


def send_purchase_bill(phone_number, supplier_name, bill_no, total_amount, date, document_url=None) -> dict:
    text = (
        f"Dear {supplier_name},\n\n"
        f"Your purchase bill {bill_no} has been generated.\n\n"
        f"Total Amount: ₹{_format_amount(total_amount)}\n"
        f"Date: {date}\n\n"
        "Payment will be processed as per our terms."
    )
    if document_url:
        return send_document(phone_number, text, document_url, f"purchase-bill-{bill_no}.pdf")
    return send_text_message(phone_number, text)
