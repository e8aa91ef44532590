# Overview: Service-layer operations for purchase bills; binds the trade lifecycle to suppliers.

from __future__ import annotations

import logging

from . import notification_service, trade_service
from .trade_service import PURCHASE

logger = logging.getLogger(__name__)


def list_purchases(**filters):
    return trade_service.list_documents(PURCHASE, **filters)


def get_purchase(purchase_id: int):
    return trade_service.get_document(PURCHASE, purchase_id)


def list_by_party(party_name: str):
    return trade_service.list_by_party(PURCHASE, party_name)


def list_by_date_range(start_date, end_date):
    return trade_service.list_by_date_range(PURCHASE, start_date, end_date)


def notify_supplier(purchase) -> dict:
    """Send the purchase bill to the supplier. Never raises for delivery problems."""
    result = notification_service.send_purchase_bill(
        purchase.phone_number,
        purchase.party_name,
        purchase.document_number,
        purchase.total_amount,
        purchase.date,
        purchase.pdf_uri,
    )
    if not result.get("success"):
        logger.warning("Purchase bill %s not delivered: %s", purchase.document_number, result.get("error"))
    return result


def create_purchase(data: dict, *, notify: bool = False):
    """
    Create a purchase bill.

    Returns:
        (purchase, stock_warnings, notification) where notification is None
        unless notify was requested. Delivery happens after commit.
    """
    purchase, warnings = trade_service.create_document(PURCHASE, data)
    notification = notify_supplier(purchase) if notify else None
    return purchase, warnings, notification


def update_purchase(purchase_id: int, data: dict):
    return trade_service.update_document(PURCHASE, purchase_id, data)


def set_purchase_status(purchase_id: int, status):
    return trade_service.set_status(PURCHASE, purchase_id, status)


def delete_purchase(purchase_id: int) -> list[dict]:
    return trade_service.delete_document(PURCHASE, purchase_id)
