# Overview: Service-layer operations for sale invoices; binds the trade lifecycle to customers.

from __future__ import annotations

import logging

from . import notification_service, trade_service
from .trade_service import SALE

logger = logging.getLogger(__name__)


def list_sales(**filters):
    return trade_service.list_documents(SALE, **filters)


def get_sale(sale_id: int):
    return trade_service.get_document(SALE, sale_id)


def list_by_party(party_name: str):
    return trade_service.list_by_party(SALE, party_name)


def list_by_date_range(start_date, end_date):
    return trade_service.list_by_date_range(SALE, start_date, end_date)


def notify_customer(sale) -> dict:
    """Send the invoice to the customer. Never raises for delivery problems."""
    result = notification_service.send_invoice(
        sale.phone_number,
        sale.party_name,
        sale.document_number,
        sale.total_amount,
        sale.date,
        sale.pdf_uri,
    )
    if not result.get("success"):
        logger.warning("Invoice %s not delivered: %s", sale.document_number, result.get("error"))
    return result


def create_sale(data: dict, *, notify: bool = False):
    """
    Create a sale invoice.

    Returns:
        (sale, stock_warnings, notification) where notification is None
        unless notify was requested. Delivery happens after commit.
    """
    sale, warnings = trade_service.create_document(SALE, data)
    notification = notify_customer(sale) if notify else None
    return sale, warnings, notification


def update_sale(sale_id: int, data: dict):
    return trade_service.update_document(SALE, sale_id, data)


def set_sale_status(sale_id: int, status):
    return trade_service.set_status(SALE, sale_id, status)


def delete_sale(sale_id: int) -> list[dict]:
    return trade_service.delete_document(SALE, sale_id)
