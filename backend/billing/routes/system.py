# backend/billing/routes/system.py
"""
System health and status endpoints.

Health checks the database and the universal tracking item; status lists
the configured collaborators and document sequences.
"""

import sys
import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Item, Party
from ..services import document_service, inventory_service, notification_service, upload_service
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        party_count = db.session.query(Party).count()
        item_count = db.session.query(Item).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "parties": party_count,
                "items": item_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_universal_item_health() -> dict:
    """The universal item must exist for stock reconciliation to be complete."""
    try:
        item = inventory_service.get_universal_item()
    except Exception:
        current_app.logger.exception("Universal item health check failed")
        db.session.rollback()
        return {"status": "unhealthy", "error": "Database error"}

    if item is None:
        return {"status": "degraded", "warning": "Universal item missing"}
    return {
        "status": "healthy",
        "details": {"id": item.id, "name": item.product_name, "stock": float(item.opening_stock or 0)},
    }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    universal_health = check_universal_item_health()

    all_checks = [database_health, universal_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")
    degraded_count = sum(1 for check in all_checks if check["status"] == "degraded")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    elif degraded_count > 0:
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "universal_item": universal_health,
        }
    }

    return response, http_status


@system_bp.get("/api/system/status")
def status():
    """
    Non-sensitive deployment information plus collaborator configuration.

    Does NOT expose secret keys or database credentials.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
        "kg_per_bag": inventory_service.kg_per_bag(),
        "whatsapp": notification_service.get_config_info(),
        "uploads": upload_service.status_info(),
        "sequences": [s.to_dict() for s in document_service.list_sequences()],
    }
