# Overview: Flask API route for the reconciliation log; read-only.

from flask import Blueprint, jsonify, request

from ..decorators import json_errors
from ..models import ReconciliationEvent

"""
The reconciliation log is append-only. Each row is one balance or stock
effect applied (or skipped) on behalf of a document operation.
"""

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("/events")
@json_errors("Failed to fetch reconciliation events")
def list_reconciliation_events():
    """
    Query params: document_type, document_id, entity_type, entity_id,
    outcome (applied | skipped), limit (default 100, max 500)
    """
    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))

    q = ReconciliationEvent.query
    document_type = request.args.get("document_type")
    if document_type:
        q = q.filter(ReconciliationEvent.document_type == document_type)
    document_id = request.args.get("document_id", type=int)
    if document_id is not None:
        q = q.filter(ReconciliationEvent.document_id == document_id)
    entity_type = request.args.get("entity_type")
    if entity_type:
        q = q.filter(ReconciliationEvent.entity_type == entity_type)
    entity_id = request.args.get("entity_id", type=int)
    if entity_id is not None:
        q = q.filter(ReconciliationEvent.entity_id == entity_id)
    outcome = request.args.get("outcome")
    if outcome:
        q = q.filter(ReconciliationEvent.outcome == outcome)

    events = q.order_by(ReconciliationEvent.id.desc()).limit(limit).all()
    return jsonify({"items": [e.to_dict() for e in events], "count": len(events), "limit": limit})
