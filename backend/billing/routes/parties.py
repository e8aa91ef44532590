# Overview: Flask API routes for parties (customers and suppliers) and their balances.

# backend/billing/routes/parties.py
from flask import Blueprint, jsonify, request

from ..decorators import error_response, json_errors
from ..services import party_service
from ..services.concurrency import run_in_transaction
from ..services.ledger_service import adjust_balance
from ..extensions import db


parties_bp = Blueprint("parties", __name__, url_prefix="/api/parties")


@parties_bp.get("")
@json_errors("Failed to fetch parties")
def list_parties():
    """Query params: role (customer, supplier, general), search (name or phone)."""
    parties = party_service.list_parties(
        role=request.args.get("role"),
        search=request.args.get("search"),
    )
    return jsonify({"items": [p.to_dict() for p in parties], "count": len(parties)})


@parties_bp.get("/<int:party_id>")
@json_errors("Failed to fetch party")
def get_party(party_id: int):
    return jsonify(party_service.get_party(party_id).to_dict())


@parties_bp.post("")
@json_errors("Failed to create party")
def create_party():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Invalid JSON payload", 400)
    return jsonify(party_service.create_party(data).to_dict()), 201


@parties_bp.post("/find-or-create")
@json_errors("Failed to resolve party")
def find_or_create_party():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Invalid JSON payload", 400)

    def _op():
        party, created = party_service.find_or_create(data)
        db.session.commit()
        return party, created

    party, created = run_in_transaction(_op)
    return jsonify({**party.to_dict(), "created": created}), (201 if created else 200)


@parties_bp.put("/<int:party_id>")
@json_errors("Failed to update party")
def update_party(party_id: int):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Invalid JSON payload", 400)
    return jsonify(party_service.update_party(party_id, data).to_dict())


@parties_bp.patch("/<int:party_id>/balance")
@json_errors("Failed to update party balance")
def update_party_balance(party_id: int):
    """
    Direct ledger operation.

    Request body: {"amount": 250, "operation": "add" | "subtract" | "set"}
    """
    data = request.get_json(silent=True) or {}
    if data.get("amount") in (None, ""):
        return error_response("amount is required", 400)

    def _op():
        party = adjust_balance(party_id, data.get("amount"), data.get("operation", "add"))
        db.session.commit()
        return party

    return jsonify(run_in_transaction(_op).to_dict())


@parties_bp.delete("/<int:party_id>")
@json_errors("Failed to delete party")
def delete_party(party_id: int):
    party_service.delete_party(party_id)
    return jsonify({"success": True, "message": "Party deleted successfully"})
