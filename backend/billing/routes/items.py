# Overview: Flask API routes for inventory items; parses input and returns JSON responses.

# backend/billing/routes/items.py
from flask import Blueprint, jsonify, request

from ..decorators import error_response, json_errors
from ..services import inventory_service


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.get("")
@json_errors("Failed to fetch items")
def list_items():
    """
    Query params:
    - category: Primary | Kirana | all
    - search: product name contains
    - low_stock: true to return only items at or below their alert level
    """
    items = inventory_service.list_items(
        category=request.args.get("category"),
        search=request.args.get("search"),
        low_stock=request.args.get("low_stock", "").lower() in ("1", "true", "yes"),
    )
    return jsonify({"items": [i.to_dict() for i in items], "count": len(items)})


@items_bp.get("/universal")
@json_errors("Failed to fetch universal item")
def get_universal_item():
    item = inventory_service.get_universal_item()
    if item is None:
        return error_response("Universal item not found", 404)
    return jsonify(item.to_dict())


@items_bp.get("/<int:item_id>")
@json_errors("Failed to fetch item")
def get_item(item_id: int):
    return jsonify(inventory_service.get_item(item_id).to_dict())


@items_bp.post("")
@json_errors("Failed to create item")
def create_item():
    """
    Create an item. Stock may be sent in bags (opening_stock) or in kg
    (opening_stock_kg, converted at 30 kg per bag).
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Invalid JSON payload", 400)
    return jsonify(inventory_service.create_item(data).to_dict()), 201


@items_bp.put("/<int:item_id>")
@json_errors("Failed to update item")
def update_item(item_id: int):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return error_response("Invalid JSON payload", 400)
    return jsonify(inventory_service.update_item(item_id, data).to_dict())


@items_bp.delete("/<int:item_id>")
@json_errors("Failed to delete item")
def delete_item(item_id: int):
    inventory_service.delete_item(item_id)
    return jsonify({"success": True, "message": "Item deleted successfully"})
