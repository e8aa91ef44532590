"""
API tests: request parsing, status codes and the JSON error contract.

Reconciliation arithmetic is covered by the service tests; here each flow
is driven and checked through the HTTP surface only.
"""


def _create_item(client, name="Wheat"):
    resp = client.post("/api/items", json={"product_name": name, "category": "Primary", "purchase_price": 20})
    assert resp.status_code == 201
    return resp.get_json()


def _purchase_body(item_id, quantity=300):
    return {
        "supplier_name": "Ravi Traders",
        "phone_number": "9876543210",
        "date": "2024-05-01",
        "items": [{"item_id": item_id, "quantity": quantity, "price": 20}],
    }


class TestHealth:
    def test_health_reports_universal_item(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["universal_item"]["details"]["name"] == "Bardana"

    def test_system_status_hides_keys(self, client, db_session):
        body = client.get("/api/system/status").get_json()
        assert body["kg_per_bag"] == 30
        assert body["whatsapp"]["configured"] is False
        assert body["whatsapp"]["api_key"] is None


class TestItemsApi:
    def test_universal_item_cannot_be_deleted(self, client, db_session):
        universal = client.get("/api/items/universal").get_json()
        resp = client.delete(f"/api/items/{universal['id']}")
        assert resp.status_code == 409
        assert resp.get_json() == {"success": False, "error": "The universal item cannot be deleted"}

    def test_missing_item(self, client, db_session):
        resp = client.get("/api/items/99999")
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Item not found"

    def test_bad_category_is_400_with_details(self, client, db_session):
        resp = client.post("/api/items", json={"product_name": "Oil", "category": "Liquid"})
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["success"] is False
        assert body["details"] == ['Category must be either "Primary" or "Kirana"']

    def test_list_returns_items_and_count(self, client, db_session):
        _create_item(client)
        body = client.get("/api/items").get_json()
        assert body["count"] == 2
        assert {i["product_name"] for i in body["items"]} == {"Wheat", "Bardana"}


class TestPurchasesApi:
    def test_create_update_delete_round_trip(self, client, db_session):
        item = _create_item(client)

        resp = client.post("/api/purchases", json=_purchase_body(item["id"]))
        assert resp.status_code == 201
        purchase = resp.get_json()
        assert purchase["document_number"] == "BILL-1"
        assert purchase["total_amount"] == 6000.0
        assert purchase["stock_warnings"] == []
        assert purchase["party"]["balance"] == 6000.0
        assert client.get(f"/api/items/{item['id']}").get_json()["opening_stock"] == 10.0

        resp = client.put(f"/api/purchases/{purchase['id']}", json={
            "items": [{"item_id": item["id"], "quantity": 150, "price": 20}],
        })
        assert resp.status_code == 200
        assert resp.get_json()["total_amount"] == 3000.0
        assert client.get(f"/api/items/{item['id']}").get_json()["opening_stock"] == 5.0

        resp = client.delete(f"/api/purchases/{purchase['id']}")
        assert resp.status_code == 200
        assert resp.get_json()["success"] is True
        assert client.get(f"/api/items/{item['id']}").get_json()["opening_stock"] == 0.0
        assert client.get(f"/api/purchases/{purchase['id']}").status_code == 404

    def test_unknown_item_returns_warning(self, client, db_session):
        resp = client.post("/api/purchases", json=_purchase_body(424242))
        assert resp.status_code == 201
        warnings = resp.get_json()["stock_warnings"]
        assert warnings[0]["item_id"] == 424242

        events = client.get("/api/ledger/events?outcome=skipped").get_json()
        assert events["count"] == 1

    def test_validation_lists_every_problem(self, client, db_session):
        resp = client.post("/api/purchases", json={"items": []})
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"] == "Validation failed"
        assert "Supplier name and phone number are required" in body["details"]
        assert "date is required" in body["details"]

    def test_non_json_body(self, client, db_session):
        resp = client.post("/api/purchases", data="not json", content_type="text/plain")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid JSON payload"

    def test_invalid_status_transition(self, client, db_session):
        item = _create_item(client)
        purchase = client.post("/api/purchases", json=_purchase_body(item["id"])).get_json()

        assert client.patch(f"/api/purchases/{purchase['id']}/status", json={"status": "completed"}).status_code == 200
        resp = client.patch(f"/api/purchases/{purchase['id']}/status", json={"status": "pending"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Cannot change status from completed to pending"


class TestPaymentsApi:
    def test_payment_flow(self, client, db_session):
        resp = client.post("/api/payments", json={
            "type": "payment-in",
            "party_name": "Asha Stores",
            "phone_number": "9988776655",
            "amount": 500,
            "date": "2024-05-03",
        })
        assert resp.status_code == 201
        payment = resp.get_json()
        assert payment["document_number"] == "PAY-IN-1"

        party = client.get(f"/api/parties/{payment['party_id']}").get_json()
        assert party["balance"] == -500.0

        summary = client.get("/api/payments/summary").get_json()
        assert summary["count"] == 1
        assert summary["items"][0]["total_amount"] == 500.0

        assert client.delete(f"/api/payments/{payment['id']}").status_code == 200
        party = client.get(f"/api/parties/{payment['party_id']}").get_json()
        assert party["balance"] == 0.0

    def test_missing_fields_single_message(self, client, db_session):
        resp = client.post("/api/payments", json={"party_name": "Asha Stores"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Party name, phone number, amount, and date are required"


class TestPartiesApi:
    def test_duplicate_party_conflicts(self, client, db_session):
        body = {"name": "Mohan", "phone_number": "9123456789"}
        assert client.post("/api/parties", json=body).status_code == 201
        resp = client.post("/api/parties", json=body)
        assert resp.status_code == 409

    def test_find_or_create_status_codes(self, client, db_session):
        body = {"name": "Mohan", "phone_number": "9123456789"}
        first = client.post("/api/parties/find-or-create", json=body)
        second = client.post("/api/parties/find-or-create", json=body)
        assert first.status_code == 201
        assert first.get_json()["created"] is True
        assert second.status_code == 200
        assert second.get_json()["id"] == first.get_json()["id"]

    def test_manual_balance_adjustment(self, client, db_session):
        party = client.post("/api/parties", json={"name": "Mohan", "phone_number": "9123456789"}).get_json()

        resp = client.patch(f"/api/parties/{party['id']}/balance", json={"amount": 120.5, "operation": "add"})
        assert resp.status_code == 200
        assert resp.get_json()["balance"] == 120.5

        resp = client.patch(f"/api/parties/{party['id']}/balance", json={"amount": 10, "operation": "divide"})
        assert resp.status_code == 400


class TestWhatsAppApi:
    def test_unconfigured_service_is_503(self, client, db_session):
        resp = client.post("/api/whatsapp/send-message", json={"to": "+919876543210", "text": "hi"})
        assert resp.status_code == 503
        assert resp.get_json()["error"] == "WhatsApp service is not configured"

    def test_status_endpoint(self, client, db_session):
        body = client.get("/api/whatsapp/status").get_json()
        assert body["success"] is True
        assert body["wasender"]["configured"] is False
