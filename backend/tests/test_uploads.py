import io

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


def _upload(client, payload, filename, mimetype):
    return client.post(
        "/api/uploads",
        data={"file": (io.BytesIO(payload), filename, mimetype)},
        content_type="multipart/form-data",
    )


class TestUploads:
    def test_pdf_is_stored_and_served(self, client, app):
        resp = _upload(client, PDF_BYTES, "INV 7.pdf", "application/pdf")
        assert resp.status_code == 200

        body = resp.get_json()
        assert body["success"] is True
        assert body["file_name"].startswith("INV_7-")
        assert body["file_name"].endswith(".pdf")
        assert body["url"].endswith(f"/uploads/{body['file_name']}")

        served = client.get(f"/uploads/{body['file_name']}")
        assert served.status_code == 200
        assert served.data == PDF_BYTES
        assert served.mimetype == "application/pdf"

    def test_non_pdf_rejected(self, client, app):
        resp = _upload(client, b"hello", "notes.txt", "text/plain")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Only PDF files are allowed"

    def test_missing_file(self, client, app):
        resp = client.post("/api/uploads", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "No file uploaded"

    def test_unknown_file_is_404(self, client, app):
        assert client.get("/uploads/missing.pdf").status_code == 404

    def test_status(self, client, app):
        body = client.get("/api/uploads/status").get_json()
        assert body["uploads"]["allowed_types"] == ["application/pdf"]
