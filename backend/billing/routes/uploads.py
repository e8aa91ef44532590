# Overview: Flask API routes for PDF uploads and serving stored files.

from flask import Blueprint, jsonify, request, send_from_directory, url_for

from ..decorators import json_errors
from ..services import upload_service


uploads_bp = Blueprint("uploads", __name__)


@uploads_bp.post("/api/uploads")
@json_errors("Failed to upload file")
def upload_pdf():
    """
    Store a single PDF sent as multipart field "file".

    Returns:
        200: {"success": true, "url": "<absolute url>", "file_name": "..."}
        400: missing file, not a PDF, or too large
    """
    name = upload_service.store_pdf(request.files.get("file"))
    return jsonify({
        "success": True,
        "url": url_for("uploads.serve_upload", file_name=name, _external=True),
        "file_name": name,
        "message": "File stored locally",
    })


@uploads_bp.get("/api/uploads/status")
def upload_status():
    return jsonify({"success": True, "uploads": upload_service.status_info()})


@uploads_bp.get("/uploads/<path:file_name>")
def serve_upload(file_name: str):
    return send_from_directory(upload_service.upload_folder(), file_name, mimetype="application/pdf")
