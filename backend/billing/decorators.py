# Overview: Request decorators for API routes.

from functools import wraps

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException

from .extensions import db
from .validation import ConflictError, NotFoundError, ValidationError


def error_response(message: str, status: int, details: list | None = None):
    body = {"success": False, "error": message}
    if details:
        body["details"] = details
    return jsonify(body), status


def json_errors(failure_message: str):
    """
    Map service errors to JSON responses.

    - ValidationError -> 400 {"error": "Validation failed", "details": [...]}
    - NotFoundError   -> 404
    - ConflictError   -> 409
    - InternalError and anything else -> 500 with a generic message; details go to the log

    The session is rolled back before answering.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except ValidationError as e:
                db.session.rollback()
                if len(e.errors) == 1:
                    return error_response(e.errors[0], 400, e.errors)
                return error_response("Validation failed", 400, e.errors)
            except NotFoundError as e:
                db.session.rollback()
                return error_response(str(e), 404)
            except ConflictError as e:
                db.session.rollback()
                return error_response(str(e), 409)
            except HTTPException:
                db.session.rollback()
                raise
            except Exception:
                db.session.rollback()
                current_app.logger.exception(failure_message)
                return error_response(failure_message, 500)

        return decorated_function
    return decorator
