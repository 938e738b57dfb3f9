from flask import Blueprint, current_app, jsonify
from werkzeug.exceptions import HTTPException

from .errors import (
    AppError,
    DuplicateResourceError,
    ForbiddenError,
    IntegrityFault,
    InvalidStateError,
    NotFoundError,
    StoreError,
    ValidationError,
)

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(message, status_code):
    return jsonify({"error": message}), status_code


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(InvalidStateError)
def handle_invalid_state_error(error):
    """Handles operations attempted in the wrong lifecycle state."""
    current_app.logger.warning(f"Invalid State Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(ForbiddenError)
def handle_forbidden_error(error):
    """Handles callers acting on resources they do not own."""
    current_app.logger.warning(f"Forbidden Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(DuplicateResourceError)
def handle_duplicate_resource_error(error):
    """Handles duplicate resource errors."""
    current_app.logger.warning(f"Duplicate Resource Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(IntegrityFault)
def handle_integrity_fault(error):
    """Handles broken bracket invariants. Nothing was written."""
    current_app.logger.exception(f"Bracket Integrity Fault: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(StoreError)
def handle_store_error(error):
    """Handles data store failures."""
    current_app.logger.error(f"Store Error: {error.message}")
    # Avoid exposing raw Firestore error details to the caller
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    current_app.logger.error(f"Application Error: {error.message}")
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return _error_response("Not found.", 404)


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles requests using a method the route does not accept."""
    return _error_response("Method not allowed.", 405)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _error_response("Internal server error.", 500)


@error_handlers_bp.app_errorhandler(HTTPException)
def handle_http_exception(e):
    """Handles any other HTTP error raised by Flask or Werkzeug."""
    return _error_response(e.description, e.code or 500)
