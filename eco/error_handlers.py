"""Application-wide error handlers."""

from flask import (
    Blueprint,
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_wtf.csrf import CSRFError

from .errors import AppError, InternalError, NotFoundError, UpstreamFailure

error_handlers_bp = Blueprint("error_handlers", __name__)


def wants_json():
    """Return True when the request targets the JSON API."""
    return request.path.startswith("/api/")


def error_response(message, status_code, template="error.html"):
    """Render an error as JSON for the API and as a page otherwise."""
    if wants_json():
        return jsonify({"error": message}), status_code
    return render_template(template, error=message), status_code


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return error_response(error.message, error.status_code, "404.html")


@error_handlers_bp.app_errorhandler(UpstreamFailure)
def handle_upstream_failure(error):
    """Handles Firestore/Storage failures without leaking details to pages."""
    current_app.logger.error(f"Upstream Failure: {error.message}")
    if wants_json():
        return jsonify({"error": error.message}), error.status_code
    return (
        render_template(
            "error.html", error="Falha ao falar com o servidor. Tente novamente."
        ),
        error.status_code,
    )


@error_handlers_bp.app_errorhandler(InternalError)
def handle_internal_error(error):
    """Handles failures that abort the request."""
    current_app.logger.error(f"Internal Error: {error.message}")
    return error_response(error.message, error.status_code, "500.html")


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles validation, auth and permission errors."""
    current_app.logger.warning(
        f"{type(error).__name__} ({error.status_code}): {error.message}"
    )
    return error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return error_response("Página não encontrada.", 404, "404.html")


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return error_response("Erro inesperado.", 500, "500.html")


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """
    Handles CSRF errors, which usually indicate a session timeout or invalid form submission.
    """
    current_app.logger.warning(f"CSRF Error: {e.description}")
    flash("Sua sessão pode ter expirado. Tente novamente.", "warning")
    return redirect(request.referrer or url_for("main.index"))
