from flask import Blueprint

bp = Blueprint("notifications", __name__, url_prefix="/notificacoes")
api_bp = Blueprint("notifications_api", __name__, url_prefix="/api/notifications")

from . import routes  # noqa: E402, F401
