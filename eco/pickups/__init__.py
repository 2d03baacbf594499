from flask import Blueprint

bp = Blueprint("pickups", __name__)
coop_bp = Blueprint("cooperado", __name__, url_prefix="/cooperado")

from . import routes  # noqa: E402, F401
