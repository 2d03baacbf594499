from flask import Blueprint

bp = Blueprint("mural", __name__, url_prefix="/mural")

from . import routes  # noqa: E402, F401
