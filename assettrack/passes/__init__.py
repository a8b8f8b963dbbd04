from flask import Blueprint

bp = Blueprint("passes", __name__, url_prefix="/api/passes")

from . import routes  # noqa: E402,F401
