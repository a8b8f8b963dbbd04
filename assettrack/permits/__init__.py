from flask import Blueprint

bp = Blueprint("permits", __name__, url_prefix="/api/permits")

from . import routes  # noqa: E402,F401
