from flask import Blueprint

bp = Blueprint("stores", __name__, url_prefix="/api/stores")

from . import routes  # noqa: E402,F401
