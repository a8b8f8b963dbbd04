from flask import Blueprint

bp = Blueprint("stock_requests", __name__, url_prefix="/api/requests")

from . import routes  # noqa: E402,F401
