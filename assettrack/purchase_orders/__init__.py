from flask import Blueprint

bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")

from . import routes  # noqa: E402,F401
