from flask import Blueprint

bp = Blueprint("vendors", __name__, url_prefix="/api/vendors")

from . import routes  # noqa: E402,F401
