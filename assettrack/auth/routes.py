from flask import abort, current_app, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf
from sqlalchemy import func, or_

from . import bp
from .forms import LoginForm, VerifyPasswordForm
from assettrack.forms import validate_or_400
from assettrack.models import User


def _session_payload(user: User):
    data = user.to_dict()
    store = user.assigned_store
    data["assignedStore"] = store.to_dict() if store else None
    return data


@bp.route("/login", methods=["POST"])
def login():
    form = validate_or_400(LoginForm())
    identifier = form.email.data.strip()

    user = User.query.filter(
        or_(func.lower(User.email) == identifier.lower(), User.username == identifier)
    ).first()

    if not user or not user.check_password(form.password.data):
        current_app.logger.info("Failed login for %s", identifier)
        abort(400, description="Invalid credentials")

    login_user(user, remember=bool(form.remember.data))
    current_app.logger.info("User %s logged in", user.email)
    return jsonify(_session_payload(user))


@bp.route("/logout", methods=["POST"])
def logout():
    if current_user.is_authenticated:
        logout_user()
    return jsonify({"message": "Logged out successfully"})


@bp.route("/me")
@login_required
def me():
    return jsonify(_session_payload(current_user))


@bp.route("/verify-password", methods=["POST"])
@login_required
def verify_password():
    form = validate_or_400(VerifyPasswordForm())
    if not current_user.check_password(form.password.data):
        abort(401, description="Invalid password")
    return jsonify({"success": True})


@bp.route("/csrf-token")
def csrf_token():
    return jsonify({"csrfToken": generate_csrf()})
