from flask import abort, current_app, jsonify
from flask_login import current_user
from sqlalchemy import func, or_

from . import bp
from .forms import UserForm, UserUpdateForm
from assettrack.assets.lifecycle import release_holder
from assettrack.audit import log_activity
from assettrack.auth.decorators import admin_required, super_admin_required
from assettrack.extensions import db
from assettrack.forms import validate_or_400
from assettrack.models import ROLE_ADMIN, ROLE_TECHNICIAN, Asset, Store, User
from assettrack.system.reset import USER_REFERENCES
from assettrack.tenancy import current_scope


def _user_exists(email: str, username=None, exclude_id=None) -> bool:
    criteria = [func.lower(User.email) == email.strip().lower()]
    if username:
        criteria.append(User.username == username.strip())
    query = User.query.filter(or_(*criteria))
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def _store_or_400(store_id):
    if store_id and db.session.get(Store, store_id) is None:
        abort(400, description="Store not found")
    return store_id or None


def _create_user(form: UserForm, role: str, store_id) -> User:
    if _user_exists(form.email.data, form.username.data):
        abort(400, description="User already exists")

    user = User(
        name=form.name.data.strip(),
        username=(form.username.data or "").strip() or None,
        email=form.email.data.strip(),
        phone=(form.phone.data or "").strip() or None,
        role=role,
        assigned_store_id=store_id,
    )
    user.set_password(form.password.data)
    db.session.add(user)
    log_activity(f"Create {role}", f"Created {role.lower()} {user.email}", store_id=store_id)
    db.session.commit()
    current_app.logger.info("%s %s created by %s", role, user.email, current_user.email)
    return user


def _check_manageable(user: User, action: str):
    """Admins manage technicians of their own store, and themselves."""
    if current_user.is_super_admin or user.id == current_user.id:
        return
    if user.is_admin:
        abort(403, description=f"Cannot {action} admin users")
    if (
        current_user.assigned_store_id
        and user.assigned_store_id
        and user.assigned_store_id != current_user.assigned_store_id
    ):
        abort(403, description=f"Not authorized to {action} users from other stores")


# ----------------------------
# Technicians
# ----------------------------

@bp.route("", methods=["GET"])
@admin_required
def list_technicians():
    query = User.query.filter(User.role == ROLE_TECHNICIAN)
    query = current_scope().apply(query, User.assigned_store_id)
    return jsonify([u.to_dict() for u in query.order_by(User.name.asc()).all()])


@bp.route("", methods=["POST"])
@admin_required
def create_technician():
    form = validate_or_400(UserForm())
    if current_user.is_super_admin:
        store_id = _store_or_400(form.assignedStore.data)
    else:
        store_id = current_user.assigned_store_id
    user = _create_user(form, ROLE_TECHNICIAN, store_id)
    return jsonify(user.to_dict()), 201


@bp.route("/<int:user_id>", methods=["PUT"])
@admin_required
def update_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        abort(404, description="User not found")
    _check_manageable(user, "edit")
    form = validate_or_400(UserUpdateForm())

    email = (form.email.data or "").strip()
    username = (form.username.data or "").strip()
    if (email and email.lower() != user.email.lower()) or (username and username != user.username):
        if _user_exists(email or user.email, username or None, exclude_id=user.id):
            abort(400, description="User already exists")

    user.name = (form.name.data or "").strip() or user.name
    user.username = username or user.username
    user.email = email or user.email
    user.phone = (form.phone.data or "").strip() or user.phone
    if form.password.data:
        user.set_password(form.password.data)
    if current_user.is_super_admin and form.assignedStore.data:
        user.assigned_store_id = _store_or_400(form.assignedStore.data)

    db.session.commit()
    return jsonify(user.to_dict())


@bp.route("/<int:user_id>", methods=["DELETE"])
@admin_required
def delete_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        abort(404, description="User not found")
    if user.id == current_user.id:
        abort(400, description="You cannot delete your own account")
    if user.is_super_admin and not current_user.is_super_admin:
        abort(403, description="Cannot delete admin users")
    _check_manageable(user, "delete")

    # held assets go back to stock before the holder disappears
    for asset in Asset.query.filter(Asset.assigned_to_id == user.id).all():
        release_holder(asset, f"Holder account {user.email} deleted")
    Asset.query.filter(Asset.return_requested_by_id == user.id).update(
        {Asset.return_requested_by_id: None}, synchronize_session=False
    )
    for model, column in USER_REFERENCES:
        model.query.filter(column == user.id).update({column: None}, synchronize_session=False)

    db.session.delete(user)
    log_activity("Delete User", f"Deleted {user.role.lower()} {user.email}", store_id=user.assigned_store_id)
    db.session.commit()
    return jsonify({"message": "User removed"})


# ----------------------------
# Admins (super admin only)
# ----------------------------

@bp.route("/admins", methods=["GET"])
@super_admin_required
def list_admins():
    admins = User.query.filter(User.role == ROLE_ADMIN).order_by(User.name.asc()).all()
    return jsonify([u.to_dict() for u in admins])


@bp.route("/admins", methods=["POST"])
@super_admin_required
def create_admin():
    form = validate_or_400(UserForm())
    store_id = _store_or_400(form.assignedStore.data)
    if not store_id:
        abort(400, description="Admins must be assigned to a store")
    user = _create_user(form, ROLE_ADMIN, store_id)
    return jsonify(user.to_dict()), 201
