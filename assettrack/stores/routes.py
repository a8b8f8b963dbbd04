from flask import abort, current_app, jsonify, request
from flask_login import login_required, current_user
from sqlalchemy import func

from . import bp
from .forms import StoreForm, StoreUpdateForm
from assettrack.audit import log_activity
from assettrack.auth.decorators import admin_required
from assettrack.extensions import db
from assettrack.forms import validate_or_400
from assettrack.models import Asset, Store
from assettrack.status import AssetState
from assettrack.tenancy import active_store_id, get_store_ids


def _flag(name):
    value = request.args.get(name)
    if value is None:
        return None
    return value.strip().lower() == "true"


def _name_taken(name: str, exclude_id=None) -> bool:
    query = Store.query.filter(func.lower(Store.name) == name.strip().lower())
    if exclude_id:
        query = query.filter(Store.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def _get_store(store_id) -> Store:
    store = db.session.get(Store, store_id)
    if store is None:
        abort(404, description="Store not found")
    return store


def _owns(store: Store) -> bool:
    """Admins manage their assigned store and its child locations."""
    if current_user.is_super_admin:
        return True
    assigned = current_user.assigned_store_id
    return bool(assigned) and (store.id == assigned or store.parent_store_id == assigned)


def available_asset_counts(store_ids) -> dict:
    """
    {store_id: assets that are neither handed out nor disposed}
    """
    rows = (
        db.session.query(Asset.store_id, Asset.state, Asset.status, func.count(Asset.id))
        .filter(Asset.store_id.in_(store_ids))
        .group_by(Asset.store_id, Asset.state, Asset.status)
        .all()
    )
    gone = {AssetState.IN_USE.value, AssetState.DISPOSED.value, AssetState.SCRAPPED.value}
    counts = {}
    for store_id, state, status, count in rows:
        if state in gone or (state is None and status == "In Use"):
            continue
        counts[store_id] = counts.get(store_id, 0) + count
    return counts


@bp.route("", methods=["GET"])
@login_required
def list_stores():
    query = Store.query

    main = _flag("main")
    if main is not None:
        query = query.filter(Store.is_main_store.is_(main))

    parent = request.args.get("parent", type=int)
    if parent:
        query = query.filter(Store.parent_store_id == parent)

    if _flag("deletionRequested"):
        query = query.filter(Store.deletion_requested.is_(True))

    if not current_user.is_super_admin:
        assigned = current_user.assigned_store_id
        if not assigned:
            return jsonify([])
        if main:
            query = query.filter(Store.id == assigned)
        elif parent:
            if parent != assigned:
                return jsonify([])
        else:
            query = query.filter(Store.id.in_(get_store_ids(assigned)))

    stores = query.order_by(Store.name.asc()).all()
    payload = [s.to_dict() for s in stores]

    if _flag("includeAssetTotals") and stores:
        counts = available_asset_counts([s.id for s in stores])
        for item in payload:
            item["availableAssetCount"] = counts.get(item["id"], 0)

    return jsonify(payload)


@bp.route("/<int:store_id>", methods=["GET"])
@login_required
def store_detail(store_id):
    store = _get_store(store_id)
    if not _owns(store):
        abort(404, description="Store not found")
    data = store.to_dict()
    data["childStores"] = [c.to_dict() for c in store.child_stores]
    return jsonify(data)


@bp.route("", methods=["POST"])
@admin_required
def create_store():
    form = validate_or_400(StoreForm())
    name = form.name.data.strip()
    if _name_taken(name):
        abort(400, description="Store already exists")

    is_main = bool(form.isMainStore.data)
    parent_id = form.parentStore.data or None

    if not current_user.is_super_admin:
        # admins only add locations under their own store
        if not current_user.assigned_store_id:
            abort(403, description="No assigned store found for Admin")
        is_main = False
        parent_id = current_user.assigned_store_id
    elif not parent_id and not is_main:
        parent_id = active_store_id()

    if parent_id and db.session.get(Store, parent_id) is None:
        abort(400, description="Parent store not found")

    store = Store(name=name, is_main_store=is_main, parent_store_id=None if is_main else parent_id)
    if form.openingTime.data:
        store.opening_time = form.openingTime.data
    if form.closingTime.data:
        store.closing_time = form.closingTime.data

    db.session.add(store)
    log_activity("Create Store", f"Created store {name}", store_id=parent_id)
    db.session.commit()
    return jsonify(store.to_dict()), 201


@bp.route("/<int:store_id>", methods=["PUT"])
@admin_required
def update_store(store_id):
    store = _get_store(store_id)
    if not _owns(store):
        abort(403, description="Not authorized to update this store")
    form = validate_or_400(StoreUpdateForm())

    name = (form.name.data or "").strip()
    if name and name != store.name:
        if _name_taken(name, exclude_id=store.id):
            abort(400, description="Store already exists")
        store.name = name
    if form.openingTime.data:
        store.opening_time = form.openingTime.data
    if form.closingTime.data:
        store.closing_time = form.closingTime.data

    moving = form.parentStore.raw_data and (form.parentStore.data or None) != store.parent_store_id
    if current_user.is_super_admin:
        if form.parentStore.raw_data:
            parent_id = form.parentStore.data or None
            if parent_id == store.id:
                abort(400, description="A store cannot be its own parent")
            if parent_id and db.session.get(Store, parent_id) is None:
                abort(400, description="Parent store not found")
            store.parent_store_id = parent_id
        if form.isMainStore.raw_data:
            store.is_main_store = bool(form.isMainStore.data)
    elif moving:
        abort(403, description="Cannot move store to another parent")

    db.session.commit()
    return jsonify(store.to_dict())


@bp.route("/<int:store_id>", methods=["DELETE"])
@admin_required
def delete_store(store_id):
    store = _get_store(store_id)

    if not current_user.is_super_admin:
        if store.is_main_store:
            abort(403, description="Cannot delete Main Store")
        if store.id == current_user.assigned_store_id:
            abort(403, description="Cannot delete your assigned root store. Please request a reset via Setup.")
        if not _owns(store):
            abort(403, description="Not authorized to delete this store")

    for child in store.child_stores:
        child.parent_store_id = None
    db.session.delete(store)
    log_activity("Delete Store", f"Deleted store {store.name}", store_id=store.parent_store_id)
    db.session.commit()
    current_app.logger.info("Store %s deleted by %s", store.name, current_user.email)
    return jsonify({"message": "Store removed"})
