from __future__ import annotations

from datetime import datetime, timedelta
from collections import Counter
from typing import Optional

from flask import abort, current_app, jsonify, request, send_file
from flask_login import login_required, current_user
from sqlalchemy import func, or_

from . import bp
from .exporter import XLSX_MIMETYPE, export_assets_workbook, import_template_workbook
from .forms import (
    AssetForm,
    AssetUpdateForm,
    AssetActionForm,
    AssignForm,
    CollectForm,
    FaultyForm,
    ReturnForm,
    ReturnDecisionForm,
    DisposeForm,
    ImportForm,
)
from .importer import ImportFileError, ImportOptions, import_records, is_na, normalize_status, read_records
from . import lifecycle
from .lifecycle import LifecycleError, generate_unique_id
from assettrack.audit import log_activity, record_history
from assettrack.auth.decorators import admin_required
from assettrack.categories.catalog import ensure_catalog_entry
from assettrack.extensions import db
from assettrack.forms import json_body, paginate, validate_or_400
from assettrack.models import (
    ASSET_STATUSES,
    ROLE_TECHNICIAN,
    ActivityLog,
    Asset,
    AssetHistory,
    Request,
    Store,
    User,
    utcnow,
)
from assettrack.status import AssetState
from assettrack.tenancy import current_scope


# ----------------------------
# Helpers
# ----------------------------

SEARCH_COLUMNS = (
    Asset.name,
    Asset.model_number,
    Asset.serial_number,
    Asset.mac_address,
    Asset.rfid,
    Asset.qr_code,
    Asset.unique_id,
    Asset.manufacturer,
)

LIKE_FILTERS = (
    "manufacturer",
    "model_number",
    "serial_number",
    "mac_address",
    "product_type",
    "product_name",
    "ticket_number",
    "rfid",
    "qr_code",
    "location",
)

UPDATABLE_FIELDS = (
    "name",
    "model_number",
    "serial_number",
    "mac_address",
    "manufacturer",
    "ticket_number",
    "category",
    "product_type",
    "product_name",
    "rfid",
    "qr_code",
    "location",
    "status",
    "condition",
    "source",
)

BULK_UPDATE_FIELDS = ("status", "condition", "location", "category", "product_type", "product_name", "manufacturer")

# history actions that tie an asset to the technician who performed them
TECHNICIAN_ACTION_PATTERNS = ("Returned/%", "Collected%", "Reported Faulty")


def _like(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _scoped_assets(scope=None):
    scope = scope or current_scope()
    return scope.apply(Asset.query, Asset.store_id, Asset.location)


def _get_scoped_asset(asset_id) -> Asset:
    """Load an asset inside the tenant scope; anything else is a 404."""
    try:
        asset_id = int(asset_id)
    except (TypeError, ValueError):
        abort(404, description="Asset not found")
    asset = _scoped_assets().filter(Asset.id == asset_id).first()
    if asset is None:
        abort(404, description="Asset not found")
    return asset


def _target_store_id(requested: Optional[int]) -> Optional[int]:
    """Store a new or moved asset is written to."""
    scope = current_scope()
    if scope.is_denied:
        abort(403, description="No store access")
    if requested:
        try:
            requested = int(requested)
        except (TypeError, ValueError):
            abort(400, description="Invalid store")
        if db.session.get(Store, requested) is None:
            abort(400, description="Store not found")
        if scope.allows(requested):
            return requested
        if scope.active_store_id is None:
            abort(403, description="Store is outside your access")
    return scope.active_store_id


def _serial_taken(serial: Optional[str], store_id: Optional[int], exclude_id: Optional[int] = None) -> bool:
    if is_na(serial):
        return False
    query = Asset.query.filter(Asset.serial_number == serial.strip())
    if store_id:
        query = query.filter(Asset.store_id == store_id)
    else:
        query = query.filter(Asset.store_id.is_(None))
    if exclude_id:
        query = query.filter(Asset.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def _mark_duplicates(items):
    """isDuplicate when another asset in the same store shares the serial."""
    serials = {a.serial_number for a in items if not is_na(a.serial_number)}
    if not serials:
        return {}
    store_ids = {a.store_id for a in items if a.store_id is not None}
    store_filter = Asset.store_id.in_(store_ids) if store_ids else None
    if any(a.store_id is None for a in items):
        store_filter = (
            or_(store_filter, Asset.store_id.is_(None)) if store_filter is not None else Asset.store_id.is_(None)
        )
    rows = (
        db.session.query(Asset.serial_number, Asset.store_id, func.count(Asset.id))
        .filter(Asset.serial_number.in_(serials), store_filter)
        .group_by(Asset.serial_number, Asset.store_id)
        .all()
    )
    return {(serial, store_id): count for serial, store_id, count in rows}


def _asset_list_payload(items, meta):
    counts = _mark_duplicates(items)
    payload = []
    for asset in items:
        data = asset.to_dict(include_history=False)
        data["isDuplicate"] = counts.get((asset.serial_number, asset.store_id), 0) > 1
        payload.append(data)
    return {"items": payload, **meta}


def _asset_label(asset: Asset) -> str:
    return f"{asset.name} (SN: {asset.serial_number or 'N/A'})"


def _run(transition, *args, **kwargs):
    try:
        return transition(*args, **kwargs)
    except LifecycleError as exc:
        abort(400, description=str(exc))


def _parse_date(value: str, end_of_day=False):
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        abort(400, description=f"Invalid date '{value}', expected YYYY-MM-DD")
    if end_of_day:
        parsed = parsed + timedelta(days=1) - timedelta(microseconds=1)
    return parsed


def _id_list(values) -> list:
    if not isinstance(values, list) or not values:
        abort(400, description="No asset ids provided")
    try:
        return [int(v) for v in values]
    except (TypeError, ValueError):
        abort(400, description="Asset ids must be integers")


# ----------------------------
# Listing / search
# ----------------------------

@bp.route("", methods=["GET"])
@login_required
def list_assets():
    scope = current_scope().narrow(request.args.get("store"))
    query = _scoped_assets(scope)

    q = request.args.get("q", "").strip()
    if q:
        pattern = _like(q)
        query = query.filter(or_(*[col.ilike(pattern, escape="\\") for col in SEARCH_COLUMNS]))

    status = request.args.get("status", "").strip()
    if status:
        statuses = [s.strip() for s in status.split(",") if s.strip()]
        query = query.filter(Asset.status.in_(statuses))

    category = request.args.get("category", "").strip()
    if category:
        query = query.filter(Asset.category == category)

    for name in LIKE_FILTERS:
        value = request.args.get(name, "").strip()
        if value:
            query = query.filter(getattr(Asset, name).ilike(_like(value), escape="\\"))

    date_from = request.args.get("date_from", "").strip()
    if date_from:
        query = query.filter(Asset.created_at >= _parse_date(date_from))
    date_to = request.args.get("date_to", "").strip()
    if date_to:
        query = query.filter(Asset.created_at <= _parse_date(date_to, end_of_day=True))

    items, meta = paginate(query.order_by(Asset.updated_at.desc(), Asset.id.desc()))
    return jsonify(_asset_list_payload(items, meta))


@bp.route("/stats")
@login_required
def asset_stats():
    scope = current_scope()
    base = _scoped_assets(scope)

    def count(*criteria):
        return base.filter(*criteria).count()

    pending_requests = scope.apply(
        Request.query.filter(Request.status == "Pending"), Request.store_id
    ).count()

    status_counts = {s: 0 for s in ("New", "Used", "Faulty", "Disposed")}
    for status, total in (
        base.with_entities(Asset.status, func.count(Asset.id)).group_by(Asset.status).all()
    ):
        if status:
            status_counts[status] = total

    models = (
        base.with_entities(Asset.model_number, func.count(Asset.id).label("n"))
        .group_by(Asset.model_number)
        .order_by(func.count(Asset.id).desc())
        .limit(10)
        .all()
    )
    categories = (
        base.with_entities(Asset.category, func.count(Asset.id))
        .group_by(Asset.category)
        .order_by(func.count(Asset.id).desc())
        .all()
    )

    since = utcnow() - timedelta(days=183)
    growth = Counter(
        created.strftime("%Y-%m")
        for (created,) in base.with_entities(Asset.created_at).filter(Asset.created_at >= since).all()
    )

    return jsonify({
        "overview": {
            "total": base.count(),
            "inUse": count(Asset.state == AssetState.IN_USE.value),
            "spare": count(Asset.state.in_([AssetState.NEW.value, AssetState.USED.value])),
            "faulty": count(Asset.state == AssetState.FAULTY.value),
            "disposed": count(Asset.state == AssetState.DISPOSED.value),
            "pendingReturns": count(Asset.return_pending.is_(True)),
            "pendingRequests": pending_requests,
        },
        "status": status_counts,
        "models": [{"name": m or "Unknown", "value": n} for m, n in models],
        "categories": [{"name": c or "Uncategorized", "value": n} for c, n in categories],
        "growth": [{"name": month, "value": growth[month]} for month in sorted(growth)],
    })


@bp.route("/search")
@login_required
def search_assets():
    term = (request.args.get("query") or request.args.get("q") or "").strip()
    if not term:
        return jsonify([])
    pattern = _like(term)
    assets = (
        _scoped_assets()
        .filter(or_(
            Asset.serial_number.ilike(pattern, escape="\\"),
            Asset.unique_id.ilike(pattern, escape="\\"),
        ))
        .order_by(Asset.updated_at.desc())
        .limit(50)
        .all()
    )
    return jsonify([a.to_dict() for a in assets])


@bp.route("/search-serial")
@login_required
def search_serial():
    """Serial suffix lookup, at least three characters."""
    term = request.args.get("q", "").strip()
    if len(term) < 3:
        return jsonify([])
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    assets = (
        _scoped_assets()
        .filter(Asset.serial_number.ilike(f"%{escaped}", escape="\\"))
        .limit(10)
        .all()
    )
    return jsonify([
        {
            "id": a.id,
            "name": a.name,
            "model_number": a.model_number,
            "serial_number": a.serial_number,
            "statusLabel": a.to_dict(include_history=False)["statusLabel"],
        }
        for a in assets
    ])


@bp.route("/my")
@login_required
def my_assets():
    handled = (
        db.session.query(AssetHistory.asset_id)
        .filter(AssetHistory.user == current_user.name)
        .filter(or_(*[AssetHistory.action.like(p) for p in TECHNICIAN_ACTION_PATTERNS]))
    )
    assets = (
        Asset.query
        .filter(or_(Asset.assigned_to_id == current_user.id, Asset.id.in_(handled)))
        .order_by(Asset.updated_at.desc())
        .all()
    )
    return jsonify([a.to_dict() for a in assets])


@bp.route("/by-technician")
@admin_required
def assets_by_technician():
    term = request.args.get("query", "").strip()
    query = _scoped_assets()

    if not term:
        handled = db.session.query(AssetHistory.asset_id).filter(
            or_(*[AssetHistory.action.like(p) for p in TECHNICIAN_ACTION_PATTERNS])
        )
        query = query.filter(or_(Asset.assigned_to_id.isnot(None), Asset.id.in_(handled)))
    else:
        pattern = _like(term)
        technicians = User.query.filter(
            User.role == ROLE_TECHNICIAN,
            or_(
                User.name.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
                User.phone.ilike(pattern, escape="\\"),
                User.username.ilike(pattern, escape="\\"),
            ),
        ).all()
        ids = [t.id for t in technicians]
        names = [t.name for t in technicians]
        handled = db.session.query(AssetHistory.asset_id).filter(AssetHistory.user.in_(names))
        query = query.filter(or_(Asset.assigned_to_id.in_(ids), Asset.id.in_(handled)))

    items, meta = paginate(query.order_by(Asset.updated_at.desc(), Asset.id.desc()))
    return jsonify({"items": [a.to_dict() for a in items], **meta})


@bp.route("/return-pending")
@admin_required
def return_pending():
    assets = (
        _scoped_assets()
        .filter(Asset.return_pending.is_(True))
        .order_by(Asset.updated_at.desc())
        .all()
    )
    return jsonify([a.to_dict() for a in assets])


@bp.route("/activity-logs")
@admin_required
def activity_logs():
    logs = (
        current_scope()
        .apply(ActivityLog.query, ActivityLog.store_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(100)
        .all()
    )
    return jsonify([log.to_dict() for log in logs])


@bp.route("/recent-activity")
@admin_required
def recent_activity():
    """Asset history across the scope, newest first."""
    limit = min(max(request.args.get("limit", 50, type=int) or 50, 1), 200)
    rows = (
        current_scope()
        .apply(
            db.session.query(AssetHistory, Asset).join(Asset, AssetHistory.asset_id == Asset.id),
            Asset.store_id,
            Asset.location,
        )
        .order_by(AssetHistory.date.desc(), AssetHistory.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify([
        {
            "assetId": asset.id,
            "name": asset.name,
            "model_number": asset.model_number,
            "serial_number": asset.serial_number,
            "status": asset.status,
            "store": asset.store.name if asset.store else None,
            "assigned_to": asset.assigned_to.to_brief() if asset.assigned_to else None,
            "history": entry.to_dict(),
        }
        for entry, asset in rows
    ])


# ----------------------------
# Spreadsheets
# ----------------------------

@bp.route("/export")
@admin_required
def export_assets():
    assets = _scoped_assets().order_by(Asset.id).all()
    output = export_assets_workbook(assets)
    return send_file(output, as_attachment=True, download_name="assets.xlsx", mimetype=XLSX_MIMETYPE)


@bp.route("/template")
@login_required
def import_template():
    return send_file(
        import_template_workbook(),
        as_attachment=True,
        download_name="Asset_Import_Template.xlsx",
        mimetype=XLSX_MIMETYPE,
    )


@bp.route("/import", methods=["POST"])
@login_required
def import_assets():
    upload = request.files.get("file")
    if not upload or not upload.filename:
        abort(400, description="No file uploaded")

    form = validate_or_400(ImportForm())
    scope = current_scope()
    if scope.is_denied:
        abort(403, description="No store access")

    try:
        records = read_records(upload.filename, upload.read())
    except ImportFileError as exc:
        abort(400, description=str(exc))

    options = ImportOptions(
        allow_duplicates=bool(form.allowDuplicates.data),
        category=(form.category.data or "").strip(),
        product_type=(form.product_type.data or "").strip(),
        product_name=(form.product_name.data or "").strip(),
        source=form.source.data or "",
        vendor_id=form.vendor.data or None,
        location=(form.location.data or "").strip(),
        store_id=scope.active_store_id,
        restrict_store_ids=scope.store_ids,
    )
    result = import_records(records, options)

    if result.imported:
        log_activity(
            "Bulk Import",
            f"Imported {result.imported} assets from {upload.filename}",
            store_id=scope.active_store_id,
        )
    db.session.commit()
    current_app.logger.info(
        "Import %s by %s: %s imported, %s duplicates, %s invalid",
        upload.filename,
        current_user.email,
        result.imported,
        len(result.skipped_duplicates),
        len(result.invalid_rows),
    )

    if not result.imported:
        return jsonify({"message": "No valid assets found to import", **result.to_dict()}), 400
    return jsonify({"message": f"{result.imported} assets imported successfully", **result.to_dict()})


# ----------------------------
# CRUD
# ----------------------------

@bp.route("", methods=["POST"])
@login_required
def create_asset():
    form = validate_or_400(AssetForm())
    store_id = _target_store_id(form.store.data)
    serial = (form.serial_number.data or "").strip()

    if _serial_taken(serial, store_id):
        abort(400, description="Asset with this serial number already exists in this store")

    category = (form.category.data or "").strip() or "Other"
    product_type = (form.product_type.data or "").strip()
    product_name = (form.product_name.data or "").strip()
    if product_type and product_name:
        category, product_type, product_name = ensure_catalog_entry(
            category, product_type, product_name, store_id=store_id, model_number=form.model_number.data or ""
        )

    asset = Asset(
        unique_id=generate_unique_id(form.name.data),
        name=form.name.data.strip(),
        model_number=(form.model_number.data or "").strip() or None,
        serial_number=serial or None,
        mac_address=form.mac_address.data or "",
        manufacturer=form.manufacturer.data or "",
        ticket_number=form.ticket_number.data or "",
        rfid=form.rfid.data or "",
        qr_code=form.qr_code.data or "",
        category=category,
        product_type=product_type or None,
        product_name=product_name or None,
        store_id=store_id,
        location=form.location.data or "",
        status=form.status.data or "New",
        source=form.source.data or "Initial Setup",
    )
    if form.condition.data:
        asset.condition = form.condition.data

    db.session.add(asset)
    record_history(asset, "Created", ticket_number=asset.ticket_number or None)
    log_activity("Create Asset", f"Created asset {_asset_label(asset)}", store_id=store_id)
    db.session.commit()

    return jsonify(asset.to_dict()), 201


@bp.route("/<int:asset_id>", methods=["GET"])
@login_required
def asset_detail(asset_id):
    return jsonify(_get_scoped_asset(asset_id).to_dict())


@bp.route("/<int:asset_id>", methods=["PUT"])
@admin_required
def update_asset(asset_id):
    asset = _get_scoped_asset(asset_id)
    form = validate_or_400(AssetUpdateForm())
    old_serial = asset.serial_number

    for name in UPDATABLE_FIELDS:
        value = getattr(form, name).data
        if isinstance(value, str):
            value = value.strip()
        if value:
            setattr(asset, name, value)

    if form.store.data and form.store.data != asset.store_id:
        asset.store_id = _target_store_id(form.store.data)

    if asset.serial_number != old_serial and _serial_taken(asset.serial_number, asset.store_id, asset.id):
        abort(400, description="Asset with this serial number already exists in this store")

    record_history(asset, "Edited", details=f"SN: {old_serial} -> {asset.serial_number}")
    log_activity(
        "Edit Asset",
        f"Edited asset {asset.name} (SN: {old_serial} -> {asset.serial_number})",
        store_id=asset.store_id,
    )
    db.session.commit()
    return jsonify(asset.to_dict())


@bp.route("/<int:asset_id>", methods=["DELETE"])
@admin_required
def delete_asset(asset_id):
    asset = _get_scoped_asset(asset_id)
    label = _asset_label(asset)
    store_id = asset.store_id

    db.session.delete(asset)
    log_activity("Delete Asset", f"Deleted asset {label}", store_id=store_id)
    db.session.commit()
    return jsonify({"message": "Asset removed"})


# ----------------------------
# Batch
# ----------------------------

@bp.route("/bulk", methods=["POST"])
@admin_required
def bulk_create():
    """Insert rows as given, duplicates included."""
    rows = json_body().get("assets")
    if not isinstance(rows, list) or not rows:
        abort(400, description="No assets provided")

    created = []
    for index, row in enumerate(rows, start=1):
        if not isinstance(row, dict) or not str(row.get("name") or "").strip():
            abort(400, description=f"Asset {index}: name is required")
        store_id = _target_store_id(row.get("store"))
        asset = Asset(
            unique_id=generate_unique_id(row["name"]),
            name=str(row["name"]).strip(),
            model_number=row.get("model_number") or None,
            serial_number=row.get("serial_number") or None,
            mac_address=row.get("mac_address") or "",
            manufacturer=row.get("manufacturer") or "",
            ticket_number=row.get("ticket_number") or "",
            rfid=row.get("rfid") or "",
            qr_code=row.get("qr_code") or "",
            category=row.get("category") or "Other",
            product_type=row.get("product_type") or None,
            product_name=row.get("product_name") or None,
            store_id=store_id,
            location=row.get("location") or "",
            status=normalize_status(row.get("status")),
        )
        db.session.add(asset)
        record_history(asset, "Created", details="Bulk force import")
        db.session.flush()
        created.append(asset)

    log_activity("Bulk Force Import", f"Force imported {len(created)} assets")
    db.session.commit()
    return jsonify({
        "message": f"Successfully added {len(created)} assets",
        "assets": [a.to_dict(include_history=False) for a in created],
    }), 201


@bp.route("/bulk-update", methods=["POST"])
@admin_required
def bulk_update():
    payload = json_body()
    ids = _id_list(payload.get("ids"))
    updates = payload.get("updates")
    if not isinstance(updates, dict):
        abort(400, description="No updates provided")

    changes = {k: str(v).strip() for k, v in updates.items() if k in BULK_UPDATE_FIELDS and v not in (None, "")}
    if "status" in changes and changes["status"] not in ASSET_STATUSES:
        abort(400, description=f"Invalid status '{changes['status']}'")
    store_id = updates.get("store")
    if not changes and not store_id:
        abort(400, description="No updatable fields provided")
    if store_id:
        store_id = _target_store_id(store_id)

    # per-object updates keep the derived state columns in sync
    assets = _scoped_assets().filter(Asset.id.in_(ids)).all()
    for asset in assets:
        for name, value in changes.items():
            setattr(asset, name, value)
        if store_id:
            asset.store_id = store_id
        record_history(asset, "Bulk Updated", details=", ".join(f"{k}={v}" for k, v in changes.items()) or None)

    log_activity("Bulk Update", f"Updated {len(assets)} assets")
    db.session.commit()
    return jsonify({"message": f"Updated {len(assets)} assets", "updated": len(assets)})


@bp.route("/bulk-delete", methods=["POST"])
@admin_required
def bulk_delete():
    ids = _id_list(json_body().get("ids"))
    assets = _scoped_assets().filter(Asset.id.in_(ids)).all()
    for asset in assets:
        db.session.delete(asset)

    log_activity("Bulk Delete", f"Deleted {len(assets)} assets")
    db.session.commit()
    return jsonify({"message": f"Deleted {len(assets)} assets", "deleted": len(assets)})


# ----------------------------
# Lifecycle
# ----------------------------

@bp.route("/assign", methods=["POST"])
@admin_required
def assign_asset():
    form = validate_or_400(AssignForm())
    asset = _get_scoped_asset(form.assetId.data)
    other = json_body().get("otherRecipient") or {}

    if form.technicianId.data:
        technician = db.session.get(User, form.technicianId.data)
        if technician is None:
            abort(404, description="Technician not found")
        if not current_scope().allows(technician.assigned_store_id) and not technician.is_super_admin:
            abort(403, description="Technician belongs to another store")
        _run(lifecycle.assign_to_user, asset, technician, form.ticketNumber.data)
        detail = f"Assigned asset {_asset_label(asset)} to {technician.name}"
        log_activity("Assign Asset", f"{detail} (Ticket: {form.ticketNumber.data or 'N/A'})", store_id=asset.store_id)
    elif isinstance(other, dict) and str(other.get("name") or "").strip():
        _run(
            lifecycle.assign_external,
            asset,
            str(other["name"]),
            phone=other.get("phone"),
            note=other.get("note"),
            ticket_number=form.ticketNumber.data,
        )
        log_activity(
            "Assign Asset (External)",
            f"Assigned asset {_asset_label(asset)} externally to {other['name']}",
            store_id=asset.store_id,
        )
    else:
        abort(400, description="Provide technicianId or otherRecipient.name")

    db.session.commit()
    return jsonify(asset.to_dict())


@bp.route("/unassign", methods=["POST"])
@admin_required
def unassign_asset():
    form = validate_or_400(AssetActionForm())
    asset = _get_scoped_asset(form.assetId.data)
    entry = _run(lifecycle.unassign, asset)
    log_activity("Unassign Asset", f"Unassigned asset {_asset_label(asset)}. {entry.details}", store_id=asset.store_id)
    db.session.commit()
    return jsonify(asset.to_dict())


@bp.route("/collect", methods=["POST"])
@login_required
def collect_asset():
    form = validate_or_400(CollectForm())
    asset = _get_scoped_asset(form.assetId.data)
    _run(
        lifecycle.collect,
        asset,
        current_user,
        ticket_number=form.ticketNumber.data,
        installation_location=form.installationLocation.data,
    )
    log_activity("Collect Asset", f"Collected asset {_asset_label(asset)}", store_id=asset.store_id)
    db.session.commit()
    return jsonify(asset.to_dict())


@bp.route("/faulty", methods=["POST"])
@login_required
def report_faulty():
    form = validate_or_400(FaultyForm())
    asset = _get_scoped_asset(form.assetId.data)
    _run(lifecycle.report_faulty, asset, ticket_number=form.ticketNumber.data, details=form.details.data)
    log_activity("Report Faulty", f"Reported asset {_asset_label(asset)} faulty", store_id=asset.store_id)
    db.session.commit()
    return jsonify(asset.to_dict())


def _ensure_holder_or_admin(asset: Asset):
    if current_user.is_admin:
        return
    if asset.assigned_to_id != current_user.id:
        abort(403, description="You can only return your assigned assets")


@bp.route("/return", methods=["POST"])
@login_required
def return_asset():
    form = validate_or_400(ReturnForm())
    asset = _get_scoped_asset(form.assetId.data)
    _ensure_holder_or_admin(asset)

    entry = _run(
        lifecycle.return_asset,
        asset,
        form.condition.data,
        ticket_number=form.ticketNumber.data,
        details=form.notes.data or f"Returned by {current_user.name}",
    )
    log_activity("Return Asset", f"Returned asset {_asset_label(asset)} as {entry.action.split('/')[-1]}", store_id=asset.store_id)
    db.session.commit()
    return jsonify({"message": "Asset returned successfully", "asset": asset.to_dict()})


@bp.route("/return-request", methods=["POST"])
@login_required
def request_return():
    form = validate_or_400(ReturnForm())
    asset = _get_scoped_asset(form.assetId.data)
    if asset.assigned_to_id != current_user.id:
        abort(403, description="You can only request return for your assigned assets")

    _run(
        lifecycle.request_return,
        asset,
        current_user,
        form.condition.data,
        ticket_number=form.ticketNumber.data,
        notes=form.notes.data,
    )
    log_activity("Request Return", f"Requested return of {_asset_label(asset)}", store_id=asset.store_id)
    db.session.commit()
    return jsonify({"message": "Return request submitted", "asset": asset.to_dict()})


@bp.route("/return-approve", methods=["POST"])
@admin_required
def approve_return():
    form = validate_or_400(ReturnDecisionForm())
    asset = _get_scoped_asset(form.assetId.data)
    entry = _run(lifecycle.approve_return, asset)
    log_activity("Approve Return", f"Approved return of {_asset_label(asset)} ({entry.action})", store_id=asset.store_id)
    db.session.commit()
    return jsonify({"message": "Return approved", "asset": asset.to_dict()})


@bp.route("/return-reject", methods=["POST"])
@admin_required
def reject_return():
    form = validate_or_400(ReturnDecisionForm())
    asset = _get_scoped_asset(form.assetId.data)
    _run(lifecycle.reject_return, asset, form.reason.data)
    log_activity("Reject Return", f"Rejected return of {_asset_label(asset)}", store_id=asset.store_id)
    db.session.commit()
    return jsonify({"message": "Return rejected", "asset": asset.to_dict()})


@bp.route("/dispose", methods=["POST"])
@admin_required
def dispose_asset():
    form = validate_or_400(DisposeForm())
    asset = _get_scoped_asset(form.assetId.data)
    _run(lifecycle.dispose, asset, reason=form.reason.data, ticket_number=form.ticketNumber.data)
    log_activity("Dispose Asset", f"Disposed asset {_asset_label(asset)}", store_id=asset.store_id)
    db.session.commit()
    return jsonify(asset.to_dict())
