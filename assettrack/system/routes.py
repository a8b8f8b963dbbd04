import os

from flask import abort, current_app, jsonify
from flask_login import current_user

from . import bp
from .backup import backup_database, build_backup_payload, dump_backup
from .forms import CancelResetForm, ResetForm
from .reset import ResetInProgress, is_reset_running, reset_data
from assettrack.audit import log_activity
from assettrack.auth.decorators import admin_required, super_admin_required
from assettrack.extensions import db
from assettrack.forms import validate_or_400
from assettrack.models import Store, utcnow
from assettrack.tenancy import get_store_ids


def _dir_size(path) -> int:
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += os.path.getsize(os.path.join(root, name))
            except OSError:
                continue  # removed while walking
    return total


def _database_size() -> int:
    url = db.engine.url
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        if os.path.exists(url.database):
            return os.path.getsize(url.database)
    return 0


# ----------------------------
# Storage / backups
# ----------------------------

@bp.route("/storage")
@admin_required
def storage_usage():
    used = _database_size() + _dir_size(current_app.config["UPLOAD_FOLDER"])
    limit = current_app.config["STORAGE_LIMIT_BYTES"]
    return jsonify({
        "usedBytes": used,
        "limitBytes": limit,
        "percentUsed": min(round(used / limit * 100), 100) if limit else 0,
    })


@bp.route("/backup", methods=["POST"])
@admin_required
def run_backup():
    path = backup_database()
    return jsonify({"message": "Backup completed successfully", "path": str(path)})


@bp.route("/backup-file")
@super_admin_required
def download_backup():
    timestamp = utcnow().strftime("%Y%m%d-%H%M%S")
    response = current_app.response_class(
        dump_backup(build_backup_payload()), mimetype="application/json"
    )
    response.headers["Content-Disposition"] = f"attachment; filename=assettrack-backup-{timestamp}.json"
    return response


# ----------------------------
# Reset workflow
# ----------------------------

@bp.route("/request-reset", methods=["POST"])
@admin_required
def request_reset():
    if current_user.is_super_admin:
        abort(400, description="Super Admin should use the main reset function.")
    if not current_user.assigned_store_id:
        abort(400, description="No assigned store found for this admin.")

    store = db.session.get(Store, current_user.assigned_store_id)
    if store is None:
        abort(404, description="Store not found.")

    store.deletion_requested = True
    store.deletion_requested_at = utcnow()
    store.deletion_requested_by = f"{current_user.name} ({current_user.email})"
    log_activity("System Reset Request", f"Deletion requested for Store: {store.name}", store_id=store.id)
    db.session.commit()
    return jsonify({"message": "Deletion request submitted to Super Admin."})


@bp.route("/cancel-reset", methods=["POST"])
@super_admin_required
def cancel_reset():
    form = validate_or_400(CancelResetForm())
    store = db.session.get(Store, form.storeId.data)
    if store is None:
        abort(404, description="Store not found")

    store.deletion_requested = False
    store.deletion_requested_at = None
    store.deletion_requested_by = None
    log_activity(
        "System Reset Cancelled",
        f"Deletion request rejected/cancelled for Store: {store.name}",
        store_id=store.id,
    )
    db.session.commit()
    return jsonify({"message": "Reset request cancelled successfully"})


@bp.route("/reset", methods=["POST"])
@super_admin_required
def reset():
    if is_reset_running():
        abort(429, description="Another reset is in progress. Please wait and try again.")
    form = validate_or_400(ResetForm())
    if not current_user.check_password(form.password.data):
        abort(401, description="Invalid password")

    raw_store = form.storeId.data.strip()
    if raw_store.lower() == "all":
        store_ids, scope_label = None, "Full System"
    else:
        store_ids = get_store_ids(raw_store)
        if not store_ids or db.session.get(Store, store_ids[0]) is None:
            abort(404, description="Store not found")
        scope_label = f"Store: {store_ids[0]}"

    include_users = bool(form.includeUsers.data)
    try:
        deleted = reset_data(store_ids, include_users=include_users)
    except ResetInProgress as exc:
        abort(429, description=str(exc))

    current_app.logger.warning(
        "%s reset performed by %s (%s): %s",
        scope_label,
        current_user.email,
        "Users DELETED" if include_users else "Users preserved",
        deleted,
    )
    return jsonify({
        "message": "System reset successful",
        "stats": {
            "scope": scope_label,
            "usersDeleted": "Yes" if include_users else "No",
            "assetsDeleted": deleted["assets"],
            "requestsDeleted": deleted["requests"],
            "logsDeleted": deleted["activityLogs"],
            "purchaseOrdersDeleted": deleted["purchaseOrders"],
            "vendorsDeleted": deleted["vendors"],
            "passesDeleted": deleted["passes"],
            "permitsDeleted": deleted["permits"],
        },
    })
