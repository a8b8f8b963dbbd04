from flask import abort, jsonify, request, send_file
from flask_login import login_required, current_user
from sqlalchemy import or_

from . import bp
from .forms import StockRequestForm, StockRequestStatusForm
from assettrack.assets.exporter import XLSX_MIMETYPE, rows_workbook
from assettrack.audit import log_activity
from assettrack.auth.decorators import admin_required
from assettrack.extensions import db
from assettrack.forms import validate_or_400
from assettrack.models import Request, User
from assettrack.tenancy import active_store_id, current_scope, get_scoped_or_404


EXPORT_HEADERS = [
    "Item",
    "Quantity",
    "Description",
    "Status",
    "Store",
    "TechnicianName",
    "TechnicianEmail",
    "TechnicianPhone",
    "TechnicianUsername",
    "CreatedAt",
    "UpdatedAt",
]


def _filtered_requests():
    query = current_scope().apply(Request.query, Request.store_id)

    status = request.args.get("status", "").strip()
    if status:
        query = query.filter(Request.status == status)

    q = request.args.get("q", "").strip()
    if q:
        pattern = f"%{q}%"
        query = query.join(User, Request.requester_id == User.id).filter(
            or_(
                User.name.ilike(pattern),
                User.email.ilike(pattern),
                User.phone.ilike(pattern),
                User.username.ilike(pattern),
            )
        )
    return query


@bp.route("", methods=["POST"])
@login_required
def create_request():
    form = validate_or_400(StockRequestForm())
    scope = current_scope()

    store_id = form.store.data or active_store_id()
    if store_id and not scope.allows(store_id):
        abort(403, description="Store is outside your access")

    stock_request = Request(
        item_name=form.item_name.data.strip(),
        quantity=form.quantity.data or 1,
        description=form.description.data or "",
        requester_id=current_user.id,
        store_id=store_id,
    )
    db.session.add(stock_request)
    log_activity(
        "Stock Request",
        f"Requested {stock_request.quantity} x {stock_request.item_name}",
        store_id=store_id,
    )
    db.session.commit()
    return jsonify(stock_request.to_dict()), 201


@bp.route("", methods=["GET"])
@admin_required
def list_requests():
    requests = _filtered_requests().order_by(Request.created_at.desc(), Request.id.desc()).all()
    return jsonify([r.to_dict() for r in requests])


@bp.route("/mine")
@login_required
def my_requests():
    query = Request.query.filter(Request.requester_id == current_user.id)
    store_id = active_store_id()
    if store_id:
        query = query.filter(Request.store_id == store_id)
    return jsonify([r.to_dict() for r in query.order_by(Request.updated_at.desc()).all()])


@bp.route("/export")
@admin_required
def export_requests():
    rows = []
    for r in _filtered_requests().order_by(Request.updated_at.desc()).all():
        requester = r.requester
        rows.append([
            r.item_name,
            r.quantity,
            r.description or "",
            r.status,
            r.store.name if r.store else "",
            requester.name if requester else "",
            requester.email if requester else "",
            (requester.phone or "") if requester else "",
            (requester.username or "") if requester else "",
            r.created_at,
            r.updated_at,
        ])

    output = rows_workbook("Requests", EXPORT_HEADERS, rows)
    return send_file(output, mimetype=XLSX_MIMETYPE, as_attachment=True, download_name="requests.xlsx")


@bp.route("/<int:request_id>", methods=["PUT"])
@admin_required
def update_request(request_id):
    stock_request = get_scoped_or_404(Request, request_id, "Request not found")
    form = validate_or_400(StockRequestStatusForm())

    stock_request.status = form.status.data
    log_activity(
        "Update Stock Request",
        f"{stock_request.item_name} marked {stock_request.status}",
        store_id=stock_request.store_id,
    )
    db.session.commit()
    return jsonify(stock_request.to_dict())
