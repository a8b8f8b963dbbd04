from datetime import date
from decimal import Decimal, InvalidOperation

from flask import abort, jsonify, request
from flask_login import current_user

from . import bp
from .forms import PurchaseOrderForm
from assettrack.audit import log_activity
from assettrack.auth.decorators import admin_required
from assettrack.extensions import db
from assettrack.forms import json_list_field, validate_or_400
from assettrack.models import PurchaseOrder, Vendor
from assettrack.numbering import next_sequence_number
from assettrack.tenancy import active_store_id, current_scope, get_scoped_or_404
from assettrack.uploads import save_upload


def _items_total(items) -> Decimal:
    total = Decimal("0")
    for item in items:
        if not isinstance(item, dict):
            abort(400, description="Invalid items format")
        try:
            quantity = Decimal(str(item.get("quantity") or 0))
            price = Decimal(str(item.get("unit_price", item.get("unitPrice")) or 0))
        except InvalidOperation:
            abort(400, description="Invalid items format")
        total += quantity * price
    return total


def _vendor_id(vendor_id):
    if not vendor_id:
        return None
    vendor = db.session.get(Vendor, vendor_id)
    if vendor is None or (vendor.store_id is not None and not current_scope().allows(vendor.store_id)):
        abort(400, description="Vendor not found")
    return vendor.id


def _attachments():
    return [save_upload(f, prefix="po") for f in request.files.getlist("attachments") if f.filename]


def _apply_form(po: PurchaseOrder, form: PurchaseOrderForm):
    if form.vendor.data:
        po.vendor_id = _vendor_id(form.vendor.data)
    if form.orderDate.data:
        po.order_date = form.orderDate.data
    if form.expectedDelivery.data:
        po.expected_delivery = form.expectedDelivery.data
    if form.status.data:
        po.status = form.status.data
    if form.notes.data:
        po.notes = form.notes.data

    items = json_list_field("items")
    if items is not None:
        po.items = items
        po.total_amount = _items_total(items)
    if form.totalAmount.data is not None:
        po.total_amount = form.totalAmount.data


@bp.route("", methods=["GET"])
@admin_required
def list_purchase_orders():
    query = current_scope().apply(PurchaseOrder.query, PurchaseOrder.store_id)

    vendor = request.args.get("vendor", type=int)
    if vendor:
        query = query.filter(PurchaseOrder.vendor_id == vendor)
    status = request.args.get("status", "").strip()
    if status:
        query = query.filter(PurchaseOrder.status == status)

    start = request.args.get("startDate", "").strip()
    end = request.args.get("endDate", "").strip()
    if start and end:
        try:
            query = query.filter(
                PurchaseOrder.order_date.between(date.fromisoformat(start), date.fromisoformat(end))
            )
        except ValueError:
            abort(400, description="Dates must be YYYY-MM-DD")

    orders = query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc()).all()
    return jsonify([po.to_dict() for po in orders])


@bp.route("/<int:po_id>", methods=["GET"])
@admin_required
def purchase_order_detail(po_id):
    return jsonify(get_scoped_or_404(PurchaseOrder, po_id, "Purchase Order not found").to_dict())


@bp.route("", methods=["POST"])
@admin_required
def create_purchase_order():
    form = validate_or_400(PurchaseOrderForm())

    po_number = (form.poNumber.data or "").strip()
    if po_number:
        if PurchaseOrder.query.filter_by(po_number=po_number).first():
            abort(400, description="PO Number already exists")
    else:
        po_number = next_sequence_number(PurchaseOrder.po_number, "PO")

    po = PurchaseOrder(
        po_number=po_number,
        items=[],
        attachments=_attachments(),
        created_by_id=current_user.id,
        store_id=active_store_id(),
    )
    _apply_form(po, form)

    db.session.add(po)
    log_activity("Create Purchase Order", f"Created {po_number}", store_id=po.store_id)
    db.session.commit()
    return jsonify(po.to_dict()), 201


@bp.route("/<int:po_id>", methods=["PUT"])
@admin_required
def update_purchase_order(po_id):
    po = get_scoped_or_404(PurchaseOrder, po_id, "Purchase Order not found")
    form = validate_or_400(PurchaseOrderForm())

    po_number = (form.poNumber.data or "").strip()
    if po_number and po_number != po.po_number:
        if PurchaseOrder.query.filter_by(po_number=po_number).first():
            abort(400, description="PO Number already exists")
        po.po_number = po_number

    _apply_form(po, form)
    new_files = _attachments()
    if new_files:
        # reassign so the JSON column is marked dirty
        po.attachments = list(po.attachments or []) + new_files

    db.session.commit()
    return jsonify(po.to_dict())


@bp.route("/<int:po_id>", methods=["DELETE"])
@admin_required
def delete_purchase_order(po_id):
    po = get_scoped_or_404(PurchaseOrder, po_id, "Purchase Order not found")
    db.session.delete(po)
    log_activity("Delete Purchase Order", f"Deleted {po.po_number}", store_id=po.store_id)
    db.session.commit()
    return jsonify({"message": "Purchase Order removed"})
