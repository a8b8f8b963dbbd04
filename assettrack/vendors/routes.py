from flask import abort, jsonify
from sqlalchemy import func
from wtforms import StringField, TextAreaField, SelectField
from wtforms.validators import DataRequired, Length, Optional

from . import bp
from assettrack.audit import log_activity
from assettrack.auth.decorators import admin_required
from assettrack.extensions import db
from assettrack.forms import ApiForm, validate_or_400
from assettrack.models import Asset, PurchaseOrder, Vendor
from assettrack.tenancy import active_store_id, current_scope, get_scoped_or_404


VENDOR_STATUSES = ("Active", "Inactive")


class VendorForm(ApiForm):
    name = StringField("Vendor Name", validators=[DataRequired(), Length(max=150)])
    contactPerson = StringField("Contact Person", validators=[Optional(), Length(max=150)])
    email = StringField("Email", validators=[Optional(), Length(max=150)])
    phone = StringField("Phone", validators=[Optional(), Length(max=50)])
    address = TextAreaField("Address", validators=[Optional(), Length(max=1000)])
    taxId = StringField("Tax ID", validators=[Optional(), Length(max=100)])
    paymentTerms = StringField("Payment Terms", validators=[Optional(), Length(max=100)])
    status = SelectField(
        "Status",
        choices=[("", "")] + [(s, s) for s in VENDOR_STATUSES],
        default="",
        validators=[Optional()],
    )
    notes = TextAreaField("Notes", validators=[Optional()])


class VendorUpdateForm(VendorForm):
    name = StringField("Vendor Name", validators=[Optional(), Length(max=150)])


# form field -> model column
FIELD_MAP = {
    "name": "name",
    "contactPerson": "contact_person",
    "email": "email",
    "phone": "phone",
    "address": "address",
    "taxId": "tax_id",
    "paymentTerms": "payment_terms",
    "status": "status",
    "notes": "notes",
}


def _duplicate(column, value, store_id, exclude_id=None) -> bool:
    query = Vendor.query.filter(func.lower(column) == value.strip().lower())
    if store_id:
        query = query.filter(Vendor.store_id == store_id)
    else:
        query = query.filter(Vendor.store_id.is_(None))
    if exclude_id:
        query = query.filter(Vendor.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def _check_unique(form, store_id, exclude_id=None):
    if form.name.data and _duplicate(Vendor.name, form.name.data, store_id, exclude_id):
        abort(400, description="Vendor with this name already exists in this store")
    if form.taxId.data and _duplicate(Vendor.tax_id, form.taxId.data, store_id, exclude_id):
        abort(400, description="Vendor with this Tax ID already exists in this store")


@bp.route("", methods=["GET"])
@admin_required
def list_vendors():
    query = current_scope().apply(Vendor.query, Vendor.store_id)
    vendors = query.order_by(Vendor.created_at.desc(), Vendor.id.desc()).all()
    return jsonify([v.to_dict() for v in vendors])


@bp.route("/<int:vendor_id>", methods=["GET"])
@admin_required
def vendor_detail(vendor_id):
    return jsonify(get_scoped_or_404(Vendor, vendor_id, "Vendor not found").to_dict())


@bp.route("", methods=["POST"])
@admin_required
def create_vendor():
    form = validate_or_400(VendorForm())
    store_id = active_store_id()
    _check_unique(form, store_id)

    vendor = Vendor(store_id=store_id)
    for field, column in FIELD_MAP.items():
        value = (getattr(form, field).data or "").strip()
        if value:
            setattr(vendor, column, value)

    db.session.add(vendor)
    log_activity("Create Vendor", f"Created vendor {vendor.name}", store_id=store_id)
    db.session.commit()
    return jsonify(vendor.to_dict()), 201


@bp.route("/<int:vendor_id>", methods=["PUT"])
@admin_required
def update_vendor(vendor_id):
    vendor = get_scoped_or_404(Vendor, vendor_id, "Vendor not found")
    form = validate_or_400(VendorUpdateForm())
    _check_unique(form, vendor.store_id, exclude_id=vendor.id)

    # blank fields keep the stored value
    for field, column in FIELD_MAP.items():
        value = (getattr(form, field).data or "").strip()
        if value:
            setattr(vendor, column, value)

    db.session.commit()
    return jsonify(vendor.to_dict())


@bp.route("/<int:vendor_id>", methods=["DELETE"])
@admin_required
def delete_vendor(vendor_id):
    vendor = get_scoped_or_404(Vendor, vendor_id, "Vendor not found")

    Asset.query.filter(Asset.vendor_id == vendor.id).update(
        {Asset.vendor_id: None}, synchronize_session=False
    )
    PurchaseOrder.query.filter(PurchaseOrder.vendor_id == vendor.id).update(
        {PurchaseOrder.vendor_id: None}, synchronize_session=False
    )
    db.session.delete(vendor)
    log_activity("Delete Vendor", f"Deleted vendor {vendor.name}", store_id=vendor.store_id)
    db.session.commit()
    return jsonify({"message": "Vendor removed"})
