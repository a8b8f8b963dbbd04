from flask import abort, jsonify, request
from flask_login import login_required, current_user
from wtforms import StringField, TextAreaField, SelectField, DateField
from wtforms.validators import DataRequired, Length, Optional

from . import bp
from assettrack.audit import log_activity
from assettrack.auth.decorators import admin_required
from assettrack.extensions import db
from assettrack.forms import ApiForm, json_list_field, validate_or_400
from assettrack.models import Pass
from assettrack.numbering import next_sequence_number
from assettrack.tenancy import active_store_id, current_scope, get_scoped_or_404


# -----------------------------
# Forms
# -----------------------------
class PassForm(ApiForm):
    type = SelectField("Type", choices=[(t, t) for t in Pass.TYPES], default="Outbound")
    issuedTo = StringField("Issued To", validators=[DataRequired(), Length(max=150)])
    company = StringField("Company", validators=[Optional(), Length(max=150)])
    purpose = TextAreaField("Purpose", validators=[Optional()])
    validUntil = DateField("Valid Until", validators=[Optional()])


class PassUpdateForm(PassForm):
    issuedTo = StringField("Issued To", validators=[Optional(), Length(max=150)])


class PassStatusForm(ApiForm):
    status = SelectField("Status", choices=[(s, s) for s in Pass.STATUSES], validators=[DataRequired()])


def _clean_items(items):
    if items is None:
        return None
    if not all(isinstance(item, dict) for item in items):
        abort(400, description="Invalid items format")
    return items


# -----------------------------
# Routes
# -----------------------------
@bp.route("", methods=["GET"])
@login_required
def list_passes():
    query = current_scope().apply(Pass.query, Pass.store_id)
    status = request.args.get("status", "").strip()
    if status:
        query = query.filter(Pass.status == status)
    pass_type = request.args.get("type", "").strip()
    if pass_type:
        query = query.filter(Pass.pass_type == pass_type)
    return jsonify([p.to_dict() for p in query.order_by(Pass.created_at.desc(), Pass.id.desc()).all()])


@bp.route("/<int:pass_id>", methods=["GET"])
@login_required
def pass_detail(pass_id):
    return jsonify(get_scoped_or_404(Pass, pass_id, "Pass not found").to_dict())


@bp.route("", methods=["POST"])
@login_required
def create_pass():
    form = validate_or_400(PassForm())
    gate_pass = Pass(
        pass_number=next_sequence_number(Pass.pass_number, "GP"),
        pass_type=form.type.data,
        issued_to=form.issuedTo.data.strip(),
        company=form.company.data or None,
        purpose=form.purpose.data or None,
        items=_clean_items(json_list_field("items")) or [],
        valid_until=form.validUntil.data,
        created_by_id=current_user.id,
        store_id=active_store_id(),
    )
    db.session.add(gate_pass)
    log_activity("Create Pass", f"Created {gate_pass.pass_type} pass {gate_pass.pass_number}", store_id=gate_pass.store_id)
    db.session.commit()
    return jsonify(gate_pass.to_dict()), 201


@bp.route("/<int:pass_id>", methods=["PUT"])
@admin_required
def update_pass(pass_id):
    gate_pass = get_scoped_or_404(Pass, pass_id, "Pass not found")
    form = validate_or_400(PassUpdateForm())

    if form.type.raw_data:
        gate_pass.pass_type = form.type.data
    if form.issuedTo.data:
        gate_pass.issued_to = form.issuedTo.data.strip()
    if form.company.data:
        gate_pass.company = form.company.data
    if form.purpose.data:
        gate_pass.purpose = form.purpose.data
    if form.validUntil.data:
        gate_pass.valid_until = form.validUntil.data
    items = _clean_items(json_list_field("items"))
    if items is not None:
        gate_pass.items = items

    db.session.commit()
    return jsonify(gate_pass.to_dict())


@bp.route("/<int:pass_id>/status", methods=["PUT"])
@admin_required
def set_pass_status(pass_id):
    gate_pass = get_scoped_or_404(Pass, pass_id, "Pass not found")
    form = validate_or_400(PassStatusForm())
    gate_pass.status = form.status.data
    log_activity("Update Pass", f"Pass {gate_pass.pass_number} marked {gate_pass.status}", store_id=gate_pass.store_id)
    db.session.commit()
    return jsonify(gate_pass.to_dict())


@bp.route("/<int:pass_id>", methods=["DELETE"])
@admin_required
def delete_pass(pass_id):
    gate_pass = get_scoped_or_404(Pass, pass_id, "Pass not found")
    db.session.delete(gate_pass)
    db.session.commit()
    return jsonify({"message": "Pass removed"})
