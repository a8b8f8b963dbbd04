from flask import abort, jsonify, request
from flask_login import login_required, current_user
from wtforms import StringField, TextAreaField, SelectField, DateField
from wtforms.validators import DataRequired, Length, Optional, ValidationError

from . import bp
from assettrack.audit import log_activity
from assettrack.auth.decorators import admin_required
from assettrack.extensions import db
from assettrack.forms import ApiForm, validate_or_400
from assettrack.models import Permit
from assettrack.numbering import next_sequence_number
from assettrack.tenancy import active_store_id, current_scope, get_scoped_or_404


class PermitForm(ApiForm):
    title = StringField("Title", validators=[DataRequired(), Length(max=200)])
    description = TextAreaField("Description", validators=[Optional()])
    location = StringField("Location", validators=[Optional(), Length(max=200)])
    contractor = StringField("Contractor", validators=[Optional(), Length(max=150)])
    startDate = DateField("Start Date", validators=[Optional()])
    endDate = DateField("End Date", validators=[Optional()])

    def validate_endDate(self, field):
        if field.data and self.startDate.data and field.data < self.startDate.data:
            raise ValidationError("End date must not be before the start date")


class PermitUpdateForm(PermitForm):
    title = StringField("Title", validators=[Optional(), Length(max=200)])


class PermitStatusForm(ApiForm):
    status = SelectField("Status", choices=[(s, s) for s in Permit.STATUSES], validators=[DataRequired()])


UPDATABLE = (
    ("title", "title"),
    ("description", "description"),
    ("location", "location"),
    ("contractor", "contractor"),
    ("startDate", "start_date"),
    ("endDate", "end_date"),
)


@bp.route("", methods=["GET"])
@login_required
def list_permits():
    query = current_scope().apply(Permit.query, Permit.store_id)
    status = request.args.get("status", "").strip()
    if status:
        query = query.filter(Permit.status == status)
    permits = query.order_by(Permit.created_at.desc(), Permit.id.desc()).all()
    return jsonify([p.to_dict() for p in permits])


@bp.route("/<int:permit_id>", methods=["GET"])
@login_required
def permit_detail(permit_id):
    return jsonify(get_scoped_or_404(Permit, permit_id, "Permit not found").to_dict())


@bp.route("", methods=["POST"])
@login_required
def create_permit():
    form = validate_or_400(PermitForm())
    permit = Permit(
        permit_number=next_sequence_number(Permit.permit_number, "WP"),
        requested_by_id=current_user.id,
        store_id=active_store_id(),
    )
    for field, column in UPDATABLE:
        setattr(permit, column, getattr(form, field).data or None)

    db.session.add(permit)
    log_activity("Create Permit", f"Requested permit {permit.permit_number}: {permit.title}", store_id=permit.store_id)
    db.session.commit()
    return jsonify(permit.to_dict()), 201


@bp.route("/<int:permit_id>", methods=["PUT"])
@admin_required
def update_permit(permit_id):
    permit = get_scoped_or_404(Permit, permit_id, "Permit not found")
    form = validate_or_400(PermitUpdateForm())

    for field, column in UPDATABLE:
        value = getattr(form, field).data
        if value:
            setattr(permit, column, value)
    if permit.start_date and permit.end_date and permit.end_date < permit.start_date:
        abort(400, description="End date must not be before the start date")

    db.session.commit()
    return jsonify(permit.to_dict())


@bp.route("/<int:permit_id>/status", methods=["PUT"])
@admin_required
def set_permit_status(permit_id):
    permit = get_scoped_or_404(Permit, permit_id, "Permit not found")
    form = validate_or_400(PermitStatusForm())
    permit.status = form.status.data
    log_activity("Update Permit", f"Permit {permit.permit_number} marked {permit.status}", store_id=permit.store_id)
    db.session.commit()
    return jsonify(permit.to_dict())


@bp.route("/<int:permit_id>", methods=["DELETE"])
@admin_required
def delete_permit(permit_id):
    permit = get_scoped_or_404(Permit, permit_id, "Permit not found")
    db.session.delete(permit)
    db.session.commit()
    return jsonify({"message": "Permit removed"})
