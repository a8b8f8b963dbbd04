from wtforms import (
    StringField,
    SelectField,
    TextAreaField,
    IntegerField,
    BooleanField,
)
from wtforms.validators import DataRequired, Optional, Length, AnyOf

from assettrack.forms import ApiForm
from assettrack.models import ASSET_STATUSES, ASSET_SOURCES


STATUS_CHOICES = [(s, s) for s in ASSET_STATUSES]


class AssetForm(ApiForm):
    name = StringField("Asset Name", validators=[DataRequired(), Length(max=200)])
    model_number = StringField("Model Number", validators=[Optional(), Length(max=150)])
    serial_number = StringField("Serial Number", validators=[Optional(), Length(max=150)])
    mac_address = StringField("MAC Address", validators=[Optional(), Length(max=100)])
    manufacturer = StringField("Manufacturer", validators=[Optional(), Length(max=150)])
    ticket_number = StringField("Ticket Number", validators=[Optional(), Length(max=100)])
    rfid = StringField("RFID", validators=[Optional(), Length(max=100)])
    qr_code = StringField("QR Code", validators=[Optional(), Length(max=200)])

    category = StringField("Category", validators=[Optional(), Length(max=150)])
    product_type = StringField("Product Type", validators=[Optional(), Length(max=150)])
    product_name = StringField("Product Name", validators=[Optional(), Length(max=200)])

    store = IntegerField("Store", validators=[Optional()])
    location = StringField("Location", validators=[Optional(), Length(max=200)])
    status = SelectField("Status", choices=STATUS_CHOICES, default="New", validators=[Optional()])
    condition = StringField("Condition", validators=[Optional(), Length(max=100)])
    source = StringField("Source", validators=[Optional(), AnyOf(ASSET_SOURCES)])


class AssetUpdateForm(AssetForm):
    name = StringField("Asset Name", validators=[Optional(), Length(max=200)])
    status = SelectField("Status", choices=[("", "")] + STATUS_CHOICES, default="", validators=[Optional()])


class AssetActionForm(ApiForm):
    assetId = IntegerField("Asset", validators=[DataRequired()])
    ticketNumber = StringField("Ticket Number", validators=[Optional(), Length(max=100)])


class AssignForm(AssetActionForm):
    technicianId = IntegerField("Technician", validators=[Optional()])


class CollectForm(AssetActionForm):
    installationLocation = StringField("Installation Location", validators=[Optional(), Length(max=200)])


class FaultyForm(AssetActionForm):
    details = TextAreaField("Details", validators=[Optional()])


class ReturnForm(AssetActionForm):
    condition = StringField("Condition", validators=[DataRequired()])
    notes = TextAreaField("Notes", validators=[Optional()])


class ReturnDecisionForm(AssetActionForm):
    reason = TextAreaField("Reason", validators=[Optional()])


class DisposeForm(AssetActionForm):
    reason = TextAreaField("Reason", validators=[Optional()])


class ImportForm(ApiForm):
    allowDuplicates = BooleanField("Allow duplicates")
    category = StringField("Category", validators=[Optional(), Length(max=150)])
    product_type = StringField("Product Type", validators=[Optional(), Length(max=150)])
    product_name = StringField("Product Name", validators=[Optional(), Length(max=200)])
    source = StringField("Source", validators=[Optional(), AnyOf(ASSET_SOURCES)])
    vendor = IntegerField("Vendor", validators=[Optional()])
    location = StringField("Location", validators=[Optional(), Length(max=200)])
