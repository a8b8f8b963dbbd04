from wtforms import StringField, TextAreaField, SelectField, IntegerField, DateField, DecimalField
from wtforms.validators import Length, Optional, NumberRange

from assettrack.forms import ApiForm
from assettrack.models import PurchaseOrder


class PurchaseOrderForm(ApiForm):
    poNumber = StringField("PO Number", validators=[Optional(), Length(max=50)])
    vendor = IntegerField("Vendor", validators=[Optional()])
    orderDate = DateField("Order Date", validators=[Optional()])
    expectedDelivery = DateField("Expected Delivery", validators=[Optional()])
    status = SelectField(
        "Status",
        choices=[("", "")] + [(s, s) for s in PurchaseOrder.STATUSES],
        default="",
        validators=[Optional()],
    )
    totalAmount = DecimalField("Total Amount", places=2, validators=[Optional(), NumberRange(min=0)])
    notes = TextAreaField("Notes", validators=[Optional()])
