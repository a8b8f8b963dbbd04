from wtforms import StringField, TextAreaField, IntegerField, SelectField
from wtforms.validators import DataRequired, Length, Optional, NumberRange

from assettrack.forms import ApiForm
from assettrack.models import Request


class StockRequestForm(ApiForm):
    item_name = StringField("Item", validators=[DataRequired(), Length(max=200)])
    quantity = IntegerField("Quantity", default=1, validators=[Optional(), NumberRange(min=1)])
    description = TextAreaField("Description", validators=[Optional()])
    store = IntegerField("Store", validators=[Optional()])


class StockRequestStatusForm(ApiForm):
    status = SelectField(
        "Status", choices=[(s, s) for s in Request.STATUSES], validators=[DataRequired()]
    )
