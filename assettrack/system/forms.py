from wtforms import StringField, PasswordField, BooleanField, IntegerField
from wtforms.validators import DataRequired

from assettrack.forms import ApiForm


class ResetForm(ApiForm):
    password = PasswordField("Password", validators=[DataRequired(message="Password is required")])
    # "all" or a store id
    storeId = StringField(
        "Store",
        validators=[DataRequired(message='Safety Error: storeId is required. Use "all" for full reset.')],
    )
    includeUsers = BooleanField("Include users")


class CancelResetForm(ApiForm):
    storeId = IntegerField("Store", validators=[DataRequired(message="Store ID is required")])
