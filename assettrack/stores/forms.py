from wtforms import StringField, BooleanField, IntegerField
from wtforms.validators import DataRequired, Length, Optional, Regexp

from assettrack.forms import ApiForm


HHMM = Regexp(r"^([01]\d|2[0-3]):[0-5]\d$", message="Use HH:MM (24h)")


class StoreForm(ApiForm):
    name = StringField("Store Name", validators=[DataRequired(), Length(max=150)])
    isMainStore = BooleanField("Main Store")
    parentStore = IntegerField("Parent Store", validators=[Optional()])
    openingTime = StringField("Opening Time", validators=[Optional(), HHMM])
    closingTime = StringField("Closing Time", validators=[Optional(), HHMM])


class StoreUpdateForm(StoreForm):
    name = StringField("Store Name", validators=[Optional(), Length(max=150)])
