from wtforms import StringField, PasswordField, IntegerField
from wtforms.validators import DataRequired, Length, Optional, Regexp

from assettrack.forms import ApiForm


EMAIL = Regexp(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", message="Invalid email address")


class UserForm(ApiForm):
    name = StringField("Name", validators=[DataRequired(), Length(max=150)])
    username = StringField("Username", validators=[Optional(), Length(min=3, max=80)])
    email = StringField("Email", validators=[DataRequired(), Length(max=150), EMAIL])
    phone = StringField("Phone", validators=[Optional(), Length(max=50)])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=6)])
    assignedStore = IntegerField("Store", validators=[Optional()])


class UserUpdateForm(UserForm):
    name = StringField("Name", validators=[Optional(), Length(max=150)])
    email = StringField("Email", validators=[Optional(), Length(max=150), EMAIL])
    password = PasswordField("Password", validators=[Optional(), Length(min=6)])
