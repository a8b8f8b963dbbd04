from wtforms import StringField, PasswordField, BooleanField
from wtforms.validators import DataRequired, Length

from assettrack.forms import ApiForm


class LoginForm(ApiForm):
    # accepts either the email or the username
    email = StringField("Email or username", validators=[DataRequired(), Length(max=150)])
    password = PasswordField("Password", validators=[DataRequired(), Length(min=6)])
    remember = BooleanField("Remember me")


class VerifyPasswordForm(ApiForm):
    password = PasswordField("Password", validators=[DataRequired()])
