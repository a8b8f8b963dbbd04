from flask_wtf.file import FileAllowed, FileField
from wtforms import StringField
from wtforms.validators import DataRequired, Length, Optional

from assettrack.forms import ApiForm
from assettrack.uploads import IMAGE_EXTENSIONS


class ProductForm(ApiForm):
    name = StringField("Product Name", validators=[DataRequired(), Length(max=200)])
    model_number = StringField("Model Number", validators=[Optional(), Length(max=150)])
    image = FileField("Image", validators=[FileAllowed(IMAGE_EXTENSIONS, "Images only!")])


class ProductUpdateForm(ProductForm):
    name = StringField("Product Name", validators=[Optional(), Length(max=200)])
