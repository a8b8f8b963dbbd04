from flask_wtf.file import FileAllowed, FileField
from wtforms import StringField
from wtforms.validators import DataRequired, Length, Optional

from assettrack.forms import ApiForm
from assettrack.uploads import IMAGE_EXTENSIONS


class CategoryForm(ApiForm):
    name = StringField("Category Name", validators=[DataRequired(), Length(max=150)])
    image = FileField("Image", validators=[FileAllowed(IMAGE_EXTENSIONS, "Images only!")])


class CategoryUpdateForm(CategoryForm):
    name = StringField("Category Name", validators=[Optional(), Length(max=150)])


class TypeForm(ApiForm):
    name = StringField("Type Name", validators=[DataRequired(), Length(max=150)])


class CatalogProductForm(ApiForm):
    name = StringField("Product Name", validators=[DataRequired(), Length(max=200)])
    model_number = StringField("Model Number", validators=[Optional(), Length(max=150)])
    image = FileField("Image", validators=[FileAllowed(IMAGE_EXTENSIONS, "Images only!")])


class CatalogProductUpdateForm(CatalogProductForm):
    name = StringField("Product Name", validators=[Optional(), Length(max=200)])
