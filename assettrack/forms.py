import json
from typing import Optional

from flask import abort, current_app, jsonify, make_response, request
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict


def _form_value(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ApiForm(FlaskForm):
    """
    Base for JSON / multipart payload forms. CSRF is checked globally
    through the X-CSRFToken header, not per form.
    """

    class Meta:
        csrf = False

        def wrap_formdata(self, form, formdata):
            formdata = FlaskForm.Meta.wrap_formdata(self, form, formdata)
            if formdata is None or not request.is_json:
                return formdata
            # JSON scalars become form strings; nulls and nested values are dropped
            return ImmutableMultiDict([
                (key, _form_value(value))
                for key, value in formdata.items(multi=True)
                if value is not None and not isinstance(value, (dict, list))
            ])


def validate_or_400(form):
    if not form.validate():
        abort(make_response(jsonify({"message": "Validation failed", "errors": form.errors}), 400))
    return form


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def paginate(query):
    """
    Paginate from ?page / ?limit. Returns (items, meta).
    """
    page = request.args.get("page", 1, type=int) or 1
    limit = request.args.get("limit", current_app.config["DEFAULT_PAGE_SIZE"], type=int)
    limit = max(1, min(limit or 1, current_app.config["MAX_PAGE_SIZE"]))

    pagination = query.paginate(page=max(page, 1), per_page=limit, error_out=False)
    meta = {"total": pagination.total, "page": pagination.page, "pages": pagination.pages}
    return pagination.items, meta


def json_list_field(name: str, required=False) -> Optional[list]:
    """
    A list payload field. Multipart requests carry it as a JSON string.
    Returns None when the field is absent.
    """
    if request.is_json:
        value = json_body().get(name)
    else:
        value = request.form.get(name)
        if value is not None:
            try:
                value = json.loads(value)
            except ValueError:
                abort(400, description=f"Invalid {name} format")
    if value is None:
        if required:
            abort(400, description=f"{name} is required")
        return None
    if not isinstance(value, list):
        abort(400, description=f"Invalid {name} format")
    return value
