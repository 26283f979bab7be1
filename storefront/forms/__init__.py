"""
Flask-WTF forms used to validate JSON payloads.

`parse_form` feeds a JSON body through a form and returns only the keys the
client sent, so the same form serves both create and partial update.
"""
from flask import request
from werkzeug.datastructures import MultiDict
from storefront.exceptions import BusinessLogicError


def _formdata_value(value):
    # Booleans stay as-is for BooleanField; everything else arrives as text like a form post
    if isinstance(value, bool):
        return value
    return str(value)


def get_json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BusinessLogicError('Expected a JSON object')
    return data


def parse_form(form_class, partial=False, data=None) -> dict:
    """
    Validate `data` (default: the request JSON) with `form_class`.

    Fields sent as null come back as None. Keys the form does not declare
    (lists of ids, nested objects) are passed through untouched.
    Raises BusinessLogicError with the field errors on failure.
    """
    raw = get_json_body() if data is None else data

    formdata = MultiDict()
    for key, value in raw.items():
        if value is None or isinstance(value, dict):
            continue
        if isinstance(value, (list, tuple)):
            formdata.setlist(key, [_formdata_value(v) for v in value])
        else:
            formdata.add(key, _formdata_value(value))

    form = form_class(formdata=formdata)
    form.validate()
    errors = {
        name: messages for name, messages in form.errors.items()
        if not partial or name in raw
    }
    if errors:
        raise BusinessLogicError('Invalid data', payload={'errors': errors})

    result = {}
    for key, value in raw.items():
        if key == 'csrf_token':
            continue
        if key in form._fields and value is not None:
            result[key] = form[key].data
        else:
            result[key] = value
    return result
