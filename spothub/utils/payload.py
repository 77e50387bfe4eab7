from flask import request

from spothub.errors import ValidationError


def request_payload():
    """
    Body fields of the current request: the JSON object when one was
    sent, the form fields otherwise. Any other JSON value is rejected.
    """
    data = request.get_json(silent=True)
    if data is None:
        return request.form
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object.')
    return data
