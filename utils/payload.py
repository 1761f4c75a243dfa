from flask import request

from utils.errors import InvalidRequest


def request_json():
    """The request body as a dict; anything else is a client error."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequest('Expected a JSON object body')
    return data


def require_fields(data, *names):
    missing = [name for name in names if name not in data]
    if missing:
        raise InvalidRequest(f"Missing field: {', '.join(missing)}")
    return [data[name] for name in names]
