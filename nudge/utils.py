from urllib.parse import urlparse

from flask import request

from .errors import ValidationError
from .metadata import FIELDS


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def parse_pagination(default_limit: int = 20, max_limit: int = 100):
    """Return ``(limit, offset)`` from the query string, validating both."""
    try:
        limit = int(request.args.get('limit', default_limit))
        offset = int(request.args.get('offset', 0))
    except (TypeError, ValueError):
        raise ValidationError('limit and offset must be integers')
    if limit < 1 or limit > max_limit:
        raise ValidationError(f'Limit must be between 1 and {max_limit}')
    if offset < 0:
        raise ValidationError('Offset must be non-negative')
    return limit, offset


def is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"'{key}' must be a string")
    return value


def metadata_changes(data: dict) -> dict:
    """Triple fields present in an update body; blank values are rejected, null leaves a field as is."""
    changes = {}
    for key in FIELDS:
        value = optional_str(data, key)
        if value is None:
            continue
        if not value.strip():
            raise ValidationError(f"'{key}' cannot be empty")
        changes[key] = value.strip()
    return changes
