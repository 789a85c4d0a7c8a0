"""Decoding of structured (JSON) answers from chat models.

Models frequently wrap JSON in markdown fences (```json ... ```), so every
answer goes through the same three steps: strip the fence, parse, validate.
"""
import json
import logging
import re
from typing import Any, Iterable, List, Type

from ..errors import NudgeError, AnalysisError
from ..metadata import FIELDS, MAX_FIELD_LENGTH, MetadataTriple

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r'^```[a-zA-Z]*\s*(.*?)\s*```$', re.DOTALL)


def strip_code_fence(text: str) -> str:
    content = (text or '').strip()
    match = _FENCE_RE.match(content)
    if match:
        content = match.group(1)
    return content.strip()


def decode_json(text: str, error_cls: Type[NudgeError] = AnalysisError) -> Any:
    content = strip_code_fence(text)
    if not content:
        raise error_cls('Empty model response')
    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        logger.debug('Unparseable model response: %r', content[:500])
        raise error_cls('Failed to parse model response', details=str(e)) from e


def decode_fields(text: str, fields: Iterable[str], max_length: int | None = MAX_FIELD_LENGTH,
                  error_cls: Type[NudgeError] = AnalysisError) -> dict:
    """Decode a JSON object and require each of ``fields`` to be a non-empty string.

    Values longer than ``max_length`` are truncated.
    """
    data = decode_json(text, error_cls)
    if not isinstance(data, dict):
        raise error_cls('Model response is not a JSON object')
    out = {}
    missing = []
    for name in fields:
        value = data.get(name)
        if not isinstance(value, str) or not value.strip():
            missing.append(name)
            continue
        value = value.strip()
        out[name] = value[:max_length] if max_length else value
    if missing:
        raise error_cls('Model response is missing required fields', details=', '.join(missing))
    return out


def decode_metadata(text: str, error_cls: Type[NudgeError] = AnalysisError) -> MetadataTriple:
    return MetadataTriple(**decode_fields(text, FIELDS, MAX_FIELD_LENGTH, error_cls))


def decode_string_list(text: str, error_cls: Type[NudgeError] = AnalysisError) -> List[str]:
    data = decode_json(text, error_cls)
    if not isinstance(data, list) or not data:
        raise error_cls('Model response is not a non-empty JSON array')
    items = [str(item).strip() for item in data if isinstance(item, (str, int, float)) and str(item).strip()]
    if not items:
        raise error_cls('Model response array holds no usable strings')
    return items
