import json
from enum import Enum


def _default(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return repr(value)


def safe_json_dumps(payload, **kwargs):
    return json.dumps(payload, default=_default, ensure_ascii=False, **kwargs)
