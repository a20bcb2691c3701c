import re
from datetime import date, datetime

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def camelize_key(key):
    if not isinstance(key, str) or "_" not in key.strip("_"):
        return key
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def snake_key(key):
    if not isinstance(key, str):
        return key
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


def _convert(value, key_func):
    if isinstance(value, dict):
        return {key_func(key): _convert(item, key_func) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_convert(item, key_func) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def to_wire(value):
    return _convert(value, camelize_key)


def from_wire(value):
    return _convert(value or {}, snake_key)


def load_to_json(load):
    payload = to_wire(load)
    if isinstance(payload, dict) and "id" in payload:
        payload["_id"] = payload["id"]
        payload["loadId"] = payload["id"]
    return payload


def loads_to_json(loads):
    return [load_to_json(load) for load in loads or []]
