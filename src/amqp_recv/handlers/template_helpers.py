"""Generic helper functions exposed to output templates."""

import base64
import json
import os
import re
from datetime import datetime, timezone

from jinja2 import Environment

_WORD_BOUNDARY = re.compile(r"[A-Z]?[a-z0-9]+|[A-Z]+(?![a-z])")


def as_text(data) -> str:
    """Decodes a byte sequence as UTF-8, replacing undecodable bytes."""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("utf-8", errors="replace")
    return str(data)


def _words(value) -> list[str]:
    return _WORD_BOUNDARY.findall(as_text(value))


def snakecase(value) -> str:
    return "_".join(word.lower() for word in _words(value))


def kebabcase(value) -> str:
    return "-".join(word.lower() for word in _words(value))


def camelcase(value) -> str:
    return "".join(word.capitalize() for word in _words(value))


def b64enc(value) -> str:
    data = value if isinstance(value, (bytes, bytearray)) else str(value).encode("utf-8")
    return base64.b64encode(data).decode("ascii")


def b64dec(value) -> str:
    return as_text(base64.b64decode(value))


def to_json(value, indent: int | None = None) -> str:
    return json.dumps(value, indent=indent, default=_json_default)


def _json_default(value):
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def from_json(value):
    return json.loads(as_text(value))


def trim_prefix(value, prefix: str) -> str:
    text = as_text(value)
    return text[len(prefix):] if prefix and text.startswith(prefix) else text


def trim_suffix(value, suffix: str) -> str:
    text = as_text(value)
    return text[: -len(suffix)] if suffix and text.endswith(suffix) else text


def format_date(value, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Formats a datetime or a unix timestamp."""
    if isinstance(value, (int, float)):
        value = datetime.fromtimestamp(value, tz=timezone.utc)
    return value.strftime(fmt)


def now() -> datetime:
    return datetime.now(timezone.utc)


FILTERS = {
    "asText": as_text,
    "snakecase": snakecase,
    "kebabcase": kebabcase,
    "camelcase": camelcase,
    "b64enc": b64enc,
    "b64dec": b64dec,
    "toJson": to_json,
    "fromJson": from_json,
    "trimPrefix": trim_prefix,
    "trimSuffix": trim_suffix,
    "nospace": lambda value: re.sub(r"\s+", "", as_text(value)),
    "quote": lambda value: json.dumps(as_text(value)),
    "squote": lambda value: f"'{as_text(value)}'",
    "repeat": lambda value, count: as_text(value) * count,
    "date": format_date,
}

GLOBALS = {
    "now": now,
    "env": lambda name, default="": os.environ.get(name, default),
}


def register_helpers(environment: Environment) -> Environment:
    """Adds the helper filters and globals to a Jinja environment."""
    environment.filters.update(FILTERS)
    environment.globals.update(GLOBALS)
    return environment
