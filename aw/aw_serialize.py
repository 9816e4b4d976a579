"""
JSON and YAML conversion for project files, HTTP bodies and the `json.*`
helpers.

Text that is neither declared nor recognisable as structured data comes back
unchanged, so a plain-text response reads as a string.
"""
from __future__ import annotations

import json
import re
from typing import Any, Optional
import collections.abc

import yaml

_CHARSET_RE = re.compile(r'charset\s*=\s*["\']?([\w.:-]+)', re.IGNORECASE)
_INDEX_RE = re.compile(r'-?\d+')


def _as_text(data: bytes | bytearray | str, content_type: Optional[str] = None) -> str:
    if isinstance(data, str):
        return data
    m = _CHARSET_RE.search(content_type or "")
    try:
        return bytes(data).decode(m.group(1) if m else 'utf-8', errors='replace')
    except LookupError:
        return bytes(data).decode('utf-8', errors='replace')


def detect_format(content_type: Optional[str] = None, text: Optional[str] = None) -> Optional[str]:
    """'json' or 'yaml' from the media type, else 'json' when text opens a container."""
    media = (content_type or "").lower()
    for name in ('json', 'yaml'):
        if name in media:
            return name
    if text is not None and text.lstrip()[:1] in ('{', '['):
        return 'json'
    return None


def deserialize(data: bytes | bytearray | str, *,
                content_type: Optional[str] = None,
                fmt: Optional[str] = None) -> Any:
    text = _as_text(data, content_type)
    fmt = fmt or detect_format(content_type, text)
    if fmt == 'json':
        try:
            return json.loads(text)
        except ValueError:
            # Relaxed JSON (unquoted keys, single quotes) still reads as YAML.
            fmt = 'yaml'
    if fmt == 'yaml':
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError:
            return text
    return text


def serialize(value: Any, *, fmt: str = 'json', pretty: bool = False) -> str:
    if fmt == 'json':
        return json.dumps(value, ensure_ascii=False, indent=2 if pretty else None)
    if fmt == 'yaml':
        return yaml.safe_dump(value, allow_unicode=True, sort_keys=False)
    raise ValueError(f"cannot serialize to {fmt!r}")


def json_get(value: Any, path: str) -> Any:
    """
    Walks `value` along a dotted path such as `results.0.picture.large`
    (`results[0]` works too). A string is parsed as JSON first; any step
    that does not exist gives None.
    """
    if isinstance(value, str):
        value = deserialize(value, fmt='json')
    for key in filter(None, re.split(r'[.\[\]]+', path.strip())):
        if isinstance(value, collections.abc.Mapping):
            if key not in value:
                return None
            value = value[key]
        elif isinstance(value, list) and _INDEX_RE.fullmatch(key):
            idx = int(key)
            if not -len(value) <= idx < len(value):
                return None
            value = value[idx]
        else:
            return None
    return value


__all__ = [
    "deserialize",
    "serialize",
    "detect_format",
    "json_get",
]
