from __future__ import annotations

import json
import re
import tomllib
from typing import Any, Optional
import collections.abc

import yaml
import xmltodict


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        try:
            return data.decode(encoding or 'utf-8', errors='replace')
        except LookupError:
            # Unknown charset label from a Content-Type header
            return data.decode('utf-8', errors='replace')
    return str(data)


def _encoding_from_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    m = re.search(r'charset\s*=\s*([^\s;]+)', content_type, re.IGNORECASE)
    if m:
        return m.group(1).strip('"').strip("'")
    return None


def _to_builtin(obj: Any) -> Any:
    # xmltodict hands back nested mappings; catalogue code expects plain dicts
    if isinstance(obj, list):
        return [_to_builtin(x) for x in obj]
    if isinstance(obj, collections.abc.Mapping):
        return {k: _to_builtin(v) for k, v in obj.items()}
    return obj


def detect_format(content_type: Optional[str] = None, data_hint: Optional[str] = None) -> Optional[str]:
    """
    Returns one of 'json', 'yaml', 'toml', 'xml' or None.
    Content-Type wins; otherwise the leading character of the payload is sniffed.
    """
    ct = (content_type or "").lower()
    if 'json' in ct:
        return 'json'
    if 'yaml' in ct:
        return 'yaml'
    if 'toml' in ct:
        return 'toml'
    if 'xml' in ct:
        return 'xml'

    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{') or s.startswith('['):
            return 'json'
        if s.startswith('<'):
            return 'xml'
    return None


def format_for_path(path: str) -> Optional[str]:
    lowered = path.lower()
    if lowered.endswith('.json'):
        return 'json'
    if lowered.endswith(('.yaml', '.yml')):
        return 'yaml'
    if lowered.endswith('.toml'):
        return 'toml'
    if lowered.endswith('.xml'):
        return 'xml'
    return None


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str,
                *,
                content_type: Optional[str] = None,
                fmt: Optional[str] = None) -> Any:
    """
    Decode a catalogue payload.

    The format comes from `fmt`, then `content_type`, then sniffing; an
    undetectable payload is parsed as YAML (a JSON superset). Parse errors
    propagate to the caller.
    """
    text = _norm_text(data, encoding=_encoding_from_content_type(content_type))
    f = fmt or detect_format(content_type, text) or 'yaml'
    match f:
        case 'json':
            return json.loads(text)
        case 'yaml':
            return yaml.safe_load(text)
        case 'toml':
            return tomllib.loads(text)
        case 'xml':
            return _to_builtin(xmltodict.parse(text))
    raise ValueError(f"Unsupported catalogue format: {fmt!r}")


def serialize(value: Any, *, fmt: str, pretty: bool = True) -> str:
    """Render a catalogue (or any plain value) as 'json' or 'yaml' text."""
    f = (fmt or '').lower()
    built = _to_builtin(value)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "deserialize",
    "serialize",
    "detect_format",
    "format_for_path",
]
