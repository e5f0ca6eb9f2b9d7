"""
Nested URL-encoded form decoding.

Understands the bracket syntax browsers and query-string libraries use
for rich values::

    user[name]=ada&user[langs][]=py&user[langs][]=c
    -> {"user": {"name": "ada", "langs": ["py", "c"]}}

Repeated plain keys collect into a list. Numeric indices up to
``ARRAY_LIMIT`` place elements by position (``a[1]=y&a[0]=x`` gives
``["x", "y"]``), with gaps closed up. Larger indices become object keys.
"""

import re
from typing import Any
from urllib.parse import parse_qsl

from mindsync.shared.errors.exceptions import PayloadTooLargeError

DEPTH_LIMIT = 5
PARAMETER_LIMIT = 1000
ARRAY_LIMIT = 20

_KEY_PATTERN = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_SEGMENT_PATTERN = re.compile(r"\[([^\[\]]*)\]")


def split_key(key: str, depth: int = DEPTH_LIMIT) -> list[str]:
    """Split ``a[b][]`` into ``["a", "b", ""]``.

    Keys that do not follow the bracket syntax are returned whole.
    Segments beyond ``depth`` are kept together as one literal key.
    """
    match = _KEY_PATTERN.match(key)
    if match is None:
        return [key]
    segments = _SEGMENT_PATTERN.findall(match.group(2))
    if len(segments) > depth:
        overflow = "".join(f"[{segment}]" for segment in segments[depth:])
        segments = segments[:depth] + [overflow]
    return [match.group(1), *segments]


class _Indexed(dict):
    """List elements placed by explicit index, keyed by position."""


def _next_index(indexed: _Indexed) -> int:
    return max(indexed, default=-1) + 1


def _build(segments: list[str], value: str) -> Any:
    """Wrap ``value`` in the containers named by ``segments``, innermost last."""
    leaf: Any = value
    for segment in reversed(segments):
        if segment == "":
            leaf = [leaf]
        elif segment.isdigit() and int(segment) <= ARRAY_LIMIT:
            leaf = _Indexed({int(segment): leaf})
        else:
            leaf = {segment: leaf}
    return leaf


def _as_dict(items: Any) -> dict:
    if isinstance(items, _Indexed):
        return {str(index): item for index, item in items.items()}
    return {str(index): item for index, item in enumerate(items)}


def _merge_indexed(target: _Indexed, source: Any) -> Any:
    if isinstance(source, _Indexed):
        for index, value in source.items():
            target[index] = merge(target.get(index), value)
        return target
    if isinstance(source, dict):
        return merge(_as_dict(target), source)
    for item in source if isinstance(source, list) else [source]:
        target[_next_index(target)] = item
    return target


def merge(target: Any, source: Any) -> Any:
    """Merge a freshly built value into what has been decoded so far."""
    if target is None:
        return source
    if isinstance(target, _Indexed):
        return _merge_indexed(target, source)
    if isinstance(source, _Indexed):
        if isinstance(target, dict):
            return merge(target, _as_dict(source))
        if isinstance(target, list):
            return _merge_indexed(_Indexed(enumerate(target)), source)
        return _merge_indexed(_Indexed({0: target}), source)
    if isinstance(target, list) and isinstance(source, list):
        for index, item in enumerate(source):
            if (
                index < len(target)
                and isinstance(target[index], dict)
                and isinstance(item, dict)
            ):
                target[index] = merge(target[index], item)
            else:
                target.append(item)
        return target
    if isinstance(target, dict) and isinstance(source, list):
        source = _as_dict(source)
    if isinstance(target, list) and isinstance(source, dict):
        target = _as_dict(target)
    if isinstance(target, dict) and isinstance(source, dict):
        for key, value in source.items():
            target[key] = merge(target.get(key), value)
        return target
    if isinstance(target, list):
        target.append(source)
        return target
    if isinstance(source, list):
        return [target, *source]
    return [target, source]


def _compact(value: Any) -> Any:
    """Turn indexed elements into lists ordered by index, gaps dropped."""
    if isinstance(value, _Indexed):
        return [_compact(value[index]) for index in sorted(value)]
    if isinstance(value, dict):
        return {key: _compact(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_compact(item) for item in value]
    return value


def decode_nested_form(
    body: str,
    depth: int = DEPTH_LIMIT,
    parameter_limit: int = PARAMETER_LIMIT,
) -> dict[str, Any]:
    """Decode an ``application/x-www-form-urlencoded`` body into nested values.

    Args:
        body: The raw, already charset-decoded request body.
        depth: Maximum bracket nesting honoured per key.
        parameter_limit: Maximum number of ``key=value`` pairs.

    Returns:
        A dict of strings, lists and dicts.

    Raises:
        PayloadTooLargeError: If the body holds too many parameters.
    """
    try:
        pairs = parse_qsl(body, keep_blank_values=True, max_num_fields=parameter_limit)
    except ValueError as exc:
        raise PayloadTooLargeError("too many parameters") from exc

    result: dict[str, Any] = {}
    for key, value in pairs:
        segments = split_key(key, depth)
        head = segments[0]
        result[head] = merge(result.get(head), _build(segments[1:], value))
    return {key: _compact(value) for key, value in result.items()}
