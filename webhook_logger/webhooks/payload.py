"""Inbound payload reading and decoding.

Bodies are read as raw bytes under a size ceiling, then decoded by media
type: JSON, URL-encoded forms (with bracket nesting), or nothing at all for
anything else.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable
from urllib.parse import parse_qsl

from fastapi import Request

from webhook_logger.config import DEFAULT_MAX_BODY_BYTES
from webhook_logger.errors import InvalidPayload, PayloadTooLarge
from webhook_logger.records import encode_json

_FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"
_BRACKET_RE = re.compile(r"\[([^\[\]]*)\]")
_SURROGATE_ESCAPE_RE = re.compile(rb"\\u[dD][89a-fA-F]")


async def read_body(request: Request, limit: int = DEFAULT_MAX_BODY_BYTES) -> bytes:
    """Read the request body, failing as soon as it grows past *limit* bytes."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge(limit)

    chunks: list[bytes] = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise PayloadTooLarge(limit)
        chunks.append(chunk)
    return b"".join(chunks)


def media_type(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def _reject_constant(name: str) -> Any:
    raise InvalidPayload(f"Malformed JSON body: {name} is not a JSON value")


def parse_json(raw: bytes) -> Any:
    """Decode a strict JSON document.

    NaN/Infinity tokens, escapes that decode to lone surrogates and nesting
    too deep for the decoder are all rejected as InvalidPayload.
    """
    try:
        value = json.loads(raw, parse_constant=_reject_constant)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidPayload(f"Malformed JSON body: {exc}") from exc
    except RecursionError as exc:
        raise InvalidPayload("Malformed JSON body: nested too deeply") from exc

    if _SURROGATE_ESCAPE_RE.search(raw):
        try:
            encode_json(value)
        except ValueError as exc:
            raise InvalidPayload(f"Malformed JSON body: {exc}") from exc
    return value


def parse_body(raw: bytes, content_type: str | None) -> Any:
    """Decode *raw* according to *content_type*.

    Unknown media types and empty bodies decode to an empty mapping.
    """
    kind = media_type(content_type)
    if not raw.strip():
        return {}

    if kind == "application/json" or kind.endswith("+json"):
        return parse_json(raw)

    if kind == _FORM_MEDIA_TYPE:
        return parse_form(raw.decode("utf-8", errors="replace"))

    return {}


def group_items(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """Collapse repeated keys into lists, keeping single values as strings."""
    grouped: dict[str, Any] = {}
    for key, value in items:
        _assign(grouped, key, value)
    return grouped


def parse_form(text: str) -> dict[str, Any]:
    """Decode a URL-encoded form, expanding ``a[b]=1`` and ``a[]=1`` keys.

    >>> parse_form("user[name]=ada&tags[]=x&tags[]=y")
    {'user': {'name': 'ada'}, 'tags': ['x', 'y']}
    """
    result: dict[str, Any] = {}
    for key, value in parse_qsl(text, keep_blank_values=True):
        head, _, rest = key.partition("[")
        if not head or not rest:
            _assign(result, key, value)
            continue
        path = [head] + _BRACKET_RE.findall("[" + rest)
        _assign_path(result, path, value)
    return result


def _assign(target: dict[str, Any], key: str, value: Any) -> None:
    if key not in target:
        target[key] = value
    elif isinstance(target[key], list):
        target[key].append(value)
    else:
        target[key] = [target[key], value]


def _assign_path(target: dict[str, Any], path: list[str], value: str) -> None:
    node = target
    for index, part in enumerate(path[:-1]):
        following = path[index + 1]
        child = node.get(part)
        if following == "":
            if not isinstance(child, list):
                child = [] if child is None else [child]
                node[part] = child
            if index + 1 == len(path) - 1:
                child.append(value)
                return
            # a[][b] is ambiguous; append the bare value
            _assign(node, part, value)
            return
        if not isinstance(child, dict):
            child = {} if child is None else {"": child}
            node[part] = child
        node = child
    _assign(node, path[-1], value)
