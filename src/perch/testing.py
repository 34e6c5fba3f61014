"""Helpers for building requests in tests.

Uses the same ``Request`` type the binder consumes in production.
"""

import json as _json
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import urlsplit

from perch.http.request import Request

BOUNDARY = "perch-test-boundary"


def make_request(
    method: str = "GET",
    url: str = "/",
    *,
    body: bytes | str = b"",
    content_type: str | None = None,
    headers: Mapping[str, str] | Iterable[tuple[str, str]] = (),
    path_params: Mapping[str, str] | Iterable[tuple[str, str]] = (),
    json: Any = None,
) -> Request:
    """Build a ``Request`` for *url* (path plus optional query string).

    ``json=`` serialises the value and sets the JSON content type.
    ``Content-Length`` is filled in from the body unless given.

    Usage::

        request = make_request("POST", "/users/1?lang=en", json={"name": "Jon"})
    """
    if json is not None:
        body = _json.dumps(json)
        content_type = content_type or "application/json"
    if isinstance(body, str):
        body = body.encode("utf-8")

    pairs = list(headers.items() if isinstance(headers, Mapping) else headers)
    names = {name.lower() for name, _ in pairs}
    if content_type is not None and "content-type" not in names:
        pairs.append(("content-type", content_type))
    if "content-length" not in names:
        pairs.append(("content-length", str(len(body))))

    parts = urlsplit(url)
    return Request.build(
        method,
        parts.path or "/",
        headers=pairs,
        query=parts.query,
        path_params=path_params,
        body=body,
    )


def multipart_body(
    fields: Mapping[str, str | list[str]] | None = None,
    files: Iterable[tuple[str, str, bytes]] = (),
    *,
    boundary: str = BOUNDARY,
) -> tuple[bytes, str]:
    """Encode a ``multipart/form-data`` body.

    Args:
        fields: Text fields; list values repeat the field.
        files: ``(field_name, filename, content)`` triples, in order.
        boundary: Part boundary.

    Returns:
        ``(body, content_type)``.
    """
    lines: list[bytes] = []
    for name, value in (fields or {}).items():
        for item in [value] if isinstance(value, str) else value:
            lines.append(f"--{boundary}\r\n".encode())
            lines.append(f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode())
            lines.append(item.encode("utf-8") + b"\r\n")
    for name, filename, content in files:
        lines.append(f"--{boundary}\r\n".encode())
        lines.append(
            f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'.encode()
        )
        lines.append(b"Content-Type: application/octet-stream\r\n\r\n")
        lines.append(content + b"\r\n")
    lines.append(f"--{boundary}--\r\n".encode())
    return b"".join(lines), f"multipart/form-data; boundary={boundary}"
