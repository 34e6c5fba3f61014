"""Immutable HTTP request, as seen by the binder.

Frozen metadata plus a readable body stream. The request is honest about
what it is: received data that doesn't change. The body stream is read
at most once; the parsed form is cached so repeated ``form()`` calls
agree with each other.
"""

from __future__ import annotations

import io
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, BinaryIO

from perch._internal.asgi import Receive
from perch.errors import MalformedBody
from perch.http.headers import Headers
from perch.http.query import QueryParams

if TYPE_CHECKING:
    from perch.http.forms import FormData

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path_params`` keeps route parameters in the order the router
    matched them.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: tuple[tuple[str, str], ...] = ()
    body: BinaryIO = field(default_factory=io.BytesIO, repr=False, compare=False)
    # Length of an in-memory body; None when the body is an unsized stream
    body_size: int | None = field(default=None, compare=False)

    # Private: mutable cache for the parsed form
    # (dict contents are mutable even though the field reference is frozen)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def media_type(self) -> str:
        """Content-Type without parameters, lower-cased (``""`` if absent)."""
        return (self.content_type or "").split(";", 1)[0].strip().lower()

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    # -- Body access --

    def read_body(self, limit: int = -1) -> bytes:
        """Read the body stream to the end, or at most *limit* bytes.

        The stream is consumed: a second call returns what is left of it.
        """
        return self.body.read(limit)

    def form(
        self,
        *,
        body_methods: frozenset[str] = _BODY_METHODS,
        max_size: int | None = None,
    ) -> FormData:
        """Parse form data (URL-encoded or multipart).

        For methods in *body_methods* the body fields come first, followed
        by query values for the same keys. Other methods never read the
        body and get the query values only.

        At most *max_size* bytes of body are accepted when it is given.

        Result is cached — the body is read and parsed once, then the same
        ``FormData`` is returned on subsequent calls.

        Raises:
            ValueError: If the body is not a form encoding or is malformed.
            MalformedBody: If the body is larger than *max_size* (status 413).
            ConfigurationError: If multipart is needed but
                ``python-multipart`` is not installed.
        """
        if "_form" in self._cache:
            return self._cache["_form"]

        from perch.http.forms import FORM_URLENCODED, FormData, parse_form_data

        query = {key: self.query.get_list(key) for key in self.query}
        if self.method.upper() in body_methods:
            ct = self.content_type or FORM_URLENCODED
            raw = self.read_body(-1 if max_size is None else max_size + 1)
            if max_size is not None and len(raw) > max_size:
                raise MalformedBody("Request Entity Too Large", status=413)
            result = parse_form_data(raw, ct).merged_with(query)
        else:
            result = FormData(query)

        self._cache["_form"] = result
        return result

    # -- Factories --

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        *,
        headers: Headers | Mapping[str, str] | Iterable[tuple[str, str]] = (),
        query: QueryParams | bytes | str = b"",
        path_params: Mapping[str, str] | Iterable[tuple[str, str]] = (),
        body: bytes | BinaryIO = b"",
    ) -> Request:
        """Create a Request from already-parsed parts."""
        if not isinstance(headers, Headers):
            headers = Headers.of(headers)
        if not isinstance(query, QueryParams):
            query = QueryParams(query)
        if isinstance(path_params, Mapping):
            path_params = path_params.items()
        if isinstance(body, bytes):
            size: int | None = len(body)
            stream: BinaryIO = io.BytesIO(body)
        else:
            size, stream = None, body
        return cls(
            method=method.upper(),
            path=path,
            headers=headers,
            query=query,
            path_params=tuple(path_params),
            body=stream,
            body_size=size,
        )

    @classmethod
    async def from_asgi(
        cls,
        scope: Mapping[str, Any],
        receive: Receive,
        path_params: Mapping[str, str] | Iterable[tuple[str, str]] = (),
    ) -> Request:
        """Create a Request from an ASGI scope, draining *receive* into memory."""
        chunks: list[bytes] = []
        while True:
            message = await receive()
            chunk = message.get("body", b"")
            if chunk:
                chunks.append(chunk)
            if not message.get("more_body", False):
                break
        return cls.build(
            scope["method"],
            scope["path"],
            headers=Headers(scope.get("headers", ())),
            query=QueryParams(scope.get("query_string", b"")),
            path_params=path_params,
            body=b"".join(chunks),
        )
