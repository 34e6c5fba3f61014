"""The binder — request data onto a destination, one source at a time.

``Binder.bind`` applies path parameters, then query parameters, then the
body. Later sources overwrite earlier ones field by field. A failing step
raises immediately and leaves whatever the earlier steps wrote.

The binder holds only its configuration, so one instance can serve any
number of concurrent requests.
"""

from __future__ import annotations

import logging
from typing import Any

from perch._internal.multimap import to_lists
from perch.binding.body import decode_body
from perch.binding.sources import bind_data
from perch.binding.tags import Source
from perch.config import BindConfig
from perch.http.request import Request

logger = logging.getLogger("perch.binding")


class Binder:
    """Binds request data onto caller-supplied destinations.

    Usage::

        binder = Binder(BindConfig(time_format="%d/%m/%Y"))

        @dataclass
        class Search:
            q: str = field("", query="q")
            page: int = field(1, query="page")

        search = Search()
        binder.bind(request, search)
    """

    __slots__ = ("config",)

    def __init__(self, config: BindConfig | None = None) -> None:
        self.config = config or BindConfig()

    def bind(self, request: Request, target: Any, *, target_type: Any = None) -> None:
        """Bind path params, query params and the body, in that order.

        A ``list`` destination only receives the body.
        """
        if isinstance(target, list):
            logger.debug("list destination: binding %s %s body only", request.method, request.path)
            decode_body(request, target, target_type=target_type, config=self.config)
            return

        self.bind_path_params(request, target, target_type=target_type)

        methods = self.config.query_methods
        if methods is None or request.method.upper() in methods:
            self.bind_query_params(request, target, target_type=target_type)

        decode_body(request, target, target_type=target_type, config=self.config)

    def bind_body(self, request: Request, target: Any, *, target_type: Any = None) -> None:
        """Bind only the request body."""
        decode_body(request, target, target_type=target_type, config=self.config)

    def bind_headers(self, request: Request, target: Any, *, target_type: Any = None) -> None:
        """Bind only the request headers (names match case-insensitively)."""
        self._bind_source(request.headers, Source.HEADER, target, target_type)

    def bind_path_params(self, request: Request, target: Any, *, target_type: Any = None) -> None:
        data: dict[str, list[str]] = {}
        for name, value in request.path_params:
            data.setdefault(name, []).append(value)
        self._bind_source(data, Source.PATH, target, target_type)

    def bind_query_params(self, request: Request, target: Any, *, target_type: Any = None) -> None:
        self._bind_source(request.query, Source.QUERY, target, target_type)

    def _bind_source(self, values: Any, source: Source, target: Any, target_type: Any) -> None:
        bind_data(
            target,
            to_lists(values),
            source,
            target_type=target_type,
            time_format=self.config.time_format,
        )


_default = Binder()


def bind(request: Request, target: Any, *, target_type: Any = None) -> None:
    """Bind *request* onto *target* with the default configuration."""
    _default.bind(request, target, target_type=target_type)


def bind_body(request: Request, target: Any, *, target_type: Any = None) -> None:
    _default.bind_body(request, target, target_type=target_type)


def bind_headers(request: Request, target: Any, *, target_type: Any = None) -> None:
    _default.bind_headers(request, target, target_type=target_type)
