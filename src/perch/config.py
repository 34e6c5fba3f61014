"""Binder configuration.

BindConfig is a frozen dataclass — immutable after creation, shared freely
between threads, no string-key dict lookups.
"""

from dataclasses import dataclass

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


@dataclass(frozen=True, slots=True)
class BindConfig:
    """Binder configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = BindConfig(query_methods=frozenset({"GET", "DELETE", "HEAD"}))
    """

    # Coercion
    time_format: str | None = None  # strptime layout for datetime leaves; None = RFC 3339

    # Source ordering
    query_methods: frozenset[str] | None = None  # None = query binds for every method
    form_methods: frozenset[str] = _BODY_METHODS  # Methods whose form body is parsed

    # Limits
    max_body_size: int = 16 * 1024 * 1024  # 16 MB
