"""Perch exception hierarchy.

Every binding failure is an ``HTTPError`` so a web layer can render it
without knowing which step of the binder raised it. The underlying
parser or coercion exception is chained as ``__cause__``.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when the package itself is misconfigured.

    Typically a missing optional dependency (``perch[forms]``).
    """


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code."""

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BindError(HTTPError):
    """400 — request data could not be bound to the destination."""

    def __init__(self, detail: str = "Bad Request", status: int = 400) -> None:
        super().__init__(status=status, detail=detail)


class UnsupportedMediaType(BindError):  # noqa: N818
    """415 — the body's content type has no registered decoder.

    Raised before the body is read.
    """

    def __init__(self, detail: str = "Unsupported Media Type") -> None:
        super().__init__(detail=detail, status=415)


class MalformedBody(BindError):
    """400 — the body codec reported a syntax error."""


class TypeMismatch(BindError):
    """400 — a decoded body value does not fit the destination field type.

    Attributes:
        field: Dotted path of the offending field (``""`` for the root).
        expected: Name of the destination type.
        got: Kind of the value the codec produced.
    """

    def __init__(self, field: str, expected: str, got: str, detail: str = "") -> None:
        self.field = field
        self.expected = expected
        self.got = got
        super().__init__(
            detail or f"Unmarshal type error: expected={expected}, got={got}, field={field}"
        )


class FieldCoercionError(BindError):
    """400 — a string from path/query/header/form could not be converted.

    Attributes:
        field: Name of the destination field.
        value: The raw string that failed to convert.
    """

    def __init__(self, field: str, value: str, detail: str) -> None:
        self.field = field
        self.value = value
        super().__init__(detail)


class BindConfigurationError(BindError):
    """400 — the destination has a shape the binder can never populate.

    Unsupported leaf types, source tags on embedded fields, and bare
    ``UploadFile`` fields. These are programmer errors that surface
    through the same channel as client errors.
    """
