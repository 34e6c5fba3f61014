"""Perch — bind request data onto plain dataclasses.

Path parameters, query strings, headers, forms, uploaded files and
JSON / XML bodies land in one mutable dataclass instance, coerced to the
field types it declares.

Basic usage::

    from dataclasses import dataclass
    from perch import bind, field

    @dataclass
    class Opts:
        id: int = field(0, path="id", json="id")
        q: str = field("", query="q")

    opts = Opts()
    bind(request, opts)

Multipart forms (``pip install perch[forms]``)::

    @dataclass
    class Upload:
        title: str = field("", form="title")
        files: list[UploadFile] = field(default_factory=list, form="files")
"""

__version__ = "0.1.0-dev"
__all__ = [
    "BindConfig",
    "BindConfigurationError",
    "BindError",
    "Binder",
    "ConfigurationError",
    "FieldCoercionError",
    "HTTPError",
    "MalformedBody",
    "ParamUnmarshaler",
    "ParamsUnmarshaler",
    "PerchError",
    "Request",
    "TypeMismatch",
    "UnsupportedMediaType",
    "UploadFile",
    "bind",
    "bind_body",
    "bind_data",
    "bind_headers",
    "decode_body",
    "embedded",
    "field",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name in ("Binder", "bind", "bind_body", "bind_headers"):
        from perch.binding import binder as _binder

        return getattr(_binder, name)

    if name == "bind_data":
        from perch.binding.sources import bind_data

        return bind_data

    if name == "decode_body":
        from perch.binding.body import decode_body

        return decode_body

    if name in ("field", "embedded"):
        from perch.binding import tags as _tags

        return getattr(_tags, name)

    if name in ("ParamUnmarshaler", "ParamsUnmarshaler"):
        from perch.binding import capabilities as _caps

        return getattr(_caps, name)

    if name == "BindConfig":
        from perch.config import BindConfig

        return BindConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name == "UploadFile":
        from perch.http.forms import UploadFile

        return UploadFile

    if name in (
        "BindConfigurationError",
        "BindError",
        "ConfigurationError",
        "FieldCoercionError",
        "HTTPError",
        "MalformedBody",
        "PerchError",
        "TypeMismatch",
        "UnsupportedMediaType",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
