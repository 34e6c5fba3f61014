"""Binding engine: source binding, coercion and body decoding."""

from perch.binding.binder import Binder, bind, bind_body, bind_headers
from perch.binding.body import decode_body
from perch.binding.capabilities import ParamsUnmarshaler, ParamUnmarshaler
from perch.binding.sources import bind_data
from perch.binding.tags import Source, embedded, field

__all__ = [
    "Binder",
    "ParamUnmarshaler",
    "ParamsUnmarshaler",
    "Source",
    "bind",
    "bind_body",
    "bind_data",
    "bind_headers",
    "decode_body",
    "embedded",
    "field",
]
