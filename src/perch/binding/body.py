"""Request body dispatch.

The media type (Content-Type up to ``;``, lower-cased) selects a decoder:

    application/json                    -> JSON overlay
    application/xml, text/xml           -> XML overlay
    application/x-www-form-urlencoded   -> form fields
    multipart/form-data                 -> form fields + uploaded files

Anything else is rejected with 415 before the body is read. A request
without a body (Content-Length 0, or an in-memory body that is empty) is
left alone whatever its media type.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeAlias

from perch._internal.multimap import to_lists
from perch.binding.codecs import decode_json, decode_xml
from perch.binding.sources import bind_data
from perch.binding.tags import Source
from perch.config import BindConfig
from perch.errors import MalformedBody, UnsupportedMediaType
from perch.http.forms import FORM_URLENCODED, MULTIPART_FORM
from perch.http.request import Request

logger = logging.getLogger("perch.binding")

_DEFAULT_CONFIG = BindConfig()

Decoder: TypeAlias = Callable[..., None]

# Matched as a prefix of the request media type.
CODECS: dict[str, Decoder] = {
    "application/json": decode_json,
    "application/xml": decode_xml,
    "text/xml": decode_xml,
}

FORM_TYPES = (FORM_URLENCODED, MULTIPART_FORM)


def decode_body(
    request: Request,
    target: Any,
    *,
    target_type: Any = None,
    config: BindConfig | None = None,
) -> None:
    """Decode the request body onto *target*.

    Raises:
        UnsupportedMediaType: If the media type has no decoder.
        MalformedBody: If the body cannot be parsed or is too large.
        TypeMismatch: If a decoded value does not fit its field.
    """
    config = config or _DEFAULT_CONFIG

    length = request.content_length
    if length is None and "transfer-encoding" not in request.headers:
        length = request.body_size
    if length == 0:
        logger.debug("skipping body binding: no request body")
        return
    if length is not None and length > config.max_body_size:
        raise MalformedBody("Request Entity Too Large", status=413)

    media_type = request.media_type

    if media_type.startswith(FORM_TYPES):
        _decode_form(request, target, config)
        return

    decoder = _lookup(media_type)
    if decoder is None:
        raise UnsupportedMediaType

    raw = request.read_body(config.max_body_size + 1)
    if not raw:
        logger.debug("skipping body binding: empty %s body", media_type)
        return
    if len(raw) > config.max_body_size:
        raise MalformedBody("Request Entity Too Large", status=413)

    decoder(target, raw, target_type=target_type, time_format=config.time_format)


def _lookup(media_type: str) -> Decoder | None:
    for prefix, decoder in CODECS.items():
        if media_type.startswith(prefix):
            return decoder
    return None


def _decode_form(request: Request, target: Any, config: BindConfig) -> None:
    try:
        form = request.form(body_methods=config.form_methods, max_size=config.max_body_size)
    except ValueError as exc:
        raise MalformedBody(str(exc)) from exc
    bind_data(
        target,
        to_lists(form),
        Source.FORM,
        form.file_lists,
        time_format=config.time_format,
    )
