"""Raw ASGI callable types.

Only what ``Request.from_asgi`` needs to drain a request body.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
