"""Domain model for outgoing HTTP requests.

A ReplayableRequest is immutable: middlewares derive new requests with
``with_header`` instead of mutating headers in place. Retries depend on
``try_clone``, which refuses to copy a request whose body is a one-shot
stream.
"""

import json
from dataclasses import dataclass, replace
from typing import Any, AsyncIterable, Optional, Tuple

Headers = Tuple[Tuple[str, str], ...]


def _normalize_headers(headers: Any) -> Headers:
    """Lower-cases header names so replacement is case-insensitive."""
    if not headers:
        return ()
    items = headers.items() if hasattr(headers, "items") else headers
    return tuple((str(name).lower(), str(value)) for name, value in items)


@dataclass(frozen=True)
class ReplayableRequest:
    """An outgoing request whose body can be duplicated before it is sent."""

    method: str
    url: str
    headers: Headers = ()
    content: Optional[bytes] = None
    stream: Optional[AsyncIterable[bytes]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", _normalize_headers(self.headers))
        if self.content is not None and self.stream is not None:
            raise ValueError("A request body is either content or a stream, not both.")

    @classmethod
    def json(cls, method: str, url: str, payload: Any, headers: Any = None) -> "ReplayableRequest":
        """Builds a request with a JSON-encoded body."""
        request = cls(
            method=method,
            url=url,
            headers=_normalize_headers(headers),
            content=json.dumps(payload).encode("utf-8"),
        )
        return request.with_header("content-type", "application/json")

    @property
    def is_replayable(self) -> bool:
        return self.stream is None

    def try_clone(self) -> Optional["ReplayableRequest"]:
        """Returns a byte-identical copy, or None if the body is a one-shot stream."""
        if not self.is_replayable:
            return None
        content = bytes(self.content) if self.content is not None else None
        return replace(self, content=content)

    def header(self, name: str) -> Optional[str]:
        name = name.lower()
        for key, value in self.headers:
            if key == name:
                return value
        return None

    def with_header(self, name: str, value: str) -> "ReplayableRequest":
        """Returns a new request with ``name`` set to ``value`` (replacing any existing value)."""
        name = name.lower()
        headers = tuple(item for item in self.headers if item[0] != name) + ((name, value),)
        return replace(self, headers=headers)
