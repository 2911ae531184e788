r"""Request body variants accepted by the request executor.

Resource operations pass plain values (dataclasses, dicts, lists) which
are serialized to JSON. Infrastructure callers may pass pre-serialized
bytes or a binary stream, which are sent unchanged.

Example:
    ```pycon
    >>> from flareapi.body import BytesBody, JsonBody, to_request_body
    >>> to_request_body(b"raw")
    BytesBody(data=b'raw')
    >>> to_request_body({"name": "example.com"}).encode()
    b'{"name": "example.com"}'

    ```
"""

from __future__ import annotations

__all__ = [
    "BytesBody",
    "JsonBody",
    "RequestBody",
    "StreamBody",
    "to_request_body",
]

import dataclasses
import enum
import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import IO, TYPE_CHECKING, Any, Union

from flareapi.exceptions import BodyEncodeError

if TYPE_CHECKING:
    from collections.abc import Iterator

_CHUNK_SIZE = 64 * 1024


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


@dataclass(frozen=True)
class JsonBody:
    """A value serialized to JSON."""

    value: Any

    def encode(self) -> bytes:
        """Serialize the value.

        Raises:
            BodyEncodeError: If the value cannot be serialized.
        """
        try:
            return json.dumps(self.value, default=_json_default).encode("utf-8")
        except (TypeError, ValueError) as exc:
            msg = f"error marshalling params to JSON: {exc}"
            raise BodyEncodeError(msg) from exc


@dataclass(frozen=True)
class BytesBody:
    """A pre-serialized body sent unchanged."""

    data: bytes

    def encode(self) -> bytes:
        return self.data


@dataclass(frozen=True)
class StreamBody:
    """A binary stream sent unchanged.

    Seekable streams are rewound to their initial position before every
    attempt, so they can be retried. Other streams can only be sent once.
    """

    stream: IO[bytes]
    start: int | None = dataclasses.field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        seekable = getattr(self.stream, "seekable", None)
        if seekable is not None and seekable():
            object.__setattr__(self, "start", self.stream.tell())

    @property
    def seekable(self) -> bool:
        return self.start is not None

    def rewind(self) -> None:
        if self.start is not None:
            self.stream.seek(self.start)

    def iter_chunks(self) -> Iterator[bytes]:
        while chunk := self.stream.read(_CHUNK_SIZE):
            yield chunk


RequestBody = Union[JsonBody, BytesBody, StreamBody]


def to_request_body(value: Any) -> RequestBody | None:
    """Wrap a caller supplied body into its ``RequestBody`` variant.

    Args:
        value: ``None``, a ``RequestBody``, bytes-like data, a binary
            stream (any object with ``read``), or any JSON serializable
            value.

    Returns:
        The matching variant, or ``None`` for ``None``.
    """
    if value is None:
        return None
    if isinstance(value, (JsonBody, BytesBody, StreamBody)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesBody(bytes(value))
    if hasattr(value, "read"):
        return StreamBody(value)
    return JsonBody(value)
