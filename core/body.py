"""Request body relay policy.

The body is handled one of three ways, chosen once per request before the
upstream call:

- ``NoBody``: nothing is sent (GET/HEAD/OPTIONS, or an empty probe).
- ``BufferedBody``: JSON payloads are read fully and sent with an exact length.
- ``StreamedBody``: everything else is relayed chunk by chunk, never buffered.
"""

from collections.abc import AsyncIterator, Mapping
from enum import Enum

JSON_MEDIA_TYPE = "application/json"
BODYLESS_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class BodyPolicy(Enum):
    NONE = "none"
    BUFFER = "buffer"
    STREAM = "stream"


def is_json(content_type: str | None) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == JSON_MEDIA_TYPE


def select_body_policy(method: str, probe: bool, headers: Mapping[str, str]) -> BodyPolicy:
    if method.upper() in BODYLESS_METHODS or probe:
        return BodyPolicy.NONE
    if is_json(headers.get("content-type")):
        return BodyPolicy.BUFFER
    return BodyPolicy.STREAM


class NoBody:
    policy = BodyPolicy.NONE
    content_type: str | None = None

    @property
    def bytes_sent(self) -> int:
        return 0

    def content(self) -> None:
        return None


class BufferedBody:
    """A fully materialized JSON payload."""

    policy = BodyPolicy.BUFFER
    content_type = JSON_MEDIA_TYPE

    def __init__(self, data: bytes) -> None:
        self.data = data

    @property
    def bytes_sent(self) -> int:
        return len(self.data)

    def content(self) -> bytes:
        return self.data


class StreamedBody:
    """Single-use handle on the inbound byte stream.

    ``content()`` may be called once; a second call raises RuntimeError so no
    other stage can read the stream behind the dispatcher's back.
    """

    policy = BodyPolicy.STREAM
    content_type: str | None = None

    def __init__(self, stream: AsyncIterator[bytes]) -> None:
        self._stream: AsyncIterator[bytes] | None = stream
        self.bytes_sent = 0

    def content(self) -> AsyncIterator[bytes]:
        if self._stream is None:
            raise RuntimeError("Request body stream already taken")
        stream, self._stream = self._stream, None
        return self._relay(stream)

    async def _relay(self, stream: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        async for chunk in stream:
            if chunk:
                self.bytes_sent += len(chunk)
                yield chunk


RequestBody = NoBody | BufferedBody | StreamedBody
