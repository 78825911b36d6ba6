"""Header construction for upstream requests and caller responses."""

from collections.abc import Iterable

from starlette.datastructures import MutableHeaders

USER_ID_HEADER = "x-user-id"

# Hop-by-hop (RFC 7230 section 6.1) plus headers the upstream call recomputes.
# Inbound x-user-id is dropped so only the auth gate can set it.
ALWAYS_DROPPED = frozenset(
    {
        "host",
        "content-length",
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        USER_ID_HEADER,
    }
)

# The proxy buffers and decodes upstream bodies, so these would be stale.
RESPONSE_DROPPED = frozenset({"content-encoding", "transfer-encoding", "content-length"})


class HeaderBuilder:
    """Build forwarded header multimaps under one authorization policy.

    With ``forward_authorization`` False the caller's credentials never reach
    the upstream, and ``x-user-id`` is correlation data only.
    """

    def __init__(self, forward_authorization: bool = False) -> None:
        self.forward_authorization = forward_authorization

    def build_forward_headers(
        self,
        headers: Iterable[tuple[str, str]],
        user_id: str | None = None,
        *,
        content_type: str | None = None,
    ) -> list[tuple[str, str]]:
        """Filter inbound headers for the upstream call.

        Order and repeats are preserved. ``content_type`` replaces any inbound
        Content-Type when given.
        """
        upstream: list[tuple[str, str]] = []
        for key, value in headers:
            key_lower = key.lower()
            if key_lower in ALWAYS_DROPPED:
                continue
            if key_lower == "authorization" and not self.forward_authorization:
                continue
            if content_type is not None and key_lower == "content-type":
                continue
            upstream.append((key, value))
        if content_type is not None:
            upstream.append(("content-type", content_type))
        if user_id is not None:
            upstream.append((USER_ID_HEADER, str(user_id)))
        return upstream

    def copy_response_headers(
        self,
        source: Iterable[tuple[str, str]],
        target: MutableHeaders,
    ) -> None:
        """Append upstream response headers to ``target``, keeping repeats."""
        for key, value in source:
            if key.lower() in RESPONSE_DROPPED:
                continue
            target.append(key, value)
