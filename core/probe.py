"""Probe classification: health and connectivity checks exempt from auth."""

from collections.abc import Collection, Mapping

OPENAPI_PATH = "/openapi.json"


def declares_body(headers: Mapping[str, str]) -> bool:
    """Decide from headers alone whether the request carries a body.

    Never reads the body. Any ``Transfer-Encoding`` means a body is present,
    even without ``Content-Length``; a chunked empty body is therefore not
    recognized as empty. A missing or zero ``Content-Length`` means no body,
    and an unparseable one is treated as a body.
    """
    if headers.get("transfer-encoding"):
        return True
    length = headers.get("content-length")
    if length is None or not length.strip():
        return False
    try:
        return int(length) > 0
    except ValueError:
        return True


def is_probe(
    method: str,
    path: str,
    headers: Mapping[str, str],
    protected_paths: Collection[str],
) -> bool:
    """Return True when the request is a probe that skips auth and quota.

    ``path`` is the resolved upstream path without its query string.
    ``headers`` must be a case-insensitive mapping.
    """
    method = method.upper()
    if method in ("GET", "HEAD") and path == "/":
        return True
    if method == "GET" and path == OPENAPI_PATH:
        return True
    if path in protected_paths:
        if method == "OPTIONS":
            return True
        if method == "POST" and not declares_body(headers):
            return True
    return False
