"""Upstream path resolution from the inbound request target."""

import re
from urllib.parse import unquote

from core.exceptions import InvalidPath

# A '%' not followed by two hex digits
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decode_component(value: str) -> str:
    """Percent-decode ``value``, returning it untouched if any escape is malformed.

    Malformed means a stray ``%`` or an escape sequence that does not decode
    to valid UTF-8.
    """
    if _MALFORMED_ESCAPE.search(value):
        return value
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def raw_query_param(query_string: str, name: str) -> str | None:
    """Return the first still-encoded value of ``name`` in a raw query string."""
    for pair in query_string.split("&"):
        key, sep, value = pair.partition("=")
        if key == name:
            return value if sep else ""
    return None


def resolve_upstream_path(
    raw_target: str,
    mount_path: str,
    path_param: str | None = None,
) -> str:
    """Derive the upstream path for a request.

    Args:
        raw_target: Raw request target (path plus optional ``?query``).
        mount_path: Routing prefix this proxy is exposed under.
        path_param: Raw ``path`` query parameter value, if any.

    Returns:
        A path that always starts with ``/``.
    """
    if path_param:
        decoded = decode_component(path_param)
        return decoded if decoded.startswith("/") else "/" + decoded

    remainder = raw_target
    if mount_path and remainder.startswith(mount_path):
        remainder = remainder[len(mount_path):]
    if remainder in ("", "/"):
        return "/"
    if remainder.startswith("?"):
        return "/" + remainder
    return remainder if remainder.startswith("/") else "/" + remainder


def validate_upstream_path(path: str) -> str:
    if not path.startswith("/"):
        raise InvalidPath(f"Upstream path must start with '/': {path!r}")
    return path


def strip_query(path: str) -> str:
    """Path component of an upstream path, without its query string."""
    return path.split("?", 1)[0] or "/"


def route_for(path: str) -> str:
    """Decoded path component of an upstream path, used for classification.

    The upstream percent-decodes the path it receives, so ``/%6Datch`` must be
    classified as ``/match``. Decoding happens once, with the same
    malformed-escape fallback as :func:`decode_component`.
    """
    return decode_component(strip_query(path))
