"""CORS response headers for the two deployment policies."""

from collections.abc import Iterable

from starlette.datastructures import MutableHeaders

from core.config import CorsSettings

ALLOW_METHODS = "GET,HEAD,POST,OPTIONS"
DEFAULT_ALLOW_HEADERS = "authorization,content-type"
ALLOW_PREFIX = "access-control-allow-"


class CorsPolicy:
    """Compute CORS headers in either ``open`` or ``allowlist`` mode.

    Open mode reflects the caller's origin (``*`` without one) and allows
    credentials. Allowlist mode reflects the origin only when it is a member of
    the configured set and otherwise omits ``Access-Control-Allow-Origin``.
    """

    def __init__(self, allowed_origins: Iterable[str] = ()) -> None:
        self._allowed = frozenset(allowed_origins)

    @classmethod
    def from_settings(cls, settings: CorsSettings) -> "CorsPolicy":
        return cls(settings.allowed_origins)

    def headers_for(
        self,
        origin: str | None,
        requested_headers: str | None = None,
    ) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self._allowed:
            if origin and origin in self._allowed:
                headers["Access-Control-Allow-Origin"] = origin
                headers["Vary"] = "Origin"
        else:
            headers["Access-Control-Allow-Origin"] = origin or "*"
            headers["Access-Control-Allow-Credentials"] = "true"
            headers["Vary"] = "Origin"
        headers["Access-Control-Allow-Headers"] = requested_headers or DEFAULT_ALLOW_HEADERS
        headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
        return headers

    @staticmethod
    def apply(headers: MutableHeaders, cors_headers: dict[str, str]) -> None:
        """Write ``cors_headers`` over ``headers``, merging ``Vary`` instead of replacing it.

        Any ``Access-Control-Allow-*`` header already present (typically relayed
        from the upstream) is removed first, so only the policy's values remain.
        """
        for key in {k for k in headers.keys() if k.lower().startswith(ALLOW_PREFIX)}:
            del headers[key]
        for key, value in cors_headers.items():
            if key == "Vary":
                existing = [v.strip() for v in headers.get("vary", "").split(",") if v.strip()]
                if value.lower() not in (v.lower() for v in existing):
                    existing.append(value)
                headers["Vary"] = ", ".join(existing)
            else:
                headers[key] = value
