"""Custom exception hierarchy for the auth gate proxy."""


class ProxyError(Exception):
    """Base exception for all proxy errors.

    Attributes:
        status_code: HTTP status returned to the caller
        title: Short label used as the ``error`` field of the JSON body
    """

    status_code = 500
    title = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.title)
        self.detail = message or self.title


class ConfigurationError(ProxyError):
    """Raised at startup when configuration is malformed."""


class ConfigMissing(ProxyError):
    """Required configuration (the upstream origin) is absent."""

    title = "Proxy misconfigured"


class InvalidPath(ProxyError):
    """Resolved upstream path is not an absolute path."""

    status_code = 400
    title = "Invalid path"


class Unauthorized(ProxyError):
    """No bearer token on a request that requires one."""

    status_code = 401
    title = "Unauthorized"


class InvalidToken(ProxyError):
    """The identity verifier rejected the token or returned no identity."""

    status_code = 401
    title = "Invalid token"


class InternalConfigurationError(ProxyError):
    """The identity verifier is unconfigured or unreachable."""

    title = "Authentication unavailable"


class QuotaExceeded(ProxyError):
    """Per-user daily call limit reached."""

    status_code = 429
    title = "Quota exceeded"


class UpstreamUnavailable(ProxyError):
    """Transport failure talking to the upstream (DNS, connect, timeout)."""

    status_code = 502
    title = "Bad gateway"


class InternalPipelineError(ProxyError):
    """Any fault not anticipated by the pipeline."""


class VerifierUnavailable(Exception):
    """Raised by an identity verifier client on transport or server failure."""


class QuotaCounterUnavailable(Exception):
    """Raised by a quota counter client when the counter cannot be consulted."""
