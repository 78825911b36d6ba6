"""Shared protocol definitions."""

from typing import Protocol

from core.request_types import AuditRecord


class RequestLogger(Protocol):
    """Protocol for per-request logging (Dashboard or log file)."""

    def log_request(
        self,
        method: str,
        route: str,
        status: int,
        *,
        user_id: str | None = None,
        duration_ms: float = 0.0,
    ) -> None: ...
    def log_error(self, route: str, status: int, message: str) -> None: ...


class IdentityVerifier(Protocol):
    """Exchange a bearer token for a user id.

    Returns None on rejection; raises VerifierUnavailable when the verifier
    itself cannot answer.
    """

    async def verify(self, token: str) -> str | None: ...


class QuotaCounter(Protocol):
    """Count a call for a user; return True once the daily limit is exceeded.

    Raises QuotaCounterUnavailable when the counter cannot be consulted.
    """

    async def exceeded(self, user_id: str, limit: int) -> bool: ...


class AuditSink(Protocol):
    async def write(self, record: AuditRecord) -> None: ...
