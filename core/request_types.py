"""Shared request data types."""

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True)
class NotRequired:
    """Request passes without identity verification."""


@dataclass(frozen=True)
class Required:
    """Request needs verification of ``token``."""

    token: str


@dataclass(frozen=True)
class Authenticated:
    user_id: str


@dataclass(frozen=True)
class Rejected:
    """Authentication failed; ``error`` is the ProxyError to answer with."""

    reason: str
    error: Exception


AuthDecision = NotRequired | Required | Authenticated | Rejected


@dataclass(frozen=True)
class UpstreamResponse:
    """Fully buffered upstream response."""

    status_code: int
    headers: list[tuple[str, str]]
    content: bytes


@dataclass(frozen=True)
class AuditRecord:
    """One request outcome, written once to the audit sink."""

    user_id: str | None
    route: str
    method: str
    status: int
    duration_ms: float
    bytes_in: int = 0
    bytes_out: int = 0
    error: str | None = None
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
