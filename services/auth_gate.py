"""Authentication gate for protected, state-mutating requests."""

import logging
from collections.abc import Collection, Mapping

from core.exceptions import (
    InternalConfigurationError,
    InvalidToken,
    Unauthorized,
    VerifierUnavailable,
)
from core.protocols import IdentityVerifier
from core.request_types import (
    AuthDecision,
    Authenticated,
    NotRequired,
    Rejected,
    Required,
)

logger = logging.getLogger(__name__)

MUTATING_METHOD = "POST"


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


class AuthGate:
    """Decide whether a request needs identity, and obtain it when it does.

    Decisions only move forward: NotRequired, or Required then
    Authenticated/Rejected. ``verifier`` may be None when no verifier is
    configured; a request that needs one is then rejected with a 500.
    """

    def __init__(
        self,
        protected_paths: Collection[str],
        verifier: IdentityVerifier | None,
    ) -> None:
        self._protected = frozenset(protected_paths)
        self._verifier = verifier

    def requires_auth(self, method: str, path: str, probe: bool) -> bool:
        return method.upper() == MUTATING_METHOD and path in self._protected and not probe

    def classify(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        probe: bool,
    ) -> AuthDecision:
        if not self.requires_auth(method, path, probe):
            return NotRequired()
        token = extract_bearer_token(headers.get("authorization"))
        if token is None:
            return Rejected("missing bearer token", Unauthorized("Missing bearer token"))
        return Required(token)

    async def authenticate(self, decision: Required) -> Authenticated | Rejected:
        if self._verifier is None:
            return Rejected(
                "verifier not configured",
                InternalConfigurationError("Identity verifier is not configured"),
            )
        try:
            user_id = await self._verifier.verify(decision.token)
        except VerifierUnavailable as e:
            logger.warning("Identity verifier failure: %s", e)
            return Rejected("verifier unavailable", InternalConfigurationError(str(e)))
        if not user_id:
            return Rejected("invalid token", InvalidToken("Token rejected"))
        return Authenticated(user_id)

    async def check(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        probe: bool,
    ) -> AuthDecision:
        """Run the gate to completion; the result is NotRequired, Authenticated or Rejected."""
        decision = self.classify(method, path, headers, probe)
        if isinstance(decision, Required):
            return await self.authenticate(decision)
        return decision
