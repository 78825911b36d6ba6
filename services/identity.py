"""HTTP client for the external identity verifier."""

import logging

import httpx

from core.config import AuthSettings
from core.exceptions import VerifierUnavailable

logger = logging.getLogger(__name__)


class HttpIdentityVerifier:
    """Resolve a bearer token to a user id via ``GET <verifier_url>``.

    The verifier sees the caller's token as a bearer credential, plus an
    ``apikey`` header when one is configured.
    """

    def __init__(self, client: httpx.AsyncClient, settings: AuthSettings) -> None:
        if not settings.verifier_url:
            raise ValueError("verifier_url is required")
        self._client = client
        self._url = settings.verifier_url
        self._api_key = settings.verifier_api_key
        self._user_id_field = settings.user_id_field

    async def verify(self, token: str) -> str | None:
        headers = {"Authorization": f"Bearer {token}"}
        if self._api_key:
            headers["apikey"] = self._api_key
        try:
            response = await self._client.get(self._url, headers=headers)
        except httpx.RequestError as e:
            raise VerifierUnavailable(f"Identity verifier unreachable: {e}") from e

        if response.status_code >= 500:
            raise VerifierUnavailable(f"Identity verifier error: {response.status_code}")
        if response.status_code != 200:
            logger.debug("Token rejected by verifier (status %s)", response.status_code)
            return None

        try:
            data = response.json()
        except ValueError as e:
            raise VerifierUnavailable("Identity verifier returned invalid JSON") from e
        if not isinstance(data, dict):
            return None
        user = data.get("user") if isinstance(data.get("user"), dict) else data
        user_id = user.get(self._user_id_field) or user.get("sub")
        return str(user_id) if user_id else None
