"""HTTP proxying to the single upstream origin."""

from dataclasses import dataclass

import httpx
from fastapi import Response

from core.body import RequestBody
from core.exceptions import UpstreamUnavailable
from core.headers import HeaderBuilder
from core.protocols import RequestLogger
from core.request_types import UpstreamResponse
from core.responses import error_response


def build_upstream_url(origin: str, path: str) -> str:
    return origin.rstrip("/") + path


@dataclass
class DispatchResult:
    """Caller response plus what the audit record needs from the call."""

    response: Response
    bytes_out: int = 0
    error: str | None = None


class UpstreamClient:
    """Send one request upstream and relay the buffered response.

    Redirects are never followed; the caller sees the upstream's raw 3xx.
    """

    def __init__(self, client: httpx.AsyncClient, header_builder: HeaderBuilder) -> None:
        self._client = client
        self._headers = header_builder

    async def send(
        self,
        method: str,
        url: str,
        headers: list[tuple[str, str]],
        body: RequestBody,
    ) -> UpstreamResponse:
        """Execute the call; transport failures raise UpstreamUnavailable."""
        try:
            request = self._client.build_request(
                method,
                url,
                headers=headers,
                content=body.content(),
            )
            response = await self._client.send(request, follow_redirects=False)
        except httpx.RequestError as e:
            raise UpstreamUnavailable(str(e) or type(e).__name__) from e
        return UpstreamResponse(
            status_code=response.status_code,
            headers=list(response.headers.multi_items()),
            content=response.content,
        )

    async def proxy(
        self,
        method: str,
        url: str,
        headers: list[tuple[str, str]],
        body: RequestBody,
        logger: RequestLogger,
        route: str,
    ) -> DispatchResult:
        """Proxy the request. Upstream transport failures end here as a 502."""
        try:
            upstream = await self.send(method, url, headers, body)
        except UpstreamUnavailable as e:
            logger.log_error(route, e.status_code, e.detail)
            return DispatchResult(error_response(e), error=e.detail)

        if upstream.status_code >= 500:
            logger.log_error(route, upstream.status_code, "Upstream server error")
        return DispatchResult(self.relay(upstream), bytes_out=len(upstream.content))

    def relay(self, upstream: UpstreamResponse) -> Response:
        response = Response(content=upstream.content, status_code=upstream.status_code)
        self._headers.copy_response_headers(upstream.headers, response.headers)
        return response
