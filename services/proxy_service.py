"""Request pipeline: CORS, path, probe, auth, quota, headers, body, dispatch, audit."""

import logging
import time
from dataclasses import dataclass

from fastapi import Request, Response

from core.config import Config
from core.cors import CorsPolicy
from core.exceptions import ConfigMissing, InternalPipelineError, ProxyError
from core.headers import HeaderBuilder
from core.paths import (
    raw_query_param,
    resolve_upstream_path,
    route_for,
    validate_upstream_path,
)
from core.probe import is_probe
from core.protocols import RequestLogger
from core.request_types import AuditRecord, Authenticated, Rejected
from core.responses import error_response
from services.audit import PIPELINE_ERROR_ROUTE, AuditLogger
from services.auth_gate import AuthGate
from services.body_relay import prepare_body
from services.quota import QuotaEnforcer
from services.upstream import UpstreamClient, build_upstream_url
from ui.log_utils import redact_headers

logger = logging.getLogger(__name__)


@dataclass
class _Outcome:
    route: str
    user_id: str | None = None
    bytes_in: int = 0
    bytes_out: int = 0
    error: str | None = None


def raw_target(request: Request) -> str:
    """Still-encoded request path plus query string."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        path = request.scope.get("path", "/")
    query = request.scope.get("query_string", b"").decode("latin-1")
    return f"{path}?{query}" if query else path


class ProxyService:
    """Run one inbound request through every stage, strictly in order."""

    def __init__(
        self,
        config: Config,
        request_logger: RequestLogger,
        cors: CorsPolicy,
        auth_gate: AuthGate,
        quota: QuotaEnforcer,
        header_builder: HeaderBuilder,
        upstream: UpstreamClient,
        audit: AuditLogger,
    ) -> None:
        self._config = config
        self._request_logger = request_logger
        self._cors = cors
        self._auth = auth_gate
        self._quota = quota
        self._headers = header_builder
        self._upstream = upstream
        self._audit = audit
        self._protected = frozenset(config.proxy.protected_paths)

    async def handle(self, request: Request) -> Response:
        started = time.perf_counter()
        cors_headers = self._cors.headers_for(
            request.headers.get("origin"),
            request.headers.get("access-control-request-headers"),
        )
        outcome = _Outcome(route=request.url.path)

        try:
            response = await self._forward(request, outcome)
        except ProxyError as e:
            outcome.error = e.detail
            response = error_response(e)
        except Exception as e:
            logger.exception("Unhandled error proxying %s %s", request.method, request.url.path)
            self._request_logger.log_error(PIPELINE_ERROR_ROUTE, 500, str(e))
            outcome = _Outcome(route=PIPELINE_ERROR_ROUTE, error=f"{type(e).__name__}: {e}")
            response = error_response(InternalPipelineError())

        CorsPolicy.apply(response.headers, cors_headers)

        duration_ms = round((time.perf_counter() - started) * 1000, 1)
        self._request_logger.log_request(
            request.method,
            outcome.route,
            response.status_code,
            user_id=outcome.user_id,
            duration_ms=duration_ms,
        )
        response.background = self._audit.task(
            AuditRecord(
                user_id=outcome.user_id,
                route=outcome.route,
                method=request.method,
                status=response.status_code,
                duration_ms=duration_ms,
                bytes_in=outcome.bytes_in,
                bytes_out=outcome.bytes_out,
                error=outcome.error,
            )
        )
        return response

    async def _forward(self, request: Request, outcome: _Outcome) -> Response:
        origin = self._config.upstream.origin
        if origin is None:
            raise ConfigMissing("API_BASE is not defined")

        method = request.method.upper()
        query_string = request.scope.get("query_string", b"").decode("latin-1")
        path = validate_upstream_path(
            resolve_upstream_path(
                raw_target(request),
                self._config.proxy.mount_path,
                raw_query_param(query_string, "path"),
            )
        )
        route = route_for(path)
        outcome.route = route

        if method == "OPTIONS" and route in self._protected:
            return Response(status_code=204)

        probe = is_probe(method, route, request.headers, self._protected)
        decision = await self._auth.check(method, route, request.headers, probe)
        if isinstance(decision, Rejected):
            raise decision.error
        user_id = decision.user_id if isinstance(decision, Authenticated) else None
        outcome.user_id = user_id

        if user_id is not None:
            await self._quota.enforce(user_id)

        body = await prepare_body(request, probe)
        forward_headers = self._headers.build_forward_headers(
            request.headers.items(),
            user_id,
            content_type=body.content_type,
        )
        logger.debug(
            "Forwarding %s %s body=%s headers=%s",
            method,
            path,
            body.policy.value,
            redact_headers(dict(forward_headers)),
        )

        result = await self._upstream.proxy(
            method,
            build_upstream_url(origin, path),
            forward_headers,
            body,
            self._request_logger,
            route,
        )
        outcome.bytes_in = body.bytes_sent
        outcome.bytes_out = result.bytes_out
        outcome.error = result.error
        return result.response
