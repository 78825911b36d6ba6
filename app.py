"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from api.handlers import PROXY_METHODS, handle_proxy
from core.config import Config
from core.cors import CorsPolicy
from core.headers import HeaderBuilder
from core.protocols import AuditSink, IdentityVerifier, QuotaCounter, RequestLogger
from services.audit import AuditLogger, build_audit_sink
from services.auth_gate import AuthGate
from services.identity import HttpIdentityVerifier
from services.proxy_service import ProxyService
from services.quota import HttpQuotaCounter, QuotaEnforcer
from services.upstream import UpstreamClient

COLLABORATOR_TIMEOUT = 10.0


def create_app(
    config: Config,
    logger: RequestLogger,
    *,
    verifier: IdentityVerifier | None = None,
    quota_counter: QuotaCounter | None = None,
    audit_sink: AuditSink | None = None,
    upstream_transport: httpx.AsyncBaseTransport | None = None,
    collaborator_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Collaborators passed in explicitly take precedence over the HTTP clients
    built from ``config``; the transports exist for in-process testing.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limits = httpx.Limits(max_connections=100, max_keepalive_connections=20)
        upstream_client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.upstream.timeout),
            limits=limits,
            follow_redirects=False,
            transport=upstream_transport,
        )
        collaborator_client = httpx.AsyncClient(
            timeout=COLLABORATOR_TIMEOUT,
            limits=limits,
            transport=collaborator_transport,
        )

        identity = verifier
        if identity is None and config.auth.verifier_url:
            identity = HttpIdentityVerifier(collaborator_client, config.auth)
        counter = quota_counter
        if counter is None and config.quota.counter_url:
            counter = HttpQuotaCounter(collaborator_client, config.quota)
        sink = audit_sink or build_audit_sink(config.audit, collaborator_client)

        header_builder = HeaderBuilder(config.upstream.forward_authorization)
        app.state.proxy_service = ProxyService(
            config=config,
            request_logger=logger,
            cors=CorsPolicy.from_settings(config.cors),
            auth_gate=AuthGate(config.proxy.protected_paths, identity),
            quota=QuotaEnforcer(counter, config.quota.daily_limit),
            header_builder=header_builder,
            upstream=UpstreamClient(upstream_client, header_builder),
            audit=AuditLogger(sink),
        )
        try:
            yield
        finally:
            await upstream_client.aclose()
            await collaborator_client.aclose()

    app = FastAPI(
        title="Auth Gate Proxy",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    mount = config.proxy.mount_path
    app.add_api_route(mount or "/", handle_proxy, methods=PROXY_METHODS, include_in_schema=False)
    app.add_api_route(
        f"{mount}/{{rest:path}}",
        handle_proxy,
        methods=PROXY_METHODS,
        include_in_schema=False,
    )

    return app
