"""FastAPI route handlers."""

from fastapi import Request, Response

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def handle_proxy(request: Request) -> Response:
    """Forward any request under the mount point through the proxy pipeline."""
    proxy_service = request.app.state.proxy_service
    return await proxy_service.handle(request)
