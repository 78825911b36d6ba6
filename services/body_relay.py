"""Materialize the request body according to its relay policy."""

from starlette.requests import Request

from core.body import (
    BodyPolicy,
    BufferedBody,
    NoBody,
    RequestBody,
    StreamedBody,
    select_body_policy,
)


async def prepare_body(request: Request, probe: bool) -> RequestBody:
    """Select and prepare the body once, after the auth gate has passed.

    JSON bodies are read here; streamed bodies are only wrapped, so the
    upstream dispatcher is the sole reader of the stream.
    """
    policy = select_body_policy(request.method, probe, request.headers)
    if policy is BodyPolicy.BUFFER:
        return BufferedBody(await request.body())
    if policy is BodyPolicy.STREAM:
        return StreamedBody(request.stream())
    return NoBody()
