import re
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from marketplace.common.constants import REQUEST_ID_HEADER, request_id_ctx

# caller supplied ids end up in every log line , anything else gets a fresh one
_ACCEPTED_REQUEST_ID = re.compile(r"^[A-Za-z0-9._\-]{8,64}$")


def resolve_request_id(incoming: str | None) -> str:
    if incoming and _ACCEPTED_REQUEST_ID.match(incoming):
        return incoming
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        req_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        ctx_token = request_id_ctx.set(req_id)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(ctx_token)
        response.headers[REQUEST_ID_HEADER] = req_id
        return response
