import contextvars
from typing import Optional

REQUEST_ID_HEADER = "X-Request-ID"

# set per request by RequestIdMiddleware , read by loggers and response envelopes
request_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)
