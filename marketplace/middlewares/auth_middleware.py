from typing import Iterable, Optional
from fastapi import Request, status
from fastapi.security.utils import get_authorization_scheme_param
from starlette.middleware.base import BaseHTTPMiddleware
from marketplace.auth.utils import read_access_token
from marketplace.common.utils import error_response
from marketplace.user.repository import identify_user_by_pid
from marketplace.middlewares.constants import logger


def bearer_token(request: Request) -> Optional[str]:
    scheme, credentials = get_authorization_scheme_param(request.headers.get("Authorization"))
    if scheme.lower() != "bearer" or not credentials:
        return None
    return credentials


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Resolves the bearer token of every non public request to a live local user.

    On success `request.state.user_identifier` holds the users primary key and
    `request.state.user_public_id` the token subject (safe to log). Roles are not
    taken from the token , route dependencies read them from the db.
    """

    def __init__(self, app, *, session_maker, paths: Iterable[str], public_exact: Optional[Iterable[str]] = None):
        super().__init__(app)
        self.session_maker = session_maker
        self.public_prefixes = tuple(paths)
        self.public_exact = frozenset(public_exact or ())

    def is_public(self, path: str) -> bool:
        return path in self.public_exact or path.startswith(self.public_prefixes)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if self.is_public(path):
            return await call_next(request)

        token = bearer_token(request)
        user_pid = read_access_token(token) if token else None
        if user_pid is None:
            logger.warning("auth.token.rejected", extra={"path": path, "has_token": token is not None})
            return error_response("INVALID_AUTH", {"message": "Missing or invalid bearer token"},
                                  status.HTTP_401_UNAUTHORIZED, headers={"WWW-Authenticate": "Bearer"})

        async with self.session_maker() as session:
            user_id = await identify_user_by_pid(session, user_pid)

        if user_id is None:
            # valid signature but the account is gone or soft deleted
            logger.warning("auth.user.unknown", extra={"user_public_id": user_pid, "path": path})
            return error_response("INVALID_AUTH", {"message": "User unidentified and not authorized"},
                                  status.HTTP_403_FORBIDDEN)

        request.state.user_identifier = user_id
        request.state.user_public_id = user_pid
        return await call_next(request)
