import asyncio
import functools
import random
from typing import Callable, Optional
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from marketplace.common import logger

# driver exception class names (asyncpg , aiosqlite) that mean "try again" rather than "bad request"
_TRANSIENT_NAME_HINTS = ("timeout", "connection", "brokenpipe", "deadlock", "serialization", "lockavailable")


def is_recoverable_exception(exc: BaseException) -> bool:
    if isinstance(exc, asyncio.CancelledError):
        return False
    if isinstance(exc, (TimeoutError, ConnectionError, OperationalError, InterfaceError)):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    if exc.connection_invalidated:
        return True
    orig_name = type(exc.orig).__name__.lower() if exc.orig is not None else ""
    return any(hint in orig_name for hint in _TRANSIENT_NAME_HINTS)


def backoff_delay(attempt: int, base_delay: float, factor: float, max_delay: float, jitter: float) -> float:
    """Exponential delay before retry `attempt + 1` , capped then jittered by +/- `jitter` of itself."""
    delay = min(max_delay, base_delay * (factor ** (attempt - 1)))
    return max(0.0, delay + random.uniform(-jitter * delay, jitter * delay))


def retry_async(
    *,
    attempts: int = 3,
    base_delay: float = 0.1,
    factor: float = 2.0,
    max_delay: float = 1.0,
    jitter: float = 0.15,
    if_retryable: Optional[Callable[[BaseException], bool]] = None,
):
    """Replay a session bound unit of work when the db reports a transient failure.

    The wrapped coroutine takes the AsyncSession as its first argument. The session is
    rolled back before each replay so every attempt starts from a clean transaction ,
    which also releases the per seller lock taken by the failed attempt. Domain errors
    (HTTPException and friends) are never retried.
    """
    retryable = if_retryable or is_recoverable_exception

    def deco(fn: Callable):
        @functools.wraps(fn)
        async def wrapper(session, *args, **kwargs):
            attempt = 1
            while True:
                try:
                    return await fn(session, *args, **kwargs)
                except Exception as exc:
                    if attempt >= attempts or not retryable(exc):
                        raise
                    await session.rollback()
                    delay = backoff_delay(attempt, base_delay, factor, max_delay, jitter)
                    logger.warning("db.transaction.retry", extra={"operation": fn.__name__, "attempt": attempt,
                                                                  "error": type(exc).__name__,
                                                                  "delay": round(delay, 3)})
                    await asyncio.sleep(delay)
                    attempt += 1
        return wrapper
    return deco
