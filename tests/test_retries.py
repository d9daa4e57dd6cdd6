import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from marketplace.common.retries import is_recoverable_exception, retry_async


class FakeSession:
    def __init__(self):
        self.rollbacks = 0

    async def rollback(self):
        self.rollbacks += 1


def test_recoverable_classification():
    assert is_recoverable_exception(OperationalError("SELECT 1", None, Exception("database is locked")))
    assert is_recoverable_exception(TimeoutError())
    assert not is_recoverable_exception(IntegrityError("INSERT", None, Exception("unique")))
    assert not is_recoverable_exception(ValueError("bad input"))


@pytest.mark.asyncio
async def test_transient_errors_are_retried_with_rollback():
    calls = []

    @retry_async(attempts=3, base_delay=0.001, max_delay=0.002)
    async def flaky(session, value):
        calls.append(value)
        if len(calls) < 3:
            raise OperationalError("UPDATE", None, Exception("database is locked"))
        return value * 2

    session = FakeSession()
    assert await flaky(session, 21) == 42
    assert len(calls) == 3
    assert session.rollbacks == 2


async def test_gives_up_after_last_attempt():
    session = FakeSession()

    @retry_async(attempts=2, base_delay=0.001)
    async def always_down(session):
        raise OperationalError("SELECT 1", None, Exception("connection refused"))

    with pytest.raises(OperationalError):
        await always_down(session)
    assert session.rollbacks == 1


async def test_domain_errors_are_not_retried():
    session = FakeSession()
    calls = []

    @retry_async(attempts=3, base_delay=0.001)
    async def rejects(session):
        calls.append(1)
        raise ValueError("not retryable")

    with pytest.raises(ValueError):
        await rejects(session)
    assert calls == [1]
    assert session.rollbacks == 0
