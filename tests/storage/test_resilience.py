from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from liqradar.storage.resilience import CircuitBreaker, CircuitOpenError, CircuitState


async def test_opens_after_threshold():
    breaker = CircuitBreaker("test", failure_threshold=2, recovery_timeout=30)
    failing = AsyncMock(side_effect=OSError("disk"))

    for _ in range(2):
        with pytest.raises(OSError):
            await breaker.call(failing)

    assert breaker.state == CircuitState.OPEN
    with pytest.raises(CircuitOpenError):
        await breaker.call(failing)
    assert failing.await_count == 2


async def test_success_resets_failures():
    breaker = CircuitBreaker("test", failure_threshold=2)
    flaky = AsyncMock(side_effect=[OSError("disk"), "ok", OSError("disk")])

    with pytest.raises(OSError):
        await breaker.call(flaky)
    assert await breaker.call(flaky) == "ok"
    with pytest.raises(OSError):
        await breaker.call(flaky)

    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 1


async def test_half_open_trial_closes_on_success():
    breaker = CircuitBreaker("test", failure_threshold=1, recovery_timeout=30)
    with pytest.raises(OSError):
        await breaker.call(AsyncMock(side_effect=OSError("disk")))
    breaker.last_failure_time = datetime.now(tz=UTC) - timedelta(seconds=31)

    assert await breaker.call(AsyncMock(return_value=1)) == 1
    assert breaker.state == CircuitState.CLOSED


async def test_half_open_trial_reopens_on_failure():
    breaker = CircuitBreaker("test", failure_threshold=3, recovery_timeout=30)
    breaker.state = CircuitState.OPEN
    breaker.last_failure_time = datetime.now(tz=UTC) - timedelta(seconds=31)

    with pytest.raises(OSError):
        await breaker.call(AsyncMock(side_effect=OSError("disk")))

    assert breaker.state == CircuitState.OPEN


async def test_unexpected_exceptions_do_not_count():
    breaker = CircuitBreaker("test", failure_threshold=1, expected_exception=OSError)

    with pytest.raises(ValueError):
        await breaker.call(AsyncMock(side_effect=ValueError("bad")))

    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 0
